"""Value types shared by the harness components."""
from __future__ import annotations

import json as jsonlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import httpx


@dataclass(frozen=True)
class SessionKey:
    """Composite cache key: identity label plus the distinguishing email."""

    label: str
    email: str

    def __str__(self) -> str:
        return f"{self.label}:{self.email}"


@dataclass(frozen=True)
class Identity:
    """A named credential set loaded from configuration."""

    label: str
    email: str
    password: str = field(repr=False)
    http_auth_username: Optional[str] = None
    http_auth_password: Optional[str] = field(default=None, repr=False)

    @property
    def session_key(self) -> SessionKey:
        return SessionKey(self.label, self.email)

    @property
    def basic_auth(self) -> Optional[tuple[str, str]]:
        """HTTP basic-auth wrapper credentials, if configured."""
        if self.http_auth_username:
            return (self.http_auth_username, self.http_auth_password or "")
        return None


@dataclass(frozen=True)
class ExtractedArtifacts:
    """Partial result of artifact extraction; either field may be missing."""

    session_cookie: Optional[str] = None
    csrf_token: Optional[str] = None
    body: Any = None

    @property
    def is_empty(self) -> bool:
        return not self.session_cookie and not self.csrf_token


@dataclass(frozen=True)
class AuthContext:
    """Security artifacts that make subsequent requests authenticated."""

    label: str
    session_cookie: Optional[str]
    csrf_token: Optional[str] = None
    established_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    strategy: str = "api"

    @classmethod
    def from_artifacts(cls, label: str, artifacts: ExtractedArtifacts, strategy: str = "api") -> "AuthContext":
        return cls(
            label=label,
            session_cookie=artifacts.session_cookie,
            csrf_token=artifacts.csrf_token,
            strategy=strategy,
        )

    @property
    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.established_at).total_seconds()

    def cookies(self, session_cookie_name: str, csrf_cookie_name: str) -> dict[str, str]:
        """Cookie jar entries for this context."""
        jar: dict[str, str] = {}
        if self.session_cookie:
            jar[session_cookie_name] = self.session_cookie
        if self.csrf_token:
            jar[csrf_cookie_name] = self.csrf_token
        return jar


@dataclass
class ApiResponseEnvelope:
    """A captured HTTP response, consumed by the verification helpers."""

    status: int
    headers: httpx.Headers
    body: Any
    duration: float  # milliseconds
    method: str = "GET"
    url: str = ""

    @classmethod
    def from_response(cls, response: httpx.Response, duration_ms: float) -> "ApiResponseEnvelope":
        return cls(
            status=response.status_code,
            headers=response.headers,
            body=decode_body(response),
            duration=duration_ms,
            method=response.request.method,
            url=str(response.request.url),
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        if isinstance(self.body, str):
            return self.body
        return jsonlib.dumps(self.body)

    def json(self) -> Any:
        if isinstance(self.body, (dict, list)):
            return self.body
        return jsonlib.loads(self.text)

    def __repr__(self) -> str:
        return f"ApiResponseEnvelope({self.method} {self.url} -> {self.status}, {self.duration:.0f}ms)"


def decode_body(response: httpx.Response) -> Any:
    """Decode JSON bodies, fall back to text for everything else."""
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text
