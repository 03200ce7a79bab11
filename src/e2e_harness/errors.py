"""Error taxonomy for the session harness.

Configuration and extraction errors are fatal. Authentication errors abort
the dependent test (the session cache retries once on validation failure).
Verification errors are assertions and subclass ``AssertionError`` so pytest
reports them as plain test failures.
"""
from __future__ import annotations

from typing import Any, Optional


class HarnessError(Exception):
    """Base class for every error raised by the harness."""


class ConfigurationError(HarnessError):
    """Bad or missing identity / URL configuration."""


class ExtractionError(HarnessError):
    """The login response is malformed (backend contract break)."""


class AuthenticationError(HarnessError):
    """Establishing an authenticated session failed."""

    def __init__(self, label: Optional[str], message: str):
        super().__init__(message)
        self.label = label


class UiLoginTimeoutError(AuthenticationError):
    """UI login did not reach the authenticated area within the bounded wait."""

    def __init__(
        self,
        label: Optional[str],
        last_url: str,
        error_text: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        message = f"UI login for '{label}' timed out at {last_url}"
        if timeout is not None:
            message += f" after {timeout:.1f}s"
        if error_text:
            message += f" (error banner: {error_text!r})"
        super().__init__(label, message)
        self.last_url = last_url
        self.error_text = error_text
        self.timeout = timeout


class ApiLoginError(AuthenticationError):
    """The login endpoint answered with something other than HTTP 200."""

    def __init__(self, label: Optional[str], status_code: Optional[int], body: Any = None):
        if status_code is None:
            message = f"API login for '{label}' failed without a response: {body}"
        else:
            message = f"API login for '{label}' returned HTTP {status_code}: {_preview(body)}"
        super().__init__(label, message)
        self.status_code = status_code
        self.body = body


class SessionEstablishmentError(AuthenticationError):
    """No usable session could be established for an identity."""

    def __init__(self, label: Optional[str], reason: str):
        super().__init__(label, f"Could not establish session for '{label}': {reason}")
        self.reason = reason


class VerificationError(HarnessError, AssertionError):
    """A response did not satisfy a verification helper."""


class SchemaMismatchError(VerificationError):
    def __init__(self, key: str, message: str):
        super().__init__(message)
        self.key = key


class HeaderMismatchError(VerificationError):
    def __init__(self, header: str, message: str):
        super().__init__(message)
        self.header = header


class LatencyExceededError(VerificationError):
    def __init__(self, duration_ms: float, max_ms: float):
        super().__init__(f"Response took {duration_ms:.0f}ms (limit {max_ms:.0f}ms)")
        self.duration_ms = duration_ms
        self.max_ms = max_ms


class RequestTimeoutError(HarnessError):
    """An API request exceeded its bounded timeout."""

    def __init__(self, method: str, url: str, timeout: float):
        super().__init__(f"{method} {url} timed out after {timeout:.1f}s")
        self.method = method
        self.url = url
        self.timeout = timeout


def _preview(body: Any, limit: int = 200) -> str:
    text = body if isinstance(body, str) else repr(body)
    return text if len(text) <= limit else text[:limit] + "..."
