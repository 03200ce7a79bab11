"""Layered configuration and credential resolution.

Values are resolved, lowest precedence first, from:

1. built-in defaults
2. ``.env.defaults`` then ``.env`` (repo root, then current directory)
3. the JSON users file (``E2E_USERS_FILE``, default ``e2e_users.json``)
4. the process environment

The users file mirrors the shape test suites already keep their
credentials in::

    {
        "users": {
            "standard": {"email": "user@example.com", "password": "..."},
            "admin": {"email": "admin@example.com", "password": "..."}
        },
        "httpAuth": {"username": "staging", "password": "..."}
    }

Settings are read once and are immutable for the lifetime of the process.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional
from urllib.parse import urljoin

from e2e_harness.errors import ConfigurationError
from e2e_harness.models import Identity

DEFAULT_IDENTITY = "standard"

_DEFAULTS: Dict[str, str] = {
    "E2E_BASE_URL": "http://localhost:3000",
    "E2E_DASHBOARD_PATH": "/dashboard",
    "E2E_LOGIN_PATH": "/login",
    "E2E_API_LOGIN_PATH": "/usersv1/login",
    "E2E_API_PROFILE_PATH": "/usersv1/profile",
    "E2E_API_LOGOUT_PATH": "/usersv1/logout",
    "E2E_SESSION_COOKIE": "lgm-connect-sid",
    "E2E_CSRF_HEADER": "lgm-csrf-token",
    "E2E_REQUEST_TIMEOUT": "30",
    "E2E_LOGIN_TIMEOUT": "20",
    "E2E_LOADER_TIMEOUT": "20",
    "E2E_HEADLESS": "true",
    "E2E_USERS_FILE": "e2e_users.json",
}

_USER_ENV_RE = re.compile(r"^E2E_USER_([A-Z0-9_]+)_(EMAIL|PASSWORD)$")


def _truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class HarnessSettings:
    """Resolved, read-only configuration for one test process."""

    base_url: str
    api_url: str
    dashboard_path: str = "/dashboard"
    login_path: str = "/login"
    api_login_path: str = "/usersv1/login"
    api_profile_path: str = "/usersv1/profile"
    api_logout_path: str = "/usersv1/logout"
    session_cookie_name: str = "lgm-connect-sid"
    csrf_header_name: str = "lgm-csrf-token"
    cookie_domain: Optional[str] = None
    http_auth_username: Optional[str] = None
    http_auth_password: Optional[str] = field(default=None, repr=False)
    request_timeout: float = 30.0
    login_timeout: float = 20.0
    loader_timeout: float = 20.0
    headless: bool = True
    log_level: Optional[str] = None
    identities: Mapping[str, Identity] = field(default_factory=dict, repr=False)

    @property
    def csrf_cookie_name(self) -> str:
        return self.csrf_header_name

    @property
    def http_auth(self) -> Optional[tuple[str, str]]:
        if self.http_auth_username:
            return (self.http_auth_username, self.http_auth_password or "")
        return None

    def api_url_for(self, path: str) -> str:
        """Return an absolute API URL for ``path``."""
        return _join(self.api_url, path)

    def ui_url_for(self, path: str) -> str:
        """Return an absolute UI URL for ``path``."""
        return _join(self.base_url, path)


def _join(base: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return urljoin(base.rstrip("/") + "/", path.lstrip("/"))


def _parse_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        # Strip surrounding quotes (single or double)
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        values[key.strip()] = value
    return values


def load_env_files(search_dirs: Optional[list[Path]] = None) -> Dict[str, str]:
    """Load ``.env.defaults`` then overlay ``.env`` from each search dir."""
    if search_dirs is None:
        search_dirs = [Path(__file__).resolve().parents[2]]
        try:
            cwd = Path.cwd()
            if cwd.resolve() != search_dirs[0].resolve():
                search_dirs.append(cwd)
        except OSError:
            pass

    merged: Dict[str, str] = {}
    for name in (".env.defaults", ".env"):
        for directory in search_dirs:
            candidate = directory / name
            if candidate.exists():
                merged.update(_parse_env_file(candidate))
    return merged


def _load_users_file(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Users file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Users file {path} must contain a JSON object")
    users = data.get("users", {})
    if not isinstance(users, dict):
        raise ConfigurationError(f"'users' in {path} must be an object keyed by identity label")
    return data


def _float(values: Mapping[str, str], key: str) -> float:
    raw = values[key]
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number of seconds, got {raw!r}") from exc


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    users_file: Optional[str | Path] = None,
    search_dirs: Optional[list[Path]] = None,
) -> HarnessSettings:
    """Resolve settings from defaults, env files, the users file and the environment.

    Args:
        environ: Environment mapping (defaults to ``os.environ``)
        users_file: Explicit users file path, overriding ``E2E_USERS_FILE``
        search_dirs: Directories searched for ``.env.defaults`` / ``.env``

    Raises:
        ConfigurationError: On malformed numbers or users file
    """
    env = dict(os.environ if environ is None else environ)

    values: Dict[str, str] = dict(_DEFAULTS)
    values.update(load_env_files(search_dirs))
    values.update({k: v for k, v in env.items() if k.startswith("E2E_")})

    users_path = Path(users_file) if users_file else Path(values["E2E_USERS_FILE"])
    users_data: dict = _load_users_file(users_path) if users_path.exists() else {}

    http_auth = users_data.get("httpAuth") or {}
    http_user = values.get("E2E_HTTP_AUTH_USERNAME") or http_auth.get("username")
    http_password = values.get("E2E_HTTP_AUTH_PASSWORD") or http_auth.get("password")

    raw_users: Dict[str, Dict[str, str]] = {
        label: dict(entry or {}) for label, entry in users_data.get("users", {}).items()
    }
    for key, value in values.items():
        match = _USER_ENV_RE.match(key)
        if match:
            label = match.group(1).lower()
            raw_users.setdefault(label, {})[match.group(2).lower()] = value

    identities = {
        label: Identity(
            label=label,
            email=(entry.get("email") or "").strip(),
            password=entry.get("password") or "",
            http_auth_username=entry.get("httpAuthUsername") or http_user,
            http_auth_password=entry.get("httpAuthPassword") or http_password,
        )
        for label, entry in raw_users.items()
    }

    base_url = values["E2E_BASE_URL"].rstrip("/")
    api_url = (values.get("E2E_API_URL") or f"{base_url}/api").rstrip("/")

    return HarnessSettings(
        base_url=base_url,
        api_url=api_url,
        dashboard_path=values["E2E_DASHBOARD_PATH"],
        login_path=values["E2E_LOGIN_PATH"],
        api_login_path=values["E2E_API_LOGIN_PATH"],
        api_profile_path=values["E2E_API_PROFILE_PATH"],
        api_logout_path=values["E2E_API_LOGOUT_PATH"],
        session_cookie_name=values["E2E_SESSION_COOKIE"],
        csrf_header_name=values["E2E_CSRF_HEADER"],
        cookie_domain=values.get("E2E_COOKIE_DOMAIN") or None,
        http_auth_username=http_user,
        http_auth_password=http_password,
        request_timeout=_float(values, "E2E_REQUEST_TIMEOUT"),
        login_timeout=_float(values, "E2E_LOGIN_TIMEOUT"),
        loader_timeout=_float(values, "E2E_LOADER_TIMEOUT"),
        headless=_truthy(values["E2E_HEADLESS"]),
        log_level=values.get("E2E_LOG_LEVEL"),
        identities=identities,
    )


class CredentialResolver:
    """Looks up identities by label over read-only settings."""

    def __init__(self, settings: HarnessSettings):
        self._settings = settings

    @property
    def labels(self) -> list[str]:
        return sorted(self._settings.identities)

    def resolve(self, label: Optional[str] = None) -> Identity:
        """Return the identity for ``label`` (default ``standard``).

        Raises:
            ConfigurationError: Unknown label or missing email/password
        """
        label = label or DEFAULT_IDENTITY
        identity = self._settings.identities.get(label)
        if identity is None:
            known = ", ".join(self.labels) or "none"
            raise ConfigurationError(f"Unknown identity '{label}' (configured: {known})")
        missing = [name for name in ("email", "password") if not getattr(identity, name)]
        if missing:
            raise ConfigurationError(f"Identity '{label}' is missing {' and '.join(missing)}")
        return identity

    def custom(self, email: str, password: str, label: str = "custom") -> Identity:
        """Build an ad-hoc identity that inherits the global basic-auth wrapper."""
        if not email or not password:
            raise ConfigurationError(f"Identity '{label}' requires both email and password")
        return Identity(
            label=label,
            email=email,
            password=password,
            http_auth_username=self._settings.http_auth_username,
            http_auth_password=self._settings.http_auth_password,
        )
