"""
Authenticated-session harness for end-to-end tests.

Architecture:
    - ``CredentialResolver``      : identity lookup over layered settings
    - ``extract_artifacts``       : session cookie / CSRF token extraction
    - ``SessionCache``            : one establishment per key, validated reuse
    - ``ApiAuthenticator`` / ``UiAuthenticator`` : the two login strategies
    - ``AuthenticatedApiClient``  : HTTP verbs with artifacts attached
    - ``verify_*``                : pure assertions over response envelopes
"""

from .api_client import AuthenticatedApiClient, build_http_client, probe_rate_limit, validate_via_profile
from .artifacts import artifacts_from_cookies, extract_artifacts, find_cookie_value
from .authenticator import ApiAuthenticator, Authenticator, UiAuthenticator
from .config import CredentialResolver, HarnessSettings, load_settings
from .errors import (
    ApiLoginError,
    AuthenticationError,
    ConfigurationError,
    ExtractionError,
    HarnessError,
    HeaderMismatchError,
    LatencyExceededError,
    RequestTimeoutError,
    SchemaMismatchError,
    SessionEstablishmentError,
    UiLoginTimeoutError,
    VerificationError,
)
from .logging_config import configure_logging
from .models import ApiResponseEnvelope, AuthContext, ExtractedArtifacts, Identity, SessionKey
from .session_cache import CacheScope, SessionCache
from .verification import verify_headers, verify_response_time, verify_schema

__version__ = "1.0.0"

__all__ = [
    "ApiAuthenticator",
    "ApiLoginError",
    "ApiResponseEnvelope",
    "AuthContext",
    "AuthenticatedApiClient",
    "AuthenticationError",
    "Authenticator",
    "CacheScope",
    "ConfigurationError",
    "CredentialResolver",
    "ExtractedArtifacts",
    "ExtractionError",
    "HarnessError",
    "HarnessSettings",
    "HeaderMismatchError",
    "Identity",
    "LatencyExceededError",
    "RequestTimeoutError",
    "SchemaMismatchError",
    "SessionCache",
    "SessionEstablishmentError",
    "SessionKey",
    "UiAuthenticator",
    "UiLoginTimeoutError",
    "VerificationError",
    "artifacts_from_cookies",
    "build_http_client",
    "configure_logging",
    "extract_artifacts",
    "find_cookie_value",
    "load_settings",
    "probe_rate_limit",
    "validate_via_profile",
    "verify_headers",
    "verify_response_time",
    "verify_schema",
]
