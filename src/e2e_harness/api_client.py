"""
Authenticated API Client
========================

Wraps the HTTP verbs against the configured API base URL. Every call
resolves the active identity's session through the ``SessionCache``
first, then attaches the session cookie and CSRF token.

Non-2xx responses are returned, never raised: negative-path behaviour
(400, 401, 409, 429) is asserted on by the calling test.

Usage::

    async with build_http_client(settings) as http:
        client = AuthenticatedApiClient(settings, cache, identity, http)
        envelope = await client.get("/usersv1/profile")
        verify_schema(envelope, {"user": "object"})
"""
from __future__ import annotations

import logging
import time
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Dict, List, Mapping, Optional

import httpx

from e2e_harness.authenticator import ApiAuthenticator, Authenticator
from e2e_harness.config import HarnessSettings
from e2e_harness.errors import RequestTimeoutError
from e2e_harness.models import ApiResponseEnvelope, AuthContext, Identity
from e2e_harness.session_cache import CacheScope, SessionCache, ValidateFn

logger = logging.getLogger(__name__)

USER_AGENT = "e2e-session-harness"


async def _log_error_response(response: httpx.Response) -> None:
    if response.status_code >= 400:
        logger.warning(
            "API error: %s %s - Status: %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )


def build_http_client(
    settings: HarnessSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared AsyncClient.

    Its cookie jar accepts nothing: only artifacts attached explicitly from
    an AuthContext are ever sent.
    """
    jar = CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    return httpx.AsyncClient(
        timeout=settings.request_timeout,
        cookies=jar,
        follow_redirects=False,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        event_hooks={"response": [_log_error_response]},
        transport=transport,
    )


class AuthenticatedApiClient:
    """Verb-level API access for one identity, backed by the session cache.

    The default validator re-checks the cached session with a ``GET`` on the
    profile endpoint before every authenticated request, so each call costs
    two round trips. Pass a cheaper ``validate`` coroutine (or one that
    always returns True) when a suite can tolerate a stale session.
    """

    def __init__(
        self,
        settings: HarnessSettings,
        cache: SessionCache,
        identity: Identity,
        http: httpx.AsyncClient,
        *,
        authenticator: Optional[Authenticator] = None,
        validate: Optional[ValidateFn] = None,
        scope: CacheScope = CacheScope.PROCESS,
    ):
        self.settings = settings
        self.cache = cache
        self.identity = identity
        self.http = http
        self.authenticator = authenticator or ApiAuthenticator(settings, http)
        self.validate = validate or self.validate_session
        self.scope = scope

    def as_identity(self, identity: Identity, **overrides: Any) -> "AuthenticatedApiClient":
        """A client for another identity sharing this cache and HTTP pool."""
        options: Dict[str, Any] = {"authenticator": self.authenticator, "scope": self.scope}
        options.update(overrides)
        return AuthenticatedApiClient(self.settings, self.cache, identity, self.http, **options)

    # -- session -----------------------------------------------------------

    async def auth_context(self) -> AuthContext:
        """Resolve (establishing if needed) the active identity's session."""
        return await self.cache.get_or_establish(
            self.identity.session_key,
            lambda: self.authenticator.authenticate(self.identity),
            self.validate,
            scope=self.scope,
            label=self.identity.label,
        )

    def auth_headers(self, context: AuthContext) -> Dict[str, str]:
        """Cookie and CSRF headers carrying ``context``'s artifacts."""
        headers: Dict[str, str] = {}
        jar = context.cookies(self.settings.session_cookie_name, self.settings.csrf_cookie_name)
        if jar:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in jar.items())
        if context.csrf_token:
            headers[self.settings.csrf_header_name] = context.csrf_token
        return headers

    async def validate_session(self, context: AuthContext) -> bool:
        """True when the backend still accepts ``context`` on the profile endpoint."""
        envelope = await self._send("GET", self.settings.api_profile_path, headers=self.auth_headers(context))
        return envelope.status == 200

    # -- requests ----------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        authenticate: bool = True,
    ) -> ApiResponseEnvelope:
        """Issue one request and return its envelope (non-2xx included).

        Args:
            method: HTTP verb
            path: Path relative to the API base (or an absolute URL)
            json: JSON body
            params: Query parameters
            headers: Extra headers; they win over the attached auth headers
            authenticate: Resolve and attach the cached session first
        """
        merged: Dict[str, str] = {}
        if authenticate:
            merged.update(self.auth_headers(await self.auth_context()))
        merged.update(headers or {})
        return await self._send(method, path, json=json, params=params, headers=merged)

    async def get(self, path: str, **kwargs: Any) -> ApiResponseEnvelope:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponseEnvelope:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponseEnvelope:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponseEnvelope:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResponseEnvelope:
        return await self.request("DELETE", path, **kwargs)

    # -- login endpoint helpers -------------------------------------------

    async def login_raw(self, body: Optional[Mapping[str, Any]] = None, **fields: Any) -> ApiResponseEnvelope:
        """POST an arbitrary body to the login endpoint without a session.

        ``login_raw()`` sends the active identity's credentials;
        ``login_raw({"email": "a@b.com"})`` sends exactly that body.
        """
        if body is None and not fields:
            body = {"email": self.identity.email, "password": self.identity.password, "termsAccepted": True}
        payload = dict(body or {})
        payload.update(fields)
        return await self.post(self.settings.api_login_path, json=payload, authenticate=False)

    async def get_profile(self) -> ApiResponseEnvelope:
        return await self.get(self.settings.api_profile_path)

    async def logout(self) -> ApiResponseEnvelope:
        """Log out server-side and drop the cached session."""
        envelope = await self.post(self.settings.api_logout_path)
        self.cache.invalidate(self.identity.session_key)
        return envelope

    # -- internal ----------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResponseEnvelope:
        url = self.settings.api_url_for(path)
        kwargs: Dict[str, Any] = {"headers": dict(headers or {})}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = dict(params)
        basic_auth = self.identity.basic_auth or self.settings.http_auth
        if basic_auth:
            kwargs["auth"] = basic_auth

        started = time.perf_counter()
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(method, url, self.settings.request_timeout) from exc
        duration_ms = (time.perf_counter() - started) * 1000

        envelope = ApiResponseEnvelope.from_response(response, duration_ms)
        logger.debug("%s %s -> %s (%.0fms)", method, path, envelope.status, duration_ms)
        return envelope


def validate_via_profile(client: AuthenticatedApiClient) -> ValidateFn:
    """Validation callable checking a context against ``client``'s profile endpoint."""
    return client.validate_session


async def probe_rate_limit(client: AuthenticatedApiClient, attempts: int = 20) -> List[int]:
    """Fire rapid logins and return the observed status codes.

    Advisory only: whether a 429 appears depends on backend throttling.
    """
    statuses = []
    for _ in range(attempts):
        envelope = await client.login_raw()
        statuses.append(envelope.status)
        if envelope.status == 429:
            break
    logger.info("Rate-limit probe: %d attempt(s), statuses=%s", len(statuses), sorted(set(statuses)))
    return statuses
