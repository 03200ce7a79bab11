"""
Login strategies
================

Two interchangeable implementations of ``Authenticator``:

- ``ApiAuthenticator`` POSTs credentials to the login endpoint. Fast; used
  whenever a test only needs to *be* logged in.
- ``UiAuthenticator`` drives the login form in a browser. Slow; the only
  way to exercise user-facing login behaviour.

Both hand their raw result to ``e2e_harness.artifacts`` and produce the
same ``AuthContext``; caching is left to ``SessionCache``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from e2e_harness.artifacts import artifacts_from_cookies, extract_artifacts
from e2e_harness.config import HarnessSettings
from e2e_harness.errors import ApiLoginError, SessionEstablishmentError, UiLoginTimeoutError
from e2e_harness.models import AuthContext, Identity, decode_body
from e2e_harness.pages.login_page import LoginPage

logger = logging.getLogger(__name__)


def _mask(value: str) -> str:
    return "*" * len(value)


class Authenticator(ABC):
    """Produces an AuthContext for an identity."""

    strategy = "abstract"

    def __init__(self, settings: HarnessSettings):
        self.settings = settings

    @abstractmethod
    async def authenticate(self, identity: Identity) -> AuthContext:
        """Log ``identity`` in and return its security artifacts.

        Raises:
            AuthenticationError: Login failed or produced no usable artifact
        """

    def _context_from(self, identity: Identity, artifacts) -> AuthContext:
        if artifacts.is_empty:
            raise SessionEstablishmentError(
                identity.label,
                f"{self.strategy} login succeeded but returned neither a "
                f"'{self.settings.session_cookie_name}' cookie nor a "
                f"'{self.settings.csrf_header_name}' token",
            )
        context = AuthContext.from_artifacts(identity.label, artifacts, strategy=self.strategy)
        logger.info(
            "[AUTH] %s login for '%s' established (cookie=%s, csrf=%s)",
            self.strategy.upper(),
            identity.label,
            bool(context.session_cookie),
            bool(context.csrf_token),
        )
        return context


class ApiAuthenticator(Authenticator):
    """Direct credential exchange against the login endpoint."""

    strategy = "api"

    def __init__(
        self,
        settings: HarnessSettings,
        http: httpx.AsyncClient,
        *,
        terms_accepted: bool = True,
        extra_payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(settings)
        self._http = http
        self.terms_accepted = terms_accepted
        self.extra_payload = dict(extra_payload or {})

    def payload_for(self, identity: Identity) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"email": identity.email, "password": identity.password}
        if self.terms_accepted:
            payload["termsAccepted"] = True
        payload.update(self.extra_payload)
        return payload

    async def post_login(self, identity: Identity) -> httpx.Response:
        """Send the raw login request (no status handling)."""
        url = self.settings.api_url_for(self.settings.api_login_path)
        logger.info("[AUTH] API login: %s / %s", identity.email, _mask(identity.password))
        request_auth = identity.basic_auth or self.settings.http_auth
        kwargs: Dict[str, Any] = {"json": self.payload_for(identity), "timeout": self.settings.request_timeout}
        if request_auth:
            kwargs["auth"] = request_auth
        return await self._http.post(url, **kwargs)

    async def authenticate(self, identity: Identity) -> AuthContext:
        try:
            response = await self.post_login(identity)
        except httpx.TimeoutException as exc:
            raise ApiLoginError(
                identity.label, None, f"timed out after {self.settings.request_timeout:.0f}s"
            ) from exc
        except httpx.TransportError as exc:
            raise ApiLoginError(identity.label, None, str(exc)) from exc

        if response.status_code != 200:
            raise ApiLoginError(identity.label, response.status_code, decode_body(response))

        artifacts = extract_artifacts(
            response,
            session_cookie_name=self.settings.session_cookie_name,
            csrf_header_name=self.settings.csrf_header_name,
        )
        return self._context_from(identity, artifacts)


class UiAuthenticator(Authenticator):
    """Login through the browser form, then read artifacts from the cookie jar."""

    strategy = "ui"

    def __init__(self, settings: HarnessSettings, page: Page, *, remember: bool = False):
        super().__init__(settings)
        self.page = page
        self.remember = remember

    async def authenticate(self, identity: Identity) -> AuthContext:
        login_page = LoginPage(self.page, self.settings)
        try:
            await login_page.visit()
            await login_page.login(identity.email, identity.password, remember=self.remember)
        except (PlaywrightTimeout, AssertionError) as exc:
            # Navigation, missing form or unfillable fields
            raise UiLoginTimeoutError(
                identity.label,
                self.page.url,
                await login_page.error_banner_text(),
                self.settings.login_timeout,
            ) from exc
        await login_page.wait_for_login_complete(label=identity.label)

        cookies = await self.page.context.cookies()
        artifacts = artifacts_from_cookies(
            cookies,
            session_cookie_name=self.settings.session_cookie_name,
            csrf_cookie_name=self.settings.csrf_cookie_name,
        )
        return self._context_from(identity, artifacts)
