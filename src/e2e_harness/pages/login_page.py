"""Login page object.

Methods return ``self`` so test steps read top to bottom::

    login_page = LoginPage(page, settings)
    await login_page.visit()
    await login_page.login(user.email, user.password)
    await login_page.wait_for_login_complete()
    await login_page.verify_successful_login()
"""
from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from e2e_harness.errors import UiLoginTimeoutError
from e2e_harness.pages.base_page import BasePage, url_matches

logger = logging.getLogger(__name__)


class LoginPage(BasePage):
    selectors = {
        "email_input": 'input[type="email"], input[name="email"]',
        "password_input": 'input[type="password"], input[name="password"]',
        "login_button": 'button[type="submit"]',
        "remember_me": 'input[type="checkbox"][name*="remember"]',
        "error_message": '[role="alert"], .error-message, .alert-danger',
        "forgot_password_link": 'a[href*="forgot"]',
        "signup_link": 'a[href*="signup"]',
        "loader": '.spinner, .loading, [data-testid="loader"]',
    }

    @property
    def path(self) -> str:  # type: ignore[override]
        return self.settings.login_path

    def _locator(self, name: str):
        return self.page.locator(self.selectors[name]).first

    @property
    def _wait_ms(self) -> float:
        return self.settings.login_timeout * 1000

    async def visit(self) -> "LoginPage":
        await self.open()
        await self.verify_login_form_is_visible()
        logger.info("Visited %s", self.page.url)
        return self

    async def login(self, email: str, password: str, remember: bool = False) -> "LoginPage":
        await self.fill_email(email)
        await self.fill_password(password)
        if remember:
            await self.check_remember_me()
        await self.submit()
        return self

    async def fill_email(self, email: str) -> "LoginPage":
        await self._locator("email_input").fill(email, timeout=self._wait_ms)
        return self

    async def fill_password(self, password: str) -> "LoginPage":
        await self._locator("password_input").fill(password, timeout=self._wait_ms)
        return self

    async def check_remember_me(self) -> "LoginPage":
        checkbox = self.page.locator(self.selectors["remember_me"])
        if await checkbox.count():
            await checkbox.first.check(force=True)
        return self

    async def submit(self) -> "LoginPage":
        await self._locator("login_button").click()
        return self

    async def submit_with_enter(self) -> "LoginPage":
        await self._locator("password_input").press("Enter")
        return self

    async def clear_all_fields(self) -> "LoginPage":
        await self._locator("email_input").fill("")
        await self._locator("password_input").fill("")
        return self

    async def go_to_forgot_password(self) -> "LoginPage":
        await self._locator("forgot_password_link").click()
        return self

    async def go_to_signup(self) -> "LoginPage":
        await self._locator("signup_link").click()
        return self

    async def error_banner_text(self) -> Optional[str]:
        """Visible error banner text, if any."""
        banner = self._locator("error_message")
        try:
            if await banner.is_visible():
                return (await banner.inner_text()).strip() or None
        except PlaywrightError:
            return None
        return None

    async def wait_for_login_complete(self, timeout: Optional[float] = None, label: Optional[str] = None) -> "LoginPage":
        """Wait for the loader to disappear and the authenticated area to load.

        Raises:
            UiLoginTimeoutError: Neither happened within ``timeout`` seconds
        """
        timeout = timeout or self.settings.login_timeout
        expected = self.settings.dashboard_path

        async def done() -> bool:
            if await self.is_visible(self.selectors["loader"]):
                return False
            return url_matches(self.page.url, expected)

        try:
            completed = await self.wait_until(done, timeout)
        except PlaywrightTimeout:
            completed = False
        if not completed:
            raise UiLoginTimeoutError(label, self.page.url, await self.error_banner_text(), timeout)
        logger.info("Login complete and redirected to %s", self.page.url)
        return self

    async def verify_login_form_is_visible(self) -> "LoginPage":
        for name in ("email_input", "password_input", "login_button"):
            try:
                await self._locator(name).wait_for(state="visible", timeout=self._wait_ms)
            except PlaywrightTimeout as exc:
                raise AssertionError(f"Login form element '{name}' not visible on {self.page.url}") from exc
        return self

    async def verify_successful_login(self, expected_path: Optional[str] = None) -> "LoginPage":
        await self.verify_url(expected_path or self.settings.dashboard_path)
        logger.info("Successful login verified")
        return self

    async def verify_error_message(self, message: str, timeout: float = 10.0) -> "LoginPage":
        banner = self._locator("error_message")
        try:
            await banner.wait_for(state="visible", timeout=timeout * 1000)
        except PlaywrightTimeout as exc:
            raise AssertionError(f"No error banner shown on {self.page.url}") from exc
        text = await banner.inner_text()
        assert message in text, f"'{message}' not found in error banner '{text}'"
        return self
