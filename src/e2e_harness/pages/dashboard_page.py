"""Dashboard (authenticated landing area) page object."""
from __future__ import annotations

from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout

from e2e_harness.pages.base_page import BasePage


class DashboardPage(BasePage):
    selectors = {
        "loader": '[data-testid="loader"], .loading',
        "user_menu": '[data-test-id="user-menu"]',
        "logout_button": '[data-test-id="logout-button"]',
    }

    @property
    def path(self) -> str:  # type: ignore[override]
        return self.settings.dashboard_path

    async def verify_dashboard_loaded(self, expected_text: Optional[str] = None, timeout: Optional[float] = None) -> "DashboardPage":
        """Route matches, loader is gone, and (optionally) real content rendered."""
        timeout = timeout or self.settings.loader_timeout
        await self.verify_url(self.settings.dashboard_path, timeout=timeout)

        async def loader_gone() -> bool:
            return not await self.is_visible(self.selectors["loader"])

        assert await self.wait_until(loader_gone, timeout), f"Loader still visible on {self.page.url}"

        if expected_text:
            try:
                await self.page.get_by_text(expected_text).first.wait_for(timeout=timeout * 1000)
            except PlaywrightTimeout as exc:
                raise AssertionError(f"'{expected_text}' not rendered on {self.page.url}") from exc
        return self

    async def open_user_menu(self) -> "DashboardPage":
        await self.page.locator(self.selectors["user_menu"]).first.click()
        return self

    async def logout(self) -> "DashboardPage":
        """Log out through the user menu and wait for the login page."""
        await self.open_user_menu()
        await self.page.locator(self.selectors["logout_button"]).first.click()
        await self.verify_url(self.settings.login_path)
        return self
