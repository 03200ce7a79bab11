"""
Playwright Browser Client
=========================

Launches Playwright in-process and hands out browser contexts configured
for the target deployment (base URL, HTTP basic-auth wrapper, viewport).

Usage:
    from e2e_harness.browser import PlaywrightClient

    async with PlaywrightClient(settings) as client:
        page = client.page
        await LoginPage(page, settings).visit()
"""
from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from e2e_harness.config import HarnessSettings
from e2e_harness.models import AuthContext

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1920, "height": 1080}


class PlaywrightClient:
    """
    Direct Playwright client bound to one deployment.

    Example:
        async with PlaywrightClient(settings) as client:
            await client.page.goto(settings.ui_url_for("/login"))
    """

    def __init__(
        self,
        settings: HarnessSettings,
        browser_type: str = "chromium",
        headless: Optional[bool] = None,
        timeout_ms: Optional[int] = None,
    ):
        """
        Args:
            settings: Harness settings (base URL, HTTP auth, timeouts)
            browser_type: Browser to use (chromium, firefox, webkit)
            headless: Run headless (None = from settings)
            timeout_ms: Default action timeout (None = request timeout from settings)
        """
        self.settings = settings
        self.browser_type = browser_type
        self.headless = settings.headless if headless is None else headless
        self.timeout_ms = timeout_ms if timeout_ms is not None else int(settings.request_timeout * 1000)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Launch the browser and open a default context and page."""
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type, None)
        if launcher is None:
            raise ValueError(f"Unknown browser type: {self.browser_type}")
        self._browser = await launcher.launch(headless=self.headless)
        self._context = await self.new_context()
        self._page = await self._context.new_page()
        logger.debug("Launched %s (headless=%s)", self.browser_type, self.headless)

    async def new_context(self, **kwargs) -> BrowserContext:
        """Create an isolated context with the deployment defaults applied."""
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        options = {
            "base_url": self.settings.base_url,
            "viewport": DEFAULT_VIEWPORT,
            "ignore_https_errors": True,
        }
        if self.settings.http_auth:
            username, password = self.settings.http_auth
            options["http_credentials"] = {"username": username, "password": password}
        options.update(kwargs)
        context = await self._browser.new_context(**options)
        context.set_default_timeout(self.timeout_ms)
        return context

    async def close(self) -> None:
        """Close all connections and cleanup resources."""
        if self._context:
            await self._context.close()
            self._context = None
            self._page = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Client not connected")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page


async def clear_browser_state(context: BrowserContext, page: Optional[Page] = None) -> None:
    """Drop cookies, localStorage and sessionStorage."""
    await context.clear_cookies()
    if page is None or page.url in ("", "about:blank"):
        return
    try:
        await page.evaluate("() => { localStorage.clear(); sessionStorage.clear(); }")
    except Exception as exc:
        # Storage is not accessible on some origins (e.g. error pages)
        logger.debug("Could not clear web storage on %s: %s", page.url, exc)


async def apply_auth_context(
    context: BrowserContext,
    auth: AuthContext,
    settings: HarnessSettings,
) -> int:
    """Install an established AuthContext as cookies in a browser context.

    Returns the number of cookies added.
    """
    cookies = []
    for name, value in auth.cookies(settings.session_cookie_name, settings.csrf_cookie_name).items():
        cookie = {"name": name, "value": value, "path": "/"}
        if settings.cookie_domain:
            cookie["domain"] = settings.cookie_domain
        else:
            cookie["url"] = settings.base_url
            del cookie["path"]
        cookies.append(cookie)
    if cookies:
        await context.add_cookies(cookies)
    logger.debug("Applied %d auth cookie(s) for '%s'", len(cookies), auth.label)
    return len(cookies)
