"""Shared behaviour for page objects."""
from __future__ import annotations

from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

import anyio
from playwright.async_api import Page

from e2e_harness.config import HarnessSettings


def strip_origin(url: str) -> str:
    """Return path + query of ``url`` (``url`` itself when already relative)."""
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc:
        return url
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def url_matches(url: str, expected: str) -> bool:
    """True when the path (and query) of ``url`` contains ``expected``."""
    return strip_origin(expected) in strip_origin(url)


class BasePage:
    """Base page object: navigation, deterministic waits, URL checks."""

    path = "/"
    poll_interval = 0.2

    def __init__(self, page: Page, settings: HarnessSettings):
        self.page = page
        self.settings = settings

    @property
    def url(self) -> str:
        return self.page.url

    async def open(self, path: Optional[str] = None, timeout: Optional[float] = None) -> "BasePage":
        timeout = timeout or self.settings.request_timeout
        await self.page.goto(
            self.settings.ui_url_for(path or self.path),
            wait_until="domcontentloaded",
            timeout=timeout * 1000,
        )
        await self.wait_for_page_load(timeout)
        return self

    async def wait_for_page_load(self, timeout: float = 15.0) -> "BasePage":
        await self.page.wait_for_load_state("load", timeout=timeout * 1000)
        return self

    async def verify_url(self, expected: str, timeout: float = 15.0) -> "BasePage":
        async def matches() -> bool:
            return url_matches(self.page.url, expected)

        ok = await self.wait_until(matches, timeout)
        assert ok, f"Expected URL to include '{expected}', got '{self.page.url}'"
        return self

    async def is_visible(self, selector: str) -> bool:
        return await self.page.locator(selector).first.is_visible()

    async def wait_until(
        self,
        predicate: Callable[[], Awaitable[bool]],
        timeout: float,
        interval: Optional[float] = None,
    ) -> bool:
        """Poll ``predicate`` until it holds or ``timeout`` seconds elapse."""
        interval = interval or self.poll_interval
        deadline = anyio.current_time() + timeout
        while True:
            if await predicate():
                return True
            if anyio.current_time() >= deadline:
                return False
            await anyio.sleep(interval)
