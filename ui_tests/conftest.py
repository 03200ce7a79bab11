"""Fixtures for live suites against a real deployment.

Every test here is skipped unless ``E2E_BASE_URL`` is configured (env,
``.env`` or ``.env.defaults``). Credentials come from the users file or
``E2E_USER_<LABEL>_EMAIL`` / ``_PASSWORD``.

One ``SessionCache`` lives for the whole pytest process, so each identity
logs in once no matter how many tests use it.
"""
import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from e2e_harness.api_client import AuthenticatedApiClient, build_http_client
from e2e_harness.browser import PlaywrightClient, clear_browser_state
from e2e_harness.config import CredentialResolver, load_env_files, load_settings
from e2e_harness.errors import ConfigurationError
from e2e_harness.logging_config import configure_logging
from e2e_harness.session_cache import SessionCache


def _live_target_configured() -> bool:
    return bool(os.environ.get("E2E_BASE_URL") or load_env_files([ROOT, Path.cwd()]).get("E2E_BASE_URL"))


def pytest_collection_modifyitems(config, items):
    if _live_target_configured():
        return
    skip_live = pytest.mark.skip(reason="E2E_BASE_URL not configured; live suites disabled")
    here = Path(__file__).parent
    for item in items:
        if here in Path(item.path).parents:
            item.add_marker(skip_live)


@pytest.fixture(scope="session")
def settings():
    settings = load_settings(search_dirs=[ROOT, Path.cwd()])
    configure_logging(settings.log_level)
    return settings


@pytest.fixture(scope="session")
def resolver(settings):
    return CredentialResolver(settings)


@pytest.fixture(scope="session")
def session_cache():
    """Process-wide session cache; run-scoped entries are dropped at the end."""
    cache = SessionCache(name="live")
    yield cache
    cache.end_run()


@pytest.fixture()
def standard_user(resolver):
    try:
        return resolver.resolve("standard")
    except ConfigurationError as exc:
        pytest.skip(str(exc))


@pytest_asyncio.fixture()
async def http_client(settings):
    async with build_http_client(settings) as client:
        yield client


@pytest.fixture()
def api_client(settings, session_cache, standard_user, http_client):
    return AuthenticatedApiClient(settings, session_cache, standard_user, http_client)


@pytest_asyncio.fixture()
async def playwright_client(settings):
    async with PlaywrightClient(settings) as client:
        yield client


@pytest_asyncio.fixture()
async def clean_page(playwright_client):
    """A page with cookies and web storage cleared."""
    await clear_browser_state(playwright_client.context, playwright_client.page)
    return playwright_client.page
