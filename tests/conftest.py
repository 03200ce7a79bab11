"""Fixtures for offline harness tests against the in-thread mock backend."""
import json
import sys
from pathlib import Path

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import mock_backend
from e2e_harness.api_client import AuthenticatedApiClient, build_http_client
from e2e_harness.config import CredentialResolver, load_settings
from e2e_harness.session_cache import SessionCache

STANDARD_EMAIL = "user@example.com"
STANDARD_PASSWORD = mock_backend.USERS[STANDARD_EMAIL]["password"]
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = mock_backend.USERS[ADMIN_EMAIL]["password"]


@pytest.fixture(scope="session")
def backend_server():
    """Mock backend shared by the whole test session."""
    server = mock_backend.MockBackendServer().start()
    yield server
    server.stop()


@pytest.fixture()
def backend(backend_server):
    """Mock backend with fresh state; returns the behaviour/counter dict."""
    mock_backend.reset_mock_state()
    yield mock_backend.STATE
    mock_backend.reset_mock_state()


@pytest.fixture()
def users_file(tmp_path):
    path = tmp_path / "e2e_users.json"
    path.write_text(
        json.dumps(
            {
                "users": {
                    "standard": {"email": STANDARD_EMAIL, "password": STANDARD_PASSWORD},
                    "admin": {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
                    "wrong": {"email": STANDARD_EMAIL, "password": "not-the-password"},
                }
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def settings(backend_server, users_file, tmp_path):
    environ = {
        "E2E_BASE_URL": backend_server.base_url,
        "E2E_DASHBOARD_PATH": "/dashboard",
        "E2E_REQUEST_TIMEOUT": "5",
        "E2E_LOGIN_TIMEOUT": "5",
    }
    return load_settings(environ=environ, users_file=users_file, search_dirs=[tmp_path])


@pytest.fixture()
def resolver(settings):
    return CredentialResolver(settings)


@pytest.fixture()
def cache():
    return SessionCache(name="test")


@pytest_asyncio.fixture()
async def http_client(settings):
    async with build_http_client(settings) as client:
        yield client


@pytest.fixture()
def api_client(settings, cache, resolver, http_client, backend):
    return AuthenticatedApiClient(settings, cache, resolver.resolve("standard"), http_client)


@pytest_asyncio.fixture()
async def playwright_client(settings, backend):
    """Real browser against the mock backend; skipped when no browser is installed."""
    from e2e_harness.browser import PlaywrightClient

    client = PlaywrightClient(settings, headless=True, timeout_ms=10000)
    try:
        await client.connect()
    except Exception as exc:
        await client.close()
        pytest.skip(f"Playwright browser not available: {exc}")
    yield client
    await client.close()
