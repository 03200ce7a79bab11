"""Tests for the API login strategy against the mock backend."""
import httpx
import pytest

from e2e_harness.api_client import build_http_client
from e2e_harness.authenticator import ApiAuthenticator
from e2e_harness.errors import ApiLoginError, ExtractionError, SessionEstablishmentError
from e2e_harness.models import Identity

pytestmark = pytest.mark.asyncio


@pytest.fixture()
def authenticator(settings, http_client, backend):
    return ApiAuthenticator(settings, http_client)


async def test_valid_credentials_yield_session(authenticator, resolver):
    context = await authenticator.authenticate(resolver.resolve("standard"))

    assert context.label == "standard"
    assert context.session_cookie
    assert context.csrf_token
    assert context.strategy == "api"


async def test_each_identity_gets_its_own_session(authenticator, resolver):
    standard = await authenticator.authenticate(resolver.resolve("standard"))
    admin = await authenticator.authenticate(resolver.resolve("admin"))

    assert standard.session_cookie != admin.session_cookie


async def test_invalid_credentials_raise_api_login_error(authenticator, resolver):
    with pytest.raises(ApiLoginError) as excinfo:
        await authenticator.authenticate(resolver.resolve("wrong"))

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == {"error": "Invalid credentials"}
    assert excinfo.value.label == "wrong"


async def test_payload_carries_terms_acceptance(authenticator, resolver):
    payload = authenticator.payload_for(resolver.resolve("standard"))
    assert payload == {"email": "user@example.com", "password": "Sup3rSecret!", "termsAccepted": True}


async def test_tokenless_success_is_a_broken_contract(authenticator, resolver, backend):
    backend["login_mode"] = "tokenless"

    with pytest.raises(SessionEstablishmentError, match="neither"):
        await authenticator.authenticate(resolver.resolve("standard"))


async def test_csrf_only_response_is_accepted_by_the_authenticator(authenticator, resolver, backend):
    backend["login_mode"] = "csrf_only"

    context = await authenticator.authenticate(resolver.resolve("standard"))

    assert context.session_cookie is None
    assert context.csrf_token


async def test_non_json_success_raises_extraction_error(authenticator, resolver, backend):
    backend["login_mode"] = "not_json"

    with pytest.raises(ExtractionError):
        await authenticator.authenticate(resolver.resolve("standard"))


async def test_transport_timeout_becomes_api_login_error(settings, resolver):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with build_http_client(settings, transport=httpx.MockTransport(handler)) as http:
        authenticator = ApiAuthenticator(settings, http)
        with pytest.raises(ApiLoginError) as excinfo:
            await authenticator.authenticate(resolver.resolve("standard"))

    assert excinfo.value.status_code is None


async def test_basic_auth_wrapper_is_sent(settings, resolver):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["authorization"] = request.headers.get("authorization")
        return httpx.Response(
            200,
            json={"user": {}},
            headers=[("set-cookie", "lgm-connect-sid=abc; Path=/")],
        )

    identity = Identity(
        label="wrapped",
        email="user@example.com",
        password="pw",
        http_auth_username="staging",
        http_auth_password="wrapper",
    )
    async with build_http_client(settings, transport=httpx.MockTransport(handler)) as http:
        context = await ApiAuthenticator(settings, http).authenticate(identity)

    assert context.session_cookie == "abc"
    assert seen["authorization"].startswith("Basic ")
