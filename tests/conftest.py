import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from sesame_sso import InMemoryTTLStore, SesameSSO, SSOSettings

BASE_URL = "https://sso.example.com"
REDIRECT_URI = "https://app.example.com/callback"
CLIENT_ID = "client-123"
CLIENT_SECRET = "s3cr3t-value"


def form_body(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


@pytest.fixture()
def settings() -> SSOSettings:
    return SSOSettings(
        _env_file=None,
        sso_base_url=BASE_URL + "/",
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI,
    )


@pytest.fixture()
def store():
    store = InMemoryTTLStore()
    yield store
    store.stop()


@pytest.fixture()
def make_sso(settings):
    """Build SesameSSO clients whose HTTP calls go to a handler and are recorded."""
    created = []

    def factory(handler=None, settings_obj=None, state_store=None):
        calls: list[httpx.Request] = []

        def recorder(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if handler is None:
                return httpx.Response(500, json={"error": "unexpected_call"})
            return handler(request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        sso = SesameSSO(settings_obj or settings, state_store=state_store, http_client=http)
        created.append((sso, http))
        return sso, calls

    yield factory

    for sso, http in created:
        sso.destroy()
        asyncio.run(http.aclose())
