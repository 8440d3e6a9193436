import httpx
import pytest

from ticktick_cli.app import build_app
from ticktick_cli.config import Credentials
from ticktick_cli.errors import InvalidRegion
from ticktick_cli.tokens import MemoryTokenStore, TokenSet


def _fail(request):
    raise AssertionError(f"unexpected request to {request.url}")


def test_invalid_region_fails_before_any_request():
    http = httpx.AsyncClient(transport=httpx.MockTransport(_fail))
    creds = Credentials(client_id="id", client_secret="secret", region="moon")
    with pytest.raises(InvalidRegion):
        build_app(creds, MemoryTokenStore(), http)


@pytest.mark.asyncio
async def test_build_app_wires_region_and_store():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "inbox123456789", "name": "Inbox"}])

    store = MemoryTokenStore(TokenSet(access_token="tok", expires_at=4_102_444_800_000))
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    creds = Credentials(client_id="id", client_secret="secret", region="china")
    app = build_app(creds, store, http)

    rows = await app.projects.list()
    await app.aclose()

    assert rows[0]["id"] == "inbox123"
    assert str(seen[0].url) == "https://api.dida365.com/open/v1/project"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert app.auth.status()["authenticated"] is True
    assert http.is_closed
