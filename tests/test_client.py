"""Tests for the Door43 HTTP client."""

import httpx
import pytest

from bookpackage.config import Settings
from bookpackage.errors import ExhaustedRetriesError, InvalidRecordError, NotFoundError
from bookpackage.ingest.client import Door43Client


def make_client(handler, settings=None, sleep=None):
    settings = settings or Settings(base_url="https://door43.test")
    kwargs = {"transport": httpx.MockTransport(handler)}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return Door43Client(settings, **kwargs)


class TestHeaders:
    def test_fixed_headers_without_token(self):
        client = Door43Client(Settings(user_agent="Agent/1"))
        headers = client.headers()
        assert headers["User-Agent"] == "Agent/1"
        assert headers["Content-Type"] == "application/json"
        assert "Authorization" not in headers

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={})

        async with make_client(handler, Settings(api_token="secret")) as client:
            await client.get_json("https://door43.test/api/v1/x")
        assert seen == ["Bearer secret"]


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_json_returns_none_on_404(self):
        async with make_client(lambda r: httpx.Response(404)) as client:
            assert await client.get_json("https://door43.test/missing") is None
            assert client.request_count == 1

    @pytest.mark.asyncio
    async def test_get_json_rejects_html_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(InvalidRecordError, match="Non-JSON"):
                await client.get_json("https://door43.test/api/v1/repos/o/n")

    @pytest.mark.asyncio
    async def test_get_raises_not_found(self):
        async with make_client(lambda r: httpx.Response(404)) as client:
            with pytest.raises(NotFoundError):
                await client.get("https://door43.test/missing")

    @pytest.mark.asyncio
    async def test_exists_uses_head(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(200 if request.url.path == "/there" else 404)

        async with make_client(handler) as client:
            assert await client.exists("https://door43.test/there")
            assert not await client.exists("https://door43.test/gone")
        assert methods == ["HEAD", "HEAD"]

    @pytest.mark.asyncio
    async def test_429_then_success_is_transparent(self, recording_sleep):
        statuses = [429, 200]

        def handler(request):
            return httpx.Response(statuses.pop(0), json={"ok": True})

        async with make_client(handler, sleep=recording_sleep) as client:
            assert await client.get_json("https://door43.test/x") == {"ok": True}
            assert client.request_count == 2
        assert recording_sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self, recording_sleep):
        async with make_client(
            lambda r: httpx.Response(503), sleep=recording_sleep
        ) as client:
            with pytest.raises(ExhaustedRetriesError):
                await client.get_json("https://door43.test/x")
            assert client.request_count == 3

    @pytest.mark.asyncio
    async def test_connection_errors_are_transient(self, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[1])

        async with make_client(handler, sleep=recording_sleep) as client:
            assert await client.get_json("https://door43.test/x") == [1]
        assert len(recording_sleep.delays) == 1
