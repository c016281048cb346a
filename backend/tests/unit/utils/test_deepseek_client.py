"""
Unit Tests for DeepSeekClient (httpx.MockTransport)
"""
import json

import httpx
import pytest
from unittest.mock import patch

from patchstream.core.exceptions import ProviderConfigError, UpstreamError
from patchstream.utils.deepseek_client import DeepSeekClient


def sse(*frames):
    return "".join(f"data: {frame}\n\n" for frame in frames).encode()


def make_client(handler, base_url="https://api.deepseek.com"):
    return DeepSeekClient("sk-test", base_url=base_url, transport=httpx.MockTransport(handler))


class TestConstruction:
    """Test client setup"""

    def test_requires_api_key(self):
        with pytest.raises(ProviderConfigError) as exc_info:
            DeepSeekClient("   ")
        assert exc_info.value.code == "PROVIDER_NOT_CONFIGURED"

    def test_from_settings_without_key(self):
        with patch("patchstream.utils.deepseek_client.settings") as mock_settings:
            mock_settings.has_deepseek_key = False
            with pytest.raises(ProviderConfigError):
                DeepSeekClient.from_settings()

    def test_base_url_gets_v1(self):
        client = make_client(lambda request: httpx.Response(200, json={}), base_url="https://proxy.local/")
        assert client.base_url == "https://proxy.local/v1"


class TestCreateChatCompletion:
    """Test non-streaming requests"""

    @pytest.mark.asyncio
    async def test_posts_payload_with_bearer_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "hi"}}]})

        async with make_client(handler) as client:
            response = await client.create_chat_completion({"model": "deepseek-chat", "messages": []})

        assert response["choices"][0]["message"]["content"] == "hi"
        assert seen["url"] == "https://api.deepseek.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"model": "deepseek-chat", "messages": [], "stream": False}

    @pytest.mark.asyncio
    async def test_error_body_becomes_upstream_error(self):
        handler = lambda request: httpx.Response(400, text='{"error": "bad response_format"}')

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.create_chat_completion({"model": "m"})

        assert exc_info.value.upstream_status == 400
        assert "bad response_format" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_error_body_uses_status(self):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.create_chat_completion({"model": "m"})

        assert exc_info.value.message == "DeepSeek request failed (503)"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.create_chat_completion({"model": "m"})

        assert exc_info.value.code == "UPSTREAM_ERROR"


class TestStreaming:
    """Test SSE streaming"""

    @pytest.mark.asyncio
    async def test_yields_frames_until_done(self):
        body = sse(
            json.dumps({"choices": [{"delta": {"content": "[[START_FILE: a.js]]"}}]}),
            ": keep-alive",
            "not json",
            json.dumps({"choices": [{"delta": {"content": "x"}}]}),
            "[DONE]",
            json.dumps({"choices": [{"delta": {"content": "after done"}}]}),
        )

        def handler(request):
            assert json.loads(request.content)["stream"] is True
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        async with make_client(handler) as client:
            deltas = [d async for d in client.iter_content_deltas({"model": "m"})]

        assert deltas == ["[[START_FILE: a.js]]", "x"]

    @pytest.mark.asyncio
    async def test_last_frame_without_blank_line(self):
        body = b'data: {"choices": [{"delta": {"content": "tail"}}]}'
        async with make_client(lambda request: httpx.Response(200, content=body)) as client:
            frames = [f async for f in client.stream_chat_completion({"model": "m"})]

        assert frames == [{"choices": [{"delta": {"content": "tail"}}]}]

    @pytest.mark.asyncio
    async def test_stream_error_status(self):
        async with make_client(lambda request: httpx.Response(401, text="invalid key")) as client:
            with pytest.raises(UpstreamError) as exc_info:
                async for _ in client.stream_chat_completion({"model": "m"}):
                    pass

        assert exc_info.value.upstream_status == 401
        assert exc_info.value.message == "invalid key"
