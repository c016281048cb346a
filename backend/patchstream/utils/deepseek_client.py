"""
DeepSeek client - OpenAI-compatible chat completions over httpx

Constructed by the entry point and injected into the orchestrator as
``client.create_chat_completion``; there is no module-level instance.
"""

import json
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from patchstream.core.config import normalize_deepseek_base_url, settings
from patchstream.core.exceptions import ProviderConfigError, UpstreamError
from patchstream.core.logging_config import logger
from patchstream.utils.response_parser import extract_delta_content


SSE_DONE = "[DONE]"


class DeepSeekClient:
    """Async chat-completion client for DeepSeek (or any OpenAI-compatible API)"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        request_timeout: float = 300.0,
        connect_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not api_key.strip():
            raise ProviderConfigError()

        self.base_url = normalize_deepseek_base_url(base_url)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key.strip()}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=request_timeout,
                write=request_timeout,
                pool=request_timeout,
            ),
            transport=transport,
        )
        logger.info(f"DeepSeek client initialized: base_url={self.base_url}, timeout={request_timeout}s")

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "DeepSeekClient":
        if not settings.has_deepseek_key:
            raise ProviderConfigError()
        timeouts = settings.get_timeouts()
        return cls(
            api_key=settings.DEEPSEEK_API_KEY,
            base_url=settings.DEEPSEEK_BASE_URL,
            request_timeout=timeouts["read"],
            connect_timeout=timeouts["connect"],
            transport=transport,
        )

    async def __aenter__(self) -> "DeepSeekClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _error_from_response(status_code: int, body: str) -> UpstreamError:
        message = body.strip() or f"DeepSeek request failed ({status_code})"
        return UpstreamError(message, upstream_status=status_code)

    async def create_chat_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /chat/completions and return the decoded response"""
        body = {**payload, "stream": False}
        try:
            response = await self.client.post("/chat/completions", json=body)
        except httpx.RequestError as e:
            logger.warning(f"DeepSeek request error: {type(e).__name__}: {e}")
            raise UpstreamError(f"DeepSeek request failed: {e}") from e

        if response.is_error:
            logger.warning(f"DeepSeek returned {response.status_code} for model {payload.get('model')}")
            raise self._error_from_response(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("DeepSeek returned a non-JSON response", upstream_status=response.status_code) from e

    async def stream_chat_completion(self, payload: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        """
        POST /chat/completions with ``stream: true`` and yield each SSE JSON frame.

        Frames are separated by blank lines; only ``data:`` lines are read,
        ``[DONE]`` ends the stream and frames that are not JSON are skipped.
        """
        body = {**payload, "stream": True}
        try:
            async with self.client.stream("POST", "/chat/completions", json=body) as response:
                if response.is_error:
                    text = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._error_from_response(response.status_code, text)

                buffer = ""
                async for text in response.aiter_text():
                    buffer += text.replace("\r\n", "\n")
                    while "\n\n" in buffer:
                        frame, buffer = buffer.split("\n\n", 1)
                        data = self._frame_data(frame)
                        if data is None:
                            continue
                        if data == SSE_DONE:
                            return
                        decoded = self._decode_frame(data)
                        if decoded is not None:
                            yield decoded

                data = self._frame_data(buffer)
                if data and data != SSE_DONE:
                    decoded = self._decode_frame(data)
                    if decoded is not None:
                        yield decoded
        except httpx.RequestError as e:
            logger.warning(f"DeepSeek stream error: {type(e).__name__}: {e}")
            raise UpstreamError(f"DeepSeek stream failed: {e}") from e

    async def iter_content_deltas(self, payload: Dict[str, Any]) -> AsyncIterator[str]:
        """Text deltas (``choices[0].delta.content``) of a streamed completion"""
        async for frame in self.stream_chat_completion(payload):
            delta = extract_delta_content(frame)
            if delta:
                yield delta

    @staticmethod
    def _frame_data(frame: str) -> Optional[str]:
        lines = [
            line[len("data:"):].strip()
            for line in frame.split("\n")
            if line.startswith("data:")
        ]
        if not lines:
            return None
        return "\n".join(lines)

    @staticmethod
    def _decode_frame(data: str) -> Optional[Dict[str, Any]]:
        try:
            decoded = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping non-JSON SSE frame: {data[:80]!r}")
            return None
        return decoded if isinstance(decoded, dict) else None
