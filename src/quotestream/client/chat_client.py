"""HTTP client for the chat proxy.

Hides the transport: request encoding, status handling, the capability
header, and conversion of httpx failures into StreamTransportError. Failures
are never retried; the user resends.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from pydantic import ValidationError

from ..config import PROTOCOL_HEADER
from ..errors import StreamTransportError
from ..llm import LLMMessage
from ..proxy import ChatProxy, ChatReply, LocalProxyTransport
from ..stream import QuoteProtocol, StreamFrame, decode_stream

logger = logging.getLogger(__name__)

LOCAL_PROXY_URL = "http://proxy.local/chat"


class ChatStream:
    """An open streaming response."""

    def __init__(self, response: httpx.Response):
        self._response = response
        self.protocol = QuoteProtocol.from_header(response.headers.get(PROTOCOL_HEADER))

    async def frames(self) -> AsyncIterator[StreamFrame]:
        """Decoded frames up to and including the DoneFrame.

        Raises:
            StreamTransportError: On network failure or a body without [DONE]
        """
        try:
            async for frame in decode_stream(self._response.aiter_bytes()):
                yield frame
        except httpx.HTTPError as e:
            logger.error("Chat stream interrupted: %s", e)
            raise StreamTransportError(f"Chat stream interrupted: {e}") from e


class ChatProxyClient:
    """Sends the conversation to the chat proxy.

    Example:
        async with ChatProxyClient("https://example.org/functions/v1/chat-with-ai") as client:
            async with client.stream_chat(history) as stream:
                async for frame in stream.frames():
                    ...
    """

    def __init__(
        self,
        url: str,
        http_client: httpx.AsyncClient | None = None,
        read_timeout: float | None = 60.0,
        headers: dict[str, str] | None = None
    ):
        """Initialize the client.

        Args:
            url: Chat proxy endpoint
            http_client: Preconfigured client (its lifecycle stays with the caller)
            read_timeout: Idle seconds between body chunks; None waits forever
            headers: Extra request headers (e.g. an API key for a hosted proxy)
        """
        self._url = url
        self._headers = headers or {}
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=read_timeout)
        )

    @classmethod
    def in_process(cls, proxy: ChatProxy, read_timeout: float | None = 60.0) -> "ChatProxyClient":
        """Client whose requests are served by a ChatProxy in this process."""
        client = cls(
            LOCAL_PROXY_URL,
            http_client=httpx.AsyncClient(
                transport=LocalProxyTransport(proxy),
                timeout=httpx.Timeout(10.0, read=read_timeout),
            ),
        )
        client._owns_http = True
        return client

    @staticmethod
    def _body(messages: list[LLMMessage], stream: bool) -> dict:
        return {"messages": [m.model_dump() for m in messages], "stream": stream}

    @asynccontextmanager
    async def stream_chat(self, messages: list[LLMMessage]) -> AsyncIterator[ChatStream]:
        """Open a streaming chat request.

        Leaving the context closes the response and releases the connection,
        including when the caller is cancelled mid-stream.

        Raises:
            StreamTransportError: On connection failure or a non-OK status
        """
        try:
            async with self._http.stream(
                "POST",
                self._url,
                json=self._body(messages, stream=True),
                headers={"Accept": "text/event-stream", **self._headers},
            ) as response:
                if not response.is_success:
                    await response.aread()
                    logger.error("Chat proxy returned HTTP %d", response.status_code)
                    raise StreamTransportError(
                        f"Chat proxy returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                yield ChatStream(response)
        except httpx.HTTPError as e:
            logger.error("Chat request failed: %s", e)
            raise StreamTransportError(f"Chat request failed: {e}") from e

    async def complete(self, messages: list[LLMMessage]) -> ChatReply:
        """Non-streaming request returning the whole reply.

        Raises:
            StreamTransportError: On connection failure, a non-OK status or an
                unreadable body
        """
        try:
            response = await self._http.post(
                self._url,
                json=self._body(messages, stream=False),
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.error("Chat request failed: %s", e)
            raise StreamTransportError(f"Chat request failed: {e}") from e

        if not response.is_success:
            logger.error("Chat proxy returned HTTP %d", response.status_code)
            raise StreamTransportError(
                f"Chat proxy returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return ChatReply.model_validate_json(response.content)
        except ValidationError as e:
            raise StreamTransportError("Chat proxy returned an unreadable reply") from e

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ChatProxyClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
