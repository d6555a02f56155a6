"""In-process HTTP transport for the chat proxy.

Lets the chat client talk to a ChatProxy through httpx without a deployed
server: requests are answered by the proxy in the same event loop, with the
same status codes, headers and SSE body a hosted proxy would send.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator

import httpx
from pydantic import ValidationError

from ..config import PROTOCOL_HEADER, TECHNICAL_ERROR_NOTICE
from .service import ChatProxy, ChatRequest

logger = logging.getLogger(__name__)


class _ProxyByteStream(httpx.AsyncByteStream):
    """Response body that closes the proxy's generator when the client hangs up."""

    def __init__(self, events: AsyncGenerator[bytes, None]):
        self._events = events

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for event in self._events:
            yield event

    async def aclose(self) -> None:
        await self._events.aclose()


class LocalProxyTransport(httpx.AsyncBaseTransport):
    """httpx transport that serves chat requests from a ChatProxy.

    Example:
        transport = LocalProxyTransport(ChatProxy(llm))
        async with httpx.AsyncClient(transport=transport) as http:
            ...
    """

    def __init__(self, proxy: ChatProxy):
        self._proxy = proxy

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "POST":
            return httpx.Response(405, json={"error": "Method not allowed"})

        body = await request.aread()
        try:
            chat_request = ChatRequest.model_validate_json(body)
        except ValidationError as e:
            logger.warning("Rejected chat request: %d validation errors", e.error_count())
            return httpx.Response(400, json={"error": "Invalid chat request"})

        if not chat_request.stream:
            try:
                reply = await self._proxy.complete(chat_request.messages)
            except Exception:
                logger.exception("Error in chat proxy")
                return httpx.Response(500, json={"error": TECHNICAL_ERROR_NOTICE})
            return httpx.Response(200, json=reply.model_dump(by_alias=True))

        return httpx.Response(
            200,
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                PROTOCOL_HEADER: self._proxy.protocol.value,
            },
            stream=_ProxyByteStream(self._proxy.stream(chat_request.messages)),
        )

    async def aclose(self) -> None:
        await self._proxy.aclose()
