"""Chat proxy: system prompt, model call and SSE encoding."""

from .service import ChatProxy, ChatReply, ChatRequest
from .sse import DONE_EVENT, content_event, encode_event, quote_event
from .transport import LocalProxyTransport

__all__ = [
    "DONE_EVENT",
    "ChatProxy",
    "ChatReply",
    "ChatRequest",
    "LocalProxyTransport",
    "content_event",
    "encode_event",
    "quote_event",
]
