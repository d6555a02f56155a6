"""Server-sent-event encoding for the chat proxy."""

import json
from typing import Any

from ..config import SSE_DONE_SENTINEL


def encode_event(data: str | dict[str, Any]) -> bytes:
    """Encode one `data:` event, terminated by a blank line."""
    if not isinstance(data, str):
        data = json.dumps(data, ensure_ascii=False)
    return f"data: {data}\n\n".encode()


def content_event(text: str) -> bytes:
    return encode_event({"type": "content", "data": text})


def quote_event(recommendation: dict[str, Any]) -> bytes:
    return encode_event({"type": "quote_recommendation", "data": recommendation})


DONE_EVENT = encode_event(SSE_DONE_SENTINEL)
