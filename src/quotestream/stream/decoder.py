"""Incremental decoder for the chat proxy's server-sent-event stream.

The decoder hides how raw response bytes become typed frames:
- UTF-8 characters split across reads are held until complete
- Partial lines are buffered and prefixed onto the next read
- Only `data:` lines are protocol; everything else is ignored
- A single malformed frame is dropped without ending the stream
"""

import codecs
import json
import logging
from collections.abc import AsyncIterator

from ..config import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from ..errors import IncompleteStreamError
from .frames import ContentFrame, DoneFrame, QuoteFrame, StreamFrame

logger = logging.getLogger(__name__)


class SSEFrameDecoder:
    """Turns chunks of an SSE response body into StreamFrames.

    Example:
        decoder = SSEFrameDecoder()
        for chunk in body_chunks:
            for frame in decoder.feed(chunk):
                handle(frame)
            if decoder.finished:
                break
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._finished = False

    @property
    def finished(self) -> bool:
        """True once the [DONE] sentinel has been decoded."""
        return self._finished

    def feed(self, chunk: bytes) -> list[StreamFrame]:
        """Decode one read from the response body.

        Args:
            chunk: Raw bytes as delivered by the transport

        Returns:
            Frames completed by this chunk, in order. A DoneFrame is always last;
            input after it is ignored.
        """
        if self._finished:
            return []

        text = self._pending + self._utf8.decode(chunk)
        lines = text.split("\n")
        # The last element is an unterminated line (or "" after a newline)
        self._pending = lines.pop()

        frames: list[StreamFrame] = []
        for line in lines:
            frame = self._parse_line(line.rstrip("\r"))
            if frame is None:
                continue
            frames.append(frame)
            if isinstance(frame, DoneFrame):
                self._finished = True
                self._pending = ""
                break
        return frames

    def _parse_line(self, line: str) -> StreamFrame | None:
        if not line.startswith(SSE_DATA_PREFIX):
            return None

        data = line[len(SSE_DATA_PREFIX):].strip()
        if data == SSE_DONE_SENTINEL:
            return DoneFrame()

        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed SSE frame: %.80r", data)
            return None

        if not isinstance(message, dict):
            logger.debug("Skipping non-object SSE frame: %.80r", data)
            return None

        frame_type = message.get("type")
        payload = message.get("data")

        if frame_type == "content":
            if not isinstance(payload, str):
                logger.debug("Skipping content frame without text data")
                return None
            return ContentFrame(text=payload)

        if frame_type == "quote_recommendation":
            if not isinstance(payload, dict):
                logger.debug("Skipping quote frame without object data")
                return None
            return QuoteFrame(payload=payload)

        logger.debug("Skipping SSE frame of unknown type %r", frame_type)
        return None


async def decode_stream(chunks: AsyncIterator[bytes]) -> AsyncIterator[StreamFrame]:
    """Decode an async byte stream into frames, stopping after the DoneFrame.

    Args:
        chunks: Async iterator over raw response body chunks

    Yields:
        Decoded frames; the last one is a DoneFrame

    Raises:
        IncompleteStreamError: If the body ends before [DONE]
    """
    decoder = SSEFrameDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
        if decoder.finished:
            return
    raise IncompleteStreamError("Chat stream ended before the [DONE] sentinel")
