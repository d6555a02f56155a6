"""Streaming protocol: SSE frame decoding and quote markup extraction."""

from .decoder import SSEFrameDecoder, decode_stream
from .extractor import (
    DroppedMarkup,
    Extraction,
    ExtractionUpdate,
    InlineTagGrammar,
    MarkupGrammar,
    PassthroughGrammar,
    QuoteMarkupExtractor,
    QuotePayload,
    TrailingSectionGrammar,
    extract,
    grammar_for,
)
from .frames import ContentFrame, DoneFrame, QuoteFrame, QuoteProtocol, StreamFrame

__all__ = [
    "ContentFrame",
    "DoneFrame",
    "DroppedMarkup",
    "Extraction",
    "ExtractionUpdate",
    "InlineTagGrammar",
    "MarkupGrammar",
    "PassthroughGrammar",
    "QuoteFrame",
    "QuoteMarkupExtractor",
    "QuotePayload",
    "QuoteProtocol",
    "SSEFrameDecoder",
    "StreamFrame",
    "TrailingSectionGrammar",
    "decode_stream",
    "extract",
    "grammar_for",
]
