"""Quote markup extraction from streamed assistant text.

This module hides the design decision of how quote recommendations are
embedded in the model's prose. Three grammars exist, one per wire protocol:

- PassthroughGrammar: the proxy already removed the markup
- InlineTagGrammar: [QUOTE_RECOMMENDATION]{...}[/QUOTE_RECOMMENDATION] blocks
  anywhere in the text
- TrailingSectionGrammar: blocks collected in a [QUOTE_SECTION] ... [/QUOTE_SECTION]
  section (deprecated)

Every grammar is a pure function of the accumulated buffer. The stateful
QuoteMarkupExtractor rescans the buffer on each fragment, reports the newly
visible display text, and emits each completed payload (and logs each dropped
block) exactly once, keyed by the buffer offset of its opening delimiter.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..config import (
    QUOTE_CLOSE_TAG,
    QUOTE_OPEN_TAG,
    QUOTE_SECTION_CLOSE_TAG,
    QUOTE_SECTION_OPEN_TAG,
)
from .frames import QuoteProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotePayload:
    """Raw JSON of one closed markup block."""

    offset: int
    raw: str


@dataclass(frozen=True)
class DroppedMarkup:
    """A markup block that yields no payload."""

    offset: int
    reason: str


@dataclass(frozen=True)
class Extraction:
    """Result of scanning a buffer."""

    display_text: str
    payloads: tuple[QuotePayload, ...] = ()
    dropped: tuple[DroppedMarkup, ...] = ()


@dataclass(frozen=True)
class ExtractionUpdate:
    """What changed after feeding a fragment to the extractor.

    Attributes:
        display_text: Full clean text so far
        delta: Text to append to what was shown before
        payloads: Payloads completed since the previous update
        replaced: True when display_text does not extend the previous text and
            the shown text must be replaced instead of appended to
    """

    display_text: str
    delta: str
    payloads: tuple[QuotePayload, ...]
    replaced: bool = False


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def _find_object_end(text: str, start: int) -> int | None:
    """Return the index just past the JSON object opening at text[start].

    Braces inside JSON strings are ignored. Returns None while the object is
    still incomplete.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _partial_token_length(text: str, tokens: tuple[str, ...]) -> int:
    """Length of the longest suffix of text that is a proper prefix of a token."""
    longest = 0
    for token in tokens:
        for size in range(min(len(token) - 1, len(text)), longest, -1):
            if token.startswith(text[-size:]):
                longest = size
                break
    return longest


class MarkupGrammar(ABC):
    """Strategy that separates display prose from quote markup."""

    @abstractmethod
    def scan(self, buffer: str, final: bool = False, base: int = 0) -> Extraction:
        """Scan a buffer.

        Args:
            buffer: Accumulated assistant text
            final: True once the stream has ended; incomplete markup and
                partial delimiters are then discarded, only a lone trailing
                "[" is released as prose
            base: Offset of buffer[0] within the full response, used to key payloads

        Returns:
            Extraction with clean display text, completed payloads and
            dropped blocks
        """


class PassthroughGrammar(MarkupGrammar):
    """Text is already clean; the proxy sends quotes as separate frames."""

    def scan(self, buffer: str, final: bool = False, base: int = 0) -> Extraction:
        return Extraction(display_text=buffer)


class InlineTagGrammar(MarkupGrammar):
    """Delimiter-bounded JSON blocks interleaved with prose.

    Each block is bounded by a balanced-brace scan from the opener, so a
    payload containing `}` or delimiter-like text inside a string cannot be
    cut short or glued to a neighbouring block.
    """

    def __init__(
        self,
        open_tag: str = QUOTE_OPEN_TAG,
        close_tag: str = QUOTE_CLOSE_TAG,
        extra_tokens: tuple[str, ...] = ()
    ):
        """Initialize the grammar.

        Args:
            open_tag: Opening delimiter
            close_tag: Closing delimiter
            extra_tokens: Further markers that must never reach the display
                (held back while partial, removed when complete)
        """
        self._open = open_tag
        self._close = close_tag
        self._hidden_tokens = (open_tag, close_tag, *extra_tokens)
        self._stray_tokens = (close_tag, *extra_tokens)

    def scan(self, buffer: str, final: bool = False, base: int = 0) -> Extraction:
        prose: list[str] = []
        payloads: list[QuotePayload] = []
        dropped: list[DroppedMarkup] = []
        pos = 0

        while True:
            start = buffer.find(self._open, pos)
            if start == -1:
                tail = buffer[pos:]
                held = _partial_token_length(tail, self._hidden_tokens)
                if final and held == 1:
                    # A lone "[" at the end is prose
                    held = 0
                prose.append(self._remove_stray_tokens(tail[:len(tail) - held]))
                break

            prose.append(self._remove_stray_tokens(buffer[pos:start]))
            payload, reason, resume = self._read_block(buffer, start, final)
            if payload is not None:
                payloads.append(QuotePayload(offset=base + start, raw=payload))
            if reason is not None:
                dropped.append(DroppedMarkup(offset=base + start, reason=reason))
            if resume is None:
                break
            pos = resume

        return Extraction(
            display_text="".join(prose),
            payloads=tuple(payloads),
            dropped=tuple(dropped)
        )

    def _remove_stray_tokens(self, text: str) -> str:
        for token in self._stray_tokens:
            while token in text:
                text = text.replace(token, "")
        return text

    def _read_block(
        self,
        buffer: str,
        start: int,
        final: bool
    ) -> tuple[str | None, str | None, int | None]:
        """Read the block whose opener is at buffer[start].

        Returns:
            (payload, reason, resume) where payload is the JSON substring of a
            closed block, reason says why a block was dropped, and resume is
            where prose continues (None when the rest of the buffer belongs to
            an unfinished or discarded block).
        """
        body = _skip_whitespace(buffer, start + len(self._open))
        if body >= len(buffer):
            return None, "empty block at end of reply" if final else None, None

        if buffer[body] != "{":
            close = buffer.find(self._close, body)
            if close == -1:
                return None, "unterminated block" if final else None, None
            return None, "block without a JSON object", close + len(self._close)

        end = _find_object_end(buffer, body)
        if end is None:
            return None, "truncated payload" if final else None, None

        after = _skip_whitespace(buffer, end)
        if buffer.startswith(self._close, after):
            return buffer[body:end], None, after + len(self._close)

        if not final and self._close.startswith(buffer[after:]):
            # Closing delimiter not (fully) arrived yet
            return None, None, None

        close = buffer.find(self._close, after)
        next_open = buffer.find(self._open, after)
        if close != -1 and (next_open == -1 or close < next_open):
            # Stray text between object and close delimiter is dropped
            return buffer[body:end], None, close + len(self._close)

        if next_open != -1:
            return None, "unterminated block before the next opener", next_open

        if not final:
            return None, None, None

        return None, "unterminated block", end


class TrailingSectionGrammar(MarkupGrammar):
    """Blocks segregated into a trailing section after the prose (deprecated).

    The section is removed from the display entirely and only its body is
    scanned for blocks. A closed section body is scanned as final.
    """

    def __init__(
        self,
        section_open: str = QUOTE_SECTION_OPEN_TAG,
        section_close: str = QUOTE_SECTION_CLOSE_TAG
    ):
        self._section_open = section_open
        self._section_close = section_close
        self._inline = InlineTagGrammar(extra_tokens=(section_open, section_close))

    def scan(self, buffer: str, final: bool = False, base: int = 0) -> Extraction:
        start = buffer.find(self._section_open)
        if start == -1:
            return self._inline.scan(buffer, final, base)

        head = self._inline.scan(buffer[:start], True, base)
        body_start = start + len(self._section_open)
        end = buffer.find(self._section_close, body_start)

        if end == -1:
            body = self._inline.scan(buffer[body_start:], final, base + body_start)
            return Extraction(
                display_text=head.display_text,
                payloads=head.payloads + body.payloads,
                dropped=head.dropped + body.dropped
            )

        body = self._inline.scan(buffer[body_start:end], True, base + body_start)
        rest_start = end + len(self._section_close)
        rest = self.scan(buffer[rest_start:], final, base + rest_start)
        return Extraction(
            display_text=head.display_text + rest.display_text,
            payloads=head.payloads + body.payloads + rest.payloads,
            dropped=head.dropped + body.dropped + rest.dropped
        )


def grammar_for(protocol: QuoteProtocol | str) -> MarkupGrammar:
    """Select the grammar matching a proxy's announced protocol."""
    protocol = QuoteProtocol(protocol)
    if protocol is QuoteProtocol.EXTRACTED:
        return PassthroughGrammar()
    if protocol is QuoteProtocol.SECTION:
        return TrailingSectionGrammar()
    return InlineTagGrammar()


def extract(
    buffer: str,
    final: bool = False,
    grammar: MarkupGrammar | None = None
) -> Extraction:
    """Scan a complete or partial buffer with the inline grammar by default."""
    extraction = (grammar or InlineTagGrammar()).scan(buffer, final)
    for drop in extraction.dropped:
        _log_dropped(drop)
    return extraction


def _log_dropped(drop: DroppedMarkup) -> None:
    logger.warning("Dropping quote markup at offset %d: %s", drop.offset, drop.reason)


class QuoteMarkupExtractor:
    """Incremental tag stripper for one assistant response.

    Example:
        extractor = QuoteMarkupExtractor()
        for fragment in fragments:
            update = extractor.feed(fragment)
            show(update.delta)
            for payload in update.payloads:
                handle(payload.raw)
        final = extractor.finish()
    """

    def __init__(self, grammar: MarkupGrammar | None = None):
        self._grammar = grammar or InlineTagGrammar()
        self._buffer = ""
        self._display = ""
        self._emitted: set[int] = set()
        self._reported: set[int] = set()
        self._finished = False

    @property
    def buffer(self) -> str:
        """Raw accumulated response, markup included."""
        return self._buffer

    @property
    def display_text(self) -> str:
        """Clean text computed by the most recent scan."""
        return self._display

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, fragment: str) -> ExtractionUpdate:
        """Append a fragment and rescan the buffer.

        Raises:
            RuntimeError: If called after finish()
        """
        if self._finished:
            raise RuntimeError("Extractor already finished")
        self._buffer += fragment
        return self._apply(self._grammar.scan(self._buffer, final=False))

    def finish(self) -> ExtractionUpdate:
        """Final rescan of the whole buffer at end of stream.

        Catches blocks completed by the very last fragment and settles any
        held-back text. Idempotent.
        """
        self._finished = True
        return self._apply(self._grammar.scan(self._buffer, final=True))

    def _apply(self, extraction: Extraction) -> ExtractionUpdate:
        fresh = tuple(p for p in extraction.payloads if p.offset not in self._emitted)
        self._emitted.update(p.offset for p in fresh)
        for drop in extraction.dropped:
            if drop.offset not in self._reported:
                self._reported.add(drop.offset)
                _log_dropped(drop)

        previous = self._display
        self._display = extraction.display_text
        if self._display.startswith(previous):
            return ExtractionUpdate(
                display_text=self._display,
                delta=self._display[len(previous):],
                payloads=fresh
            )

        logger.debug("Display text rewritten by rescan (%d -> %d chars)", len(previous), len(self._display))
        return ExtractionUpdate(
            display_text=self._display,
            delta=self._display,
            payloads=fresh,
            replaced=True
        )
