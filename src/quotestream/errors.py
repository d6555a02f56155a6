"""Exception hierarchy for quotestream.

Only transport failures reach the user as errors. Malformed frames and quote
payloads are logged and skipped, never raised.
"""


class QuoteStreamError(Exception):
    """Base class for all quotestream errors."""


class StreamTransportError(QuoteStreamError):
    """The chat request failed at the network or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class IncompleteStreamError(StreamTransportError):
    """The response body ended before the [DONE] sentinel arrived."""


class ConversationStateError(QuoteStreamError):
    """An operation is not allowed in the conversation's current state."""


class QuoteBridgeError(QuoteStreamError):
    """A quote could not be handed to a persistence or export collaborator."""


class BookingError(QuoteStreamError):
    """A consultation booking was rejected."""
