"""quotestream: streaming consultant chat that builds priced project quotes."""

from .bridge import QuoteBridge
from .chat import ChatSession, Conversation, RateLimiter, SendOutcome, sanitize
from .client import ChatProxyClient
from .config import Settings
from .errors import (
    BookingError,
    ConversationStateError,
    IncompleteStreamError,
    QuoteBridgeError,
    QuoteStreamError,
    StreamTransportError,
)
from .quotes import ComplexityTier, QuoteAccumulator, QuoteItem, compute_price, normalize
from .stream import QuoteMarkupExtractor, QuoteProtocol, SSEFrameDecoder

__version__ = "0.1.0"

__all__ = [
    "BookingError",
    "ChatProxyClient",
    "ChatSession",
    "ComplexityTier",
    "Conversation",
    "ConversationStateError",
    "IncompleteStreamError",
    "QuoteAccumulator",
    "QuoteBridge",
    "QuoteBridgeError",
    "QuoteItem",
    "QuoteMarkupExtractor",
    "QuoteProtocol",
    "QuoteStreamError",
    "RateLimiter",
    "SSEFrameDecoder",
    "SendOutcome",
    "Settings",
    "StreamTransportError",
    "compute_price",
    "normalize",
    "sanitize",
]
