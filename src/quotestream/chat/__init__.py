"""Chat front end: input sanitizing, rate limiting, conversation and session."""

from .conversation import ChatMessage, Conversation, MessageOrigin
from .rate_limiter import RateLimiter, ResetTimer
from .sanitizer import sanitize, sanitize_keystrokes
from .session import ChatSession, SendOutcome, SendResult, SessionCallback

__all__ = [
    "ChatMessage",
    "ChatSession",
    "Conversation",
    "MessageOrigin",
    "RateLimiter",
    "ResetTimer",
    "SendOutcome",
    "SendResult",
    "SessionCallback",
    "sanitize",
    "sanitize_keystrokes",
]
