from .base import LLMProvider
from .factory import create_llm_provider
from .models import LLMMessage, LLMResponse, StreamingResponse, TokenUsage
from .openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "LLMMessage",
    "LLMResponse",
    "OpenAIProvider",
    "StreamingResponse",
    "TokenUsage",
]
