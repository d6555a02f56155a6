"""Outbound chat requests to the proxy."""

from .chat_client import ChatProxyClient, ChatStream

__all__ = ["ChatProxyClient", "ChatStream"]
