"""Data models shared across all components."""

from core.models.context import RequestContext
from core.models.messages import ChatMessage
from core.models.urls import FetchResult, UrlInfo

__all__ = [
    "ChatMessage",
    "FetchResult",
    "RequestContext",
    "UrlInfo",
]
