"""
Content providers.

Each provider answers ``search(query, ...)`` with scored ContentItems and
never raises; failures end in its synthetic fallback.
"""

from .base import SYNTHETIC_PENALTY, ContentProvider
from .internal import InternalEntityProvider
from .news import NewsAPIClient, NewsProvider
from .video import VideoAPIClient, VideoProvider

__all__ = [
    "SYNTHETIC_PENALTY",
    "ContentProvider",
    "InternalEntityProvider",
    "NewsAPIClient",
    "NewsProvider",
    "VideoAPIClient",
    "VideoProvider",
]
