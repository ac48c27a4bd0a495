"""
Takeout service client

Request layer with bearer selection, the API surface with transparent
access token renewal, JSON-patch builders and the payload models.
"""

from .api import TakeoutClient, get_client, reset_client
from .models import (
    Playlist,
    Entry,
    Station,
    RadioView,
    HomeView,
    ProgressView,
    Offset,
    Events,
    TrackEvent,
    TYPE_MUSIC,
    TYPE_VIDEO,
    TYPE_PODCAST,
    TYPE_STREAM,
)
from .request import Bearer, Headers, RequestContext

__all__ = [
    'TakeoutClient',
    'get_client',
    'reset_client',
    'Playlist',
    'Entry',
    'Station',
    'RadioView',
    'HomeView',
    'ProgressView',
    'Offset',
    'Events',
    'TrackEvent',
    'TYPE_MUSIC',
    'TYPE_VIDEO',
    'TYPE_PODCAST',
    'TYPE_STREAM',
    'Bearer',
    'Headers',
    'RequestContext',
]
