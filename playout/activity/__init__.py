"""
Activity package
Reports playback to the Takeout server and to ListenBrainz
"""

from .listenbrainz import ListenBrainz, Track
from .reporter import ActivityReporter

__all__ = [
    'ListenBrainz',
    'Track',
    'ActivityReporter',
]
