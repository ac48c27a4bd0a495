"""
Activity reporter

Translates playback engine callbacks into server and ListenBrainz calls:

- on_track: record position 0 for non-stream playlists, send "playing now"
- on_pause: record the paused position for non-stream playlists
- on_listen: record a track event and/or submit a ListenBrainz listen

Every call runs on a small worker pool so the engine thread never waits on
the network. Failures are logged at debug level and otherwise ignored; the
server deduplicates activity by timestamp.
"""

import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from ..client.models import TrackEvent
from ..config.settings import get_settings
from ..utils.helpers import utc_now
from ..utils.logger import get_logger
from .listenbrainz import ListenBrainz, Track


class ActivityReporter:
    """
    Player callbacks emitting activity

    Args:
        client: TakeoutClient for position and activity calls
        settings: Settings, the global ones by default
        scrobbler: ListenBrainz client, None disables scrobbling
        executor: Executor for the calls, a two worker pool by default
    """

    def __init__(self, client, settings=None, scrobbler: Optional[ListenBrainz] = None,
                 executor: Optional[Executor] = None):
        self.client = client
        self.settings = settings or get_settings()
        self.scrobbler = scrobbler
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="activity")
        self.logger = get_logger(__name__)

    def _submit(self, description: str, fn: Callable, *args) -> None:
        def run():
            try:
                fn(*args)
            except Exception as e:
                self.logger.debug(f"{description} failed: {e}")
        self.executor.submit(run)

    @staticmethod
    def _track(player) -> Track:
        return Track(artist=player.artist(), album=player.album(), title=player.title())

    def on_track(self, player) -> None:
        if not player.is_stream():
            self._submit("Position", self.client.position, player.index(), 0)
        if self.scrobbler is not None:
            self._submit("Playing now", self.scrobbler.submit_playing_now, self._track(player))

    def on_pause(self, player) -> None:
        if player.is_stream():
            return
        pos, _ = player.position()
        self._submit("Position", self.client.position, player.index(), pos)

    def on_listen(self, player) -> None:
        activity = self.settings.activity
        if activity.enable_track_activity:
            event = TrackEvent(date=utc_now(), etag=player.etag())
            self._submit("Track activity", self.client.track_activity, [event])
        if activity.enable_listenbrainz and self.scrobbler is not None:
            self._submit("Listen", self.scrobbler.submit_single, self._track(player), int(time.time()))

    def close(self, wait: bool = True) -> None:
        """Shut down the worker pool, letting queued calls finish"""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
