"""
Playback engine

The Player drives a playlist track by track. All state changes happen on
the thread running start(); other threads (the CLI, signal handlers, the
speaker thread) only post events to its queue:

    ("action", Action)     next, skip forward/backward, pause, stop
    ("error", Exception)   a track failed
    ("metadata", ...)      ICY metadata arrived for the playing stream
    ("listen", ...)        the playing track passed its midpoint

Per-track procedure (_play):

1. Clamp the playlist index, an empty playlist stops the engine
2. Resolve the URL: stream entries are played from their location, other
   entries are located through the API with the media token
3. GET the media; streams ask for inline ICY metadata
4. Wrap stream bodies with the ICY reader when the server interleaves metadata
5. Decode by Content-Type or path suffix
6. Wrap with the mid-track notifier when a listen callback is set
7. Play decoded audio followed by a sentinel that posts Next when another
   track exists (or repeat is on) and Stop otherwise
8. Call on_track

Skips are deferred: the target index is recorded and the current stream is
closed, which lets the sentinel post Next; Next then consumes the target.
Errors never end the session, the default handler logs and advances.
"""

import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urlparse

import requests

from ..client.models import Entry, Playlist, TYPE_MUSIC, TYPE_PODCAST, TYPE_STREAM
from ..exceptions import PlayoutError, TransportError, error_check
from ..utils.logger import get_logger
from .decoder import AudioFormat, decode
from .icy import IcyHeaders, IcyMetadata, IcyReader
from .notify import MidTrackNotifier
from .source import BufferedSource
from .speaker import Callback, Ctrl, Seq, Speaker

logger = get_logger(__name__)

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_LENGTH = "Content-Length"
HEADER_ICY_METADATA = "Icy-MetaData"
HEADER_USER_AGENT = "User-Agent"


class Action(Enum):
    NEXT = "next"
    SKIP_FORWARD = "skip_forward"
    SKIP_BACKWARD = "skip_backward"
    PAUSE = "pause"
    STOP = "stop"


@dataclass
class PlayerOptions:
    """
    Engine configuration

    Attributes:
        repeat: Start over after the last track
        buffer: Output buffer duration in seconds
        on_track: Called with the player when a track starts or stream metadata changes
        on_listen: Called with the player once a track is half played
        on_pause: Called with the player when playback becomes paused
        on_error: Called with the player and the error when a track fails;
            replaces the default log-and-advance handler, which still runs
            when on_error raises
    """
    repeat: bool = False
    buffer: float = 1.0
    on_track: Optional[Callable[['Player'], None]] = None
    on_listen: Optional[Callable[['Player'], None]] = None
    on_pause: Optional[Callable[['Player'], None]] = None
    on_error: Optional[Callable[['Player', Exception], None]] = None


@dataclass
class Playing:
    """The open track: decoded audio, its format and stream metadata"""
    index: int
    format: Optional[AudioFormat] = None
    stream: Any = None
    ctrl: Optional[Ctrl] = None
    headers: Optional[IcyHeaders] = None
    metadata: IcyMetadata = field(default_factory=IcyMetadata)


class Player:
    """
    Playlist player

    Args:
        client: TakeoutClient used to locate media
        playlist: Playlist to play, its index is the first track
        options: Engine options, defaults when None
        speaker: Audio output, a Speaker on the default device when None
        session: requests session for media downloads, the client's by default
    """

    def __init__(self, client, playlist: Playlist, options: Optional[PlayerOptions] = None,
                 speaker=None, session: Optional[requests.Session] = None):
        self.client = client
        self.playlist = playlist
        self.options = options or PlayerOptions()
        self._owns_speaker = speaker is None
        self.speaker = speaker if speaker is not None else Speaker()
        self.session = session or client.session

        self._playing: Optional[Playing] = None
        self._events: "queue.Queue[Tuple[str, Any]]" = queue.Queue()
        self._done = threading.Event()
        self._skip_lock = threading.Lock()
        self._skip_to = -1
        self._awaiting_skip = False

    # Control, safe from any thread

    def next(self) -> None:
        self._events.put(("action", Action.NEXT))

    def skip_forward(self) -> None:
        self._events.put(("action", Action.SKIP_FORWARD))

    def skip_backward(self) -> None:
        self._events.put(("action", Action.SKIP_BACKWARD))

    def pause(self) -> None:
        self._events.put(("action", Action.PAUSE))

    def stop(self) -> None:
        self._events.put(("action", Action.STOP))

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the engine has stopped"""
        return self._done.wait(timeout)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    # Event loop

    def start(self) -> None:
        """
        Play the playlist from its current index

        Blocks until the engine stops: after the last track without repeat,
        or when stop() is called.
        """
        self._done.clear()
        try:
            self._play()
            while not self._done.is_set():
                kind, payload = self._events.get()
                if kind == "action":
                    self._handle_action(payload)
                elif kind == "error":
                    self._handle_error(payload)
                elif kind == "metadata":
                    self._handle_metadata(*payload)
                elif kind == "listen":
                    self._handle_listen(payload)
        finally:
            self._clear()
            self._done.set()
            if self._owns_speaker:
                self.speaker.close()

    def _handle_action(self, action: Action) -> None:
        if action == Action.NEXT:
            self._next()
        elif action == Action.SKIP_FORWARD:
            self._skip(forward=True)
        elif action == Action.SKIP_BACKWARD:
            self._skip(forward=False)
        elif action == Action.PAUSE:
            self._pause()
        elif action == Action.STOP:
            self._stop()

    def _handle_error(self, error: Exception) -> None:
        if self.options.on_error is not None:
            try:
                self.options.on_error(self, error)
                return
            except Exception as e:
                logger.error(f"Error handler failed: {e}")
        logger.warning(f"Track {self.playlist.index + 1} failed: {error}")
        if self.has_next() or self.options.repeat:
            self.next()
        else:
            self.stop()

    def _handle_metadata(self, playing: Playing, metadata: IcyMetadata) -> None:
        if playing is not self._playing:
            return
        playing.metadata = metadata
        logger.debug(f"Stream title: {metadata.stream_title}")
        self._fire(self.options.on_track)

    def _handle_listen(self, playing: Playing) -> None:
        if playing is not self._playing:
            return
        self._fire(self.options.on_listen)

    def _fire(self, callback: Optional[Callable[['Player'], None]]) -> None:
        if callback is None:
            return
        try:
            callback(self)
        except Exception as e:
            logger.error(f"Player callback failed: {e}")

    def _post_error(self, error: Exception) -> None:
        self._events.put(("error", error))

    # Transitions, engine thread only

    def _clear(self) -> None:
        """Tear down the playing track and drop queued audio"""
        self.speaker.clear()
        if self._playing is not None:
            if self._playing.stream is not None:
                self._playing.stream.close()
            self._playing = None

    def _stop(self) -> None:
        self._clear()
        self._done.set()

    def _next(self) -> None:
        with self._skip_lock:
            target = self._skip_to
            self._skip_to = -1
        self._awaiting_skip = False

        if target >= 0:
            index = target
        else:
            index = self.playlist.index + 1
            # repeat is decided by the sentinel
            if index >= self.length():
                index = 0
        self.playlist.index = index
        self._play()

    def _skip(self, forward: bool) -> None:
        length = self.length()
        with self._skip_lock:
            base = self._skip_to if self._skip_to >= 0 else self.playlist.index
            if forward:
                target = base + 1
                if target >= length:
                    target = 0
            else:
                target = max(0, base - 1)
            self._skip_to = target

        if self._awaiting_skip:
            return
        playing = self._playing
        if playing is not None and playing.stream is not None:
            # closing ends the stream, the sentinel then posts Next
            self._awaiting_skip = True
            if playing.ctrl is not None:
                playing.ctrl.paused = False
            playing.stream.close()
            self._playing = None
        else:
            self._next()

    def _pause(self) -> None:
        playing = self._playing
        if playing is None or playing.ctrl is None:
            return
        playing.ctrl.paused = not playing.ctrl.paused
        logger.debug("Paused" if playing.ctrl.paused else "Resumed")
        if playing.ctrl.paused:
            self._fire(self.options.on_pause)

    def _play(self) -> None:
        self._clear()

        length = self.length()
        index = self.playlist.index
        if index < 0 or index >= length:
            index = 0
        self.playlist.index = index

        if length == 0:
            logger.warning("Playlist is empty")
            self.stop()
            return

        entry = self.playlist.entries[index]
        playing = Playing(index=index)
        try:
            self._open(entry, playing)
        except Exception as e:
            self._post_error(e)
            return

        self._playing = playing
        try:
            buffer_size = int(playing.format.sample_rate * self._buffer_seconds())
            self.speaker.init(playing.format.sample_rate, buffer_size, playing.format.channels)
            self.speaker.play(Seq(playing.ctrl, Callback(self._sentinel(playing))))
        except Exception as e:
            self._clear()
            self._post_error(PlayoutError(f"Audio output failed: {e}", details={'original_error': e}))
            return

        self._fire(self.options.on_track)

    def _buffer_seconds(self) -> float:
        buffer = self.options.buffer
        return buffer if buffer and buffer > 0 else 1.0

    def _sentinel(self, playing: Playing) -> Callable[[], None]:
        """Completion callback, runs on the speaker thread"""
        def finished():
            error = playing.stream.err() if playing.stream is not None else None
            if error is not None:
                self._post_error(error)
            elif self.has_next() or self.options.repeat:
                self.next()
            else:
                self.stop()
        return finished

    def _resolve(self, entry: Entry) -> str:
        if not entry.location:
            raise PlayoutError(f"No location for {entry.title or 'entry'}")
        location = entry.location[0]
        if self.is_stream():
            parsed = urlparse(location)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise PlayoutError(f"Invalid stream URL: {location}")
            return location
        return self.client.locate(location)

    def _open(self, entry: Entry, playing: Playing) -> None:
        """
        Fetch and decode an entry into `playing`

        Raises:
            PlayoutError: Any failure resolving, fetching or decoding the track
        """
        url = self._resolve(entry)

        headers = {HEADER_USER_AGENT: self.client.user_agent()}
        if self.is_stream():
            headers[HEADER_ICY_METADATA] = "1"

        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, headers=headers, stream=True)
        except requests.RequestException as e:
            raise TransportError(f"Media request failed: {e}", details={'url': url, 'original_error': e})

        error = error_check(response.status_code)
        if error is not None:
            response.close()
            error.details['url'] = url
            raise error

        path = urlparse(url).path
        reader = response.raw
        reader.decode_content = True
        length = None
        if self.is_stream():
            try:
                playing.headers = IcyHeaders.from_headers(response.headers)
            except PlayoutError:
                response.close()
                raise
            if playing.headers is not None:
                reader = IcyReader(
                    playing.headers.interval, reader,
                    lambda metadata: self._events.put(("metadata", (playing, metadata)))
                )
        else:
            try:
                length = int(response.headers.get(HEADER_CONTENT_LENGTH, ""))
            except ValueError:
                length = None

        source = BufferedSource(reader, length, name=path)
        try:
            stream, audio_format = decode(source, response.headers.get(HEADER_CONTENT_TYPE), path)
        except Exception:
            source.close()
            raise

        if self.options.on_listen is not None:
            stream = MidTrackNotifier(stream, lambda: self._events.put(("listen", playing)))

        playing.format = audio_format
        playing.stream = stream
        playing.ctrl = Ctrl(stream, audio_format.channels)

    # State

    def has_next(self) -> bool:
        with self._skip_lock:
            if self._skip_to >= 0:
                return True
        return self.playlist.index + 1 < self.length()

    def index(self) -> int:
        return self.playlist.index

    def length(self) -> int:
        return len(self.playlist.entries)

    def current(self) -> Optional[Entry]:
        index = self.playlist.index
        if 0 <= index < self.length():
            return self.playlist.entries[index]
        return None

    def title(self) -> str:
        playing = self._playing
        if self.is_stream() and playing is not None and playing.metadata.stream_title:
            return playing.metadata.stream_title
        entry = self.current()
        return entry.title if entry else ""

    def artist(self) -> str:
        entry = self.current()
        return entry.creator if entry else ""

    def album(self) -> str:
        entry = self.current()
        return entry.album if entry else ""

    def image(self) -> str:
        entry = self.current()
        return entry.image if entry else ""

    def etag(self) -> str:
        entry = self.current()
        return entry.etag if entry else ""

    def icy_headers(self) -> Optional[IcyHeaders]:
        playing = self._playing
        return playing.headers if playing else None

    def is_stream(self) -> bool:
        return self.playlist.type == TYPE_STREAM

    def is_music(self) -> bool:
        return self.playlist.type == TYPE_MUSIC

    def is_podcast(self) -> bool:
        return self.playlist.type == TYPE_PODCAST

    def is_paused(self) -> bool:
        playing = self._playing
        return bool(playing and playing.ctrl and playing.ctrl.paused)

    def position(self) -> Tuple[float, float]:
        """
        Playback position of the current track

        Returns:
            (position, length) in whole seconds, (0, 0) when nothing plays;
            length is 0 for streams
        """
        playing = self._playing
        if playing is None or playing.stream is None or playing.format is None:
            return 0.0, 0.0
        pos = round(playing.format.duration(playing.stream.position()))
        length = round(playing.format.duration(playing.stream.length()))
        return float(pos), float(length)
