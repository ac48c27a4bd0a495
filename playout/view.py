"""
Terminal view for the play command

Prints each track as it starts and keeps a single tqdm status line with the
playback position, refreshed every second while the player runs. KeyControl
maps single key presses to player controls.
"""

import os
import sys
import threading
from typing import Optional

import click
from tqdm import tqdm

from .utils.helpers import mmss, truncate_string
from .utils.logger import get_logger

logger = get_logger(__name__)

REFRESH_INTERVAL = 1.0


def track_line(player) -> str:
    """Non-empty artist, album and title joined by ' / '"""
    parts = [player.artist(), player.album(), player.title()]
    return " / ".join(p for p in parts if p)


class SimpleView:
    """
    Plain console view

    on_track and on_error are meant to be chained into the player options;
    start() and stop() bracket the session.
    """

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress
        self._player = None
        self._bar: Optional[tqdm] = None
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self, player) -> None:
        self._player = player
        self._stopped.clear()
        if not self.show_progress:
            return
        self._bar = tqdm(
            total=0,
            bar_format="{desc}",
            leave=False,
            dynamic_ncols=True,
        )
        self._thread = threading.Thread(target=self._refresh_loop, name="view", daemon=True)
        self._thread.start()

    def _refresh_loop(self) -> None:
        while not self._stopped.wait(REFRESH_INTERVAL):
            self.refresh()

    def status(self) -> str:
        player = self._player
        if player is None:
            return ""
        pos, length = player.position()
        state = " (paused)" if player.is_paused() else ""
        text = " / ".join(p for p in (player.artist(), player.title()) if p)
        if player.is_stream() or not length:
            return f"[{mmss(pos)}] {truncate_string(text, 60)}{state}"
        return f"[{mmss(pos)} - {mmss(length)}] {truncate_string(text, 60)}{state}"

    def refresh(self) -> None:
        with self._lock:
            if self._bar is None:
                return
            self._bar.set_description_str(self.status())

    def on_track(self, player) -> None:
        line = track_line(player)
        with self._lock:
            if self._bar is not None:
                self._bar.write(line)
            else:
                click.echo(line)
        self.refresh()

    def on_error(self, player, error: Exception) -> None:
        message = click.style(f"Error: {error}", fg='red')
        with self._lock:
            if self._bar is not None:
                self._bar.write(message)
            else:
                click.echo(message, err=True)
        logger.debug(f"Track {player.index() + 1} failed: {error}")

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        self._thread = None
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None


KEY_ACTIONS = {
    'n': 'skip_forward', '.': 'skip_forward', '>': 'skip_forward', '\x1b[C': 'skip_forward',
    'p': 'skip_backward', ',': 'skip_backward', '<': 'skip_backward', '\x1b[D': 'skip_backward',
    ' ': 'pause',
    'q': 'stop', 's': 'stop', '\x1b': 'stop',
}


class KeyControl:
    """
    Single key playback control

        n . > right   skip forward
        p , < left    skip backward
        space         pause / resume
        q s Esc       stop

    Keys are read with click.getchar on a daemon thread. click switches the
    terminal to raw mode for each read, so the settings in effect at start()
    are restored by stop() in case the process ends while a read is pending.
    """

    HELP = "Keys: n next, p previous, space pause, q quit"

    def __init__(self, player, getchar=click.getchar):
        self.player = player
        self.getchar = getchar
        self._thread: Optional[threading.Thread] = None
        self._terminal = None

    def handle(self, key: str) -> bool:
        """Apply a key press, returns False once playback was stopped"""
        action = KEY_ACTIONS.get(key)
        if action is None:
            return True
        logger.debug(f"Key {key!r}: {action}")
        getattr(self.player, action)()
        return action != 'stop'

    def run(self) -> None:
        while not self.player.done:
            try:
                key = self.getchar()
            except (KeyboardInterrupt, EOFError):
                # Ctrl-C arrives as a key while the terminal is raw
                self.player.stop()
                return
            if not self.handle(key):
                return

    def start(self) -> bool:
        """Start reading keys when stdin is a terminal"""
        if not sys.stdin.isatty():
            return False
        self._save_terminal()
        click.echo(self.HELP)
        self._thread = threading.Thread(target=self.run, name="keys", daemon=True)
        self._thread.start()
        return True

    def _save_terminal(self) -> None:
        if os.name != 'posix':
            return
        import termios
        fd = sys.stdin.fileno()
        self._terminal = (fd, termios.tcgetattr(fd))

    def stop(self) -> None:
        if self._terminal is None:
            return
        import termios
        fd, attributes = self._terminal
        self._terminal = None
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, attributes)
        except termios.error as e:
            logger.debug(f"Restoring terminal failed: {e}")
