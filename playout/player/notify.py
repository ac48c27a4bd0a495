"""
Mid-track notification

Wraps a decoded stream and fires a callback once playback has passed the
middle of the track. The engine uses it to report a listen.
"""

from typing import Callable, Optional, Tuple

import numpy as np


class MidTrackNotifier:
    """
    Decorator over a DecodedStream firing `callback` at most once

    The callback runs on the thread pulling samples (the speaker thread) and
    should only hand off work. Streams with unknown length never fire.
    """

    def __init__(self, inner, callback: Callable[[], None]):
        self.inner = inner
        self.callback = callback
        self.fired = False

    def stream(self, frames: int) -> Tuple[np.ndarray, bool]:
        samples, ok = self.inner.stream(frames)
        if not self.fired:
            length = self.inner.length()
            if length > 0 and self.inner.position() > length / 2:
                self.fired = True
                self.callback()
        return samples, ok

    def err(self) -> Optional[Exception]:
        return self.inner.err()

    def position(self) -> int:
        return self.inner.position()

    def length(self) -> int:
        return self.inner.length()

    def seek(self, frame: int) -> None:
        self.inner.seek(frame)

    def close(self) -> None:
        self.inner.close()
