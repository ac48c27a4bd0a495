"""
Audio output

The Speaker owns a sounddevice output stream and a thread that pulls
float32 blocks from the queued streamers and writes them to the device.
A streamer is any object with

    stream(frames) -> (samples, ok)

returning an array of shape (n, channels) and False once exhausted. Three
combinators build the engine's audio graph:

    Seq(decoded, Callback(on_finished))   play a track, then call back
    Ctrl(streamer, channels)              pause gate, silence while paused

Pulls happen with the speaker lock held, so once clear() returns nothing
queued before it is pulled again and no stale Callback can fire.
"""

import threading
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from ..utils.logger import get_logger

logger = get_logger(__name__)

# Frames pulled per write, bounded so pause and skip stay responsive
MAX_BLOCK = 4096


def _empty(channels: int = 1) -> np.ndarray:
    return np.zeros((0, channels), dtype=np.float32)


class Seq:
    """Play streamers one after another within the same pull"""

    def __init__(self, *streamers):
        self.streamers = list(streamers)

    def stream(self, frames: int) -> Tuple[np.ndarray, bool]:
        chunks = []
        filled = 0
        while self.streamers and filled < frames:
            samples, ok = self.streamers[0].stream(frames - filled)
            if len(samples):
                chunks.append(samples)
                filled += len(samples)
            if not ok:
                self.streamers.pop(0)
            elif not len(samples):
                break
        if not chunks:
            return _empty(), bool(self.streamers)
        return np.concatenate(chunks), True


class Callback:
    """Streamer that runs `fn` once when reached and produces no samples"""

    def __init__(self, fn: Callable[[], None]):
        self.fn = fn
        self.called = False

    def stream(self, frames: int) -> Tuple[np.ndarray, bool]:
        if not self.called:
            self.called = True
            self.fn()
        return _empty(), False


class Ctrl:
    """Pause gate, returns silence without pulling while paused"""

    def __init__(self, streamer, channels: int):
        self.streamer = streamer
        self.channels = channels
        self.paused = False

    def stream(self, frames: int) -> Tuple[np.ndarray, bool]:
        if self.paused:
            return np.zeros((frames, self.channels), dtype=np.float32), True
        return self.streamer.stream(frames)


class Speaker:
    """
    Output device driven by a writer thread

    Args:
        device: sounddevice output device name or index, None for default
    """

    def __init__(self, device: Optional[Union[int, str]] = None):
        self.device = device
        self._stream = None
        self._params: Optional[Tuple[int, int, int]] = None
        self._streamers: List = []
        self._lock = threading.Lock()
        self._wakeup = threading.Condition(self._lock)
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def init(self, sample_rate: int, buffer_size: int, channels: int = 2) -> None:
        """
        Open the output stream, reopening it only when parameters change

        Args:
            sample_rate: Frames per second
            buffer_size: Output buffer in frames, sets the stream latency
            channels: Output channels
        """
        # loads PortAudio
        import sounddevice as sd

        params = (sample_rate, buffer_size, channels)
        with self._lock:
            if self._stream is not None and self._params == params:
                return
            self._close_stream()
            latency = buffer_size / float(sample_rate) if sample_rate else 'high'
            self._stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype='float32',
                device=self.device,
                latency=latency,
            )
            self._stream.start()
            self._params = params
            logger.debug(f"Output stream {sample_rate}Hz {channels}ch buffer {buffer_size}")

            if self._thread is None:
                self._running = True
                self._thread = threading.Thread(target=self._run, name="speaker", daemon=True)
                self._thread.start()

    def _block_size(self) -> int:
        if self._params is None:
            return MAX_BLOCK
        return max(1, min(MAX_BLOCK, self._params[1]))

    def play(self, *streamers) -> None:
        with self._lock:
            self._streamers.extend(streamers)
            self._wakeup.notify()

    def clear(self) -> None:
        with self._lock:
            self._streamers = []

    def _pull(self, frames: int) -> Optional[np.ndarray]:
        chunks = []
        for streamer in list(self._streamers):
            samples, ok = streamer.stream(frames)
            if len(samples):
                chunks.append(samples)
            if not ok and streamer in self._streamers:
                self._streamers.remove(streamer)
        if not chunks:
            return None
        if len(chunks) == 1:
            return chunks[0]
        # mix, padding shorter chunks with silence
        length = max(len(c) for c in chunks)
        width = max(c.shape[1] for c in chunks)
        mixed = np.zeros((length, width), dtype=np.float32)
        for chunk in chunks:
            mixed[:len(chunk), :chunk.shape[1]] += chunk
        return mixed

    def _run(self) -> None:
        while True:
            with self._lock:
                while self._running and not (self._streamers and self._stream is not None):
                    self._wakeup.wait(0.1)
                if not self._running:
                    return
                try:
                    samples = self._pull(self._block_size())
                except Exception as e:
                    logger.error(f"Audio pull failed: {e}")
                    self._streamers = []
                    continue
                stream = self._stream
            if samples is not None and stream is not None:
                try:
                    stream.write(samples)
                except Exception as e:
                    logger.debug(f"Audio write failed: {e}")

    def _close_stream(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.debug(f"Closing output stream failed: {e}")
            self._stream = None
            self._params = None

    def close(self) -> None:
        with self._lock:
            self._running = False
            self._streamers = []
            self._wakeup.notify_all()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.5)
        with self._lock:
            self._close_stream()
