"""
Seekable byte source over a forward-only reader

libsndfile (through soundfile's virtual I/O) expects a file object it can
seek and ask for its size. HTTP bodies and ICY readers only go forward, so
BufferedSource keeps what has been read:

- Known length (Content-Length present): every byte is retained and any
  seek within the file works.
- Unknown length (radio streams): the size reported for SEEK_END is
  UNBOUNDED_LENGTH and only a trailing window is retained. Seeking back
  past the window raises io.UnsupportedOperation, and reads far beyond the
  data received so far (size checks near the reported end) return b'',
  or zero bytes when zero_fill_tail is set. The MPEG opener reads the last 128
  bytes looking for an ID3v1 tag and fails on a short read.

soundfile calls back into this object from C; an exception raised there
cannot propagate, so a failing reader is recorded in `error` and reported
as end of file.
"""

import io
import threading
from typing import Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024
WINDOW_SIZE = 1024 * 1024
UNBOUNDED_LENGTH = 2 ** 31 - 1


class BufferedSource:
    """
    File object adapter used as decoder input

    Args:
        reader: Object with read(n) and optionally close()
        length: Total size in bytes, None for an unbounded stream
        name: Informational name (URL path), used in log messages
    """

    def __init__(self, reader, length: Optional[int] = None, name: str = ""):
        self.reader = reader
        self.length = length
        self.name = name
        self.error: Optional[Exception] = None
        self._buffer = bytearray()
        self._base = 0
        self._pos = 0
        self._eof = False
        self._closed = False
        self.zero_fill_tail = False
        self._lock = threading.RLock()

    @property
    def unbounded(self) -> bool:
        return self.length is None

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def _end(self) -> int:
        return self._base + len(self._buffer)

    def _fill(self, upto: int) -> None:
        while not self._eof and self._end() < upto:
            try:
                chunk = self.reader.read(max(CHUNK_SIZE, upto - self._end()))
            except Exception as e:
                logger.debug(f"Read failed for {self.name}: {e}")
                self.error = e
                self._eof = True
                break
            if not chunk:
                self._eof = True
                break
            self._buffer.extend(chunk)
        if self.unbounded:
            self._trim()

    def _trim(self) -> None:
        keep_from = self._pos - WINDOW_SIZE
        if keep_from > self._base:
            del self._buffer[:keep_from - self._base]
            self._base = keep_from

    def read(self, n: int = -1) -> bytes:
        with self._lock:
            if self._closed:
                return b''
            if self.unbounded and self._pos > self._end() + WINDOW_SIZE:
                # size checks near the reported end of an endless stream
                if not self.zero_fill_tail or n is None or n <= 0:
                    return b''
                n = max(0, min(n, UNBOUNDED_LENGTH - self._pos))
                self._pos += n
                return bytes(n)
            if n is None or n < 0:
                if self.unbounded:
                    n = CHUNK_SIZE
                else:
                    n = max(0, self.length - self._pos)
            self._fill(self._pos + n)
            start = self._pos - self._base
            data = bytes(self._buffer[start:start + n])
            self._pos += len(data)
            return data

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        with self._lock:
            if whence == io.SEEK_SET:
                target = offset
            elif whence == io.SEEK_CUR:
                target = self._pos + offset
            elif whence == io.SEEK_END:
                size = UNBOUNDED_LENGTH if self.unbounded else self.length
                target = size + offset
            else:
                raise ValueError(f"Invalid whence: {whence}")

            if target < 0:
                raise ValueError(f"Negative seek position {target}")
            if target < self._base:
                raise io.UnsupportedOperation(
                    f"Cannot seek to {target}, data before {self._base} was discarded"
                )
            self._pos = target
            return self._pos

    def tell(self) -> int:
        return self._pos

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._buffer = bytearray()
        close = getattr(self.reader, 'close', None)
        if close is not None:
            try:
                close()
            except Exception as e:
                logger.debug(f"Close failed for {self.name}: {e}")
