"""
ICY metadata support for Internet radio streams

A server that honours the `Icy-MetaData: 1` request header interleaves a
metadata block into the audio body every `Icy-MetaInt` bytes:

    [interval audio bytes][L][16*L metadata bytes][interval audio bytes][L]...

L is a single byte; zero means the metadata did not change. A block is a
NUL padded list of Key='Value' pairs separated by semicolons:

    StreamTitle='Joy Division - Ceremony';StreamUrl='https://example.com';

IcyReader strips the blocks so the decoder only ever sees audio.
"""

import re
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from ..exceptions import InvalidMetadataLengthError, InvalidIntervalLengthError

MAX_METADATA_LENGTH = 1024
MAX_INTERVAL_LENGTH = 4 * 1024 * 1024

HEADER_BITRATE = "Icy-Br"
HEADER_DESCRIPTION = "Icy-Description"
HEADER_GENRE = "Icy-Genre"
HEADER_INTERVAL = "Icy-MetaInt"
HEADER_NAME = "Icy-Name"
HEADER_PUBLIC = "Icy-Pub"
HEADER_URL = "Icy-Url"

_META_PATTERN = re.compile(r'^(\w+)=["\'](.+)["\']$')


@dataclass
class IcyHeaders:
    """Static station metadata from the HTTP response headers"""
    bitrate: int = 0
    description: str = ""
    genre: str = ""
    interval: int = 0
    name: str = ""
    public: bool = False
    url: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional['IcyHeaders']:
        """
        Build from response headers

        Args:
            headers: Case-insensitive header mapping (requests' response.headers)

        Returns:
            IcyHeaders, or None when the response carries no Icy-MetaInt

        Raises:
            InvalidIntervalLengthError: If the interval is above 4 MiB
        """
        value = headers.get(HEADER_INTERVAL)
        if not value:
            return None
        interval = _to_int(value)
        if interval > MAX_INTERVAL_LENGTH:
            raise InvalidIntervalLengthError(
                f"Invalid ICY metadata interval {interval}",
                details={'interval': interval}
            )
        if interval <= 0:
            return None
        return cls(
            bitrate=_to_int(headers.get(HEADER_BITRATE, "")),
            description=headers.get(HEADER_DESCRIPTION, ""),
            genre=headers.get(HEADER_GENRE, ""),
            interval=interval,
            name=headers.get(HEADER_NAME, ""),
            public=headers.get(HEADER_PUBLIC, "").strip().lower() in ("1", "true"),
            url=headers.get(HEADER_URL, ""),
        )


@dataclass
class IcyMetadata:
    stream_title: str = ""
    stream_url: str = ""


def _to_int(value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def parse_metadata(block: bytes) -> IcyMetadata:
    """
    Parse a metadata block

    Unknown keys and malformed fragments are ignored.

    Args:
        block: Raw block including NUL padding

    Returns:
        Parsed metadata, fields empty when absent
    """
    text = block.rstrip(b'\x00').decode('utf-8', errors='replace')
    metadata = IcyMetadata()
    for part in text.split(';'):
        match = _META_PATTERN.match(part.strip('\x00'))
        if not match:
            continue
        name, value = match.group(1).lower(), match.group(2)
        if name == "streamtitle":
            metadata.stream_title = value
        elif name == "streamurl":
            metadata.stream_url = value
    return metadata


class IcyReader:
    """
    File-like reader returning only the audio bytes of an ICY stream

    Args:
        interval: Bytes of audio between metadata blocks
        reader: Underlying object with read(n) (e.g. response.raw)
        on_metadata: Called with IcyMetadata for every non-empty block

    Byte accounting: audio bytes returned plus 1 + 16*L per block always
    equals the bytes consumed from the underlying reader.
    """

    def __init__(self, interval: int, reader, on_metadata: Optional[Callable[[IcyMetadata], None]] = None):
        self.interval = interval
        self.reader = reader
        self.on_metadata = on_metadata
        self.offset = 0

    def _read_full(self, n: int) -> bytes:
        chunks = []
        remaining = n
        while remaining > 0:
            chunk = self.reader.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b''.join(chunks)

    def read(self, n: int = -1) -> bytes:
        """
        Read up to n bytes of audio

        A read never crosses a metadata boundary; the block that follows the
        returned audio is consumed before returning.

        Returns:
            Audio bytes, b'' at end of stream

        Raises:
            InvalidMetadataLengthError: If a block claims more than 1024 bytes
        """
        remaining = self.interval - self.offset
        if n is None or n < 0 or n > remaining:
            data = self._read_full(remaining)
        else:
            data = self.reader.read(n)
        if not data:
            return b''

        self.offset += len(data)
        if self.offset == self.interval:
            self._read_metadata()
        return data

    def _read_metadata(self) -> None:
        length_byte = self.reader.read(1)
        if not length_byte:
            # end of stream right at the boundary
            return
        length = length_byte[0] * 16
        if length > MAX_METADATA_LENGTH:
            raise InvalidMetadataLengthError(
                f"Invalid ICY metadata length {length}",
                details={'length': length}
            )
        if length > 0:
            block = self._read_full(length)
            metadata = parse_metadata(block)
            if self.on_metadata is not None:
                self.on_metadata(metadata)
        self.offset = 0

    def close(self) -> None:
        close = getattr(self.reader, 'close', None)
        if close is not None:
            close()
