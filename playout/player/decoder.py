"""
Decoder dispatch

Selects a decoder from the response Content-Type, falling back to the URL
path suffix, and opens the media with soundfile (libsndfile):

    FLAC        audio/flac, audio/x-flac, .flac
    MP3         audio/mp3, audio/mpeg, .mp3
    Ogg Vorbis  audio/ogg, .ogg
    WAV         audio/wav, .wav

A decoder yields a DecodedStream, pulled in blocks of float32 frames by the
speaker thread, and the AudioFormat needed to open the output device.
"""

import threading
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import soundfile as sf

from ..exceptions import DecoderError, DecoderUnknownError
from ..utils.logger import get_logger
from .source import BufferedSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class AudioFormat:
    sample_rate: int
    channels: int

    def duration(self, frames: int) -> float:
        """Seconds spanned by a number of frames"""
        if self.sample_rate <= 0:
            return 0.0
        return frames / float(self.sample_rate)


class DecodedStream:
    """
    Seekable stream of decoded audio frames

    Reads, seeks and close are serialized so the engine can close the stream
    while the speaker thread is pulling from it. Once closed every pull
    reports the end of the stream.

    Args:
        sound_file: Open soundfile.SoundFile in read mode
        source: Byte source backing the sound file, closed with the stream
    """

    def __init__(self, sound_file: sf.SoundFile, source: BufferedSource):
        self.sound_file = sound_file
        self.source = source
        self.channels = sound_file.channels
        self._error: Optional[Exception] = None
        self._closed = False
        self._position = 0
        self._lock = threading.Lock()

    def _empty(self) -> np.ndarray:
        return np.zeros((0, self.channels), dtype=np.float32)

    def stream(self, frames: int) -> Tuple[np.ndarray, bool]:
        """
        Pull up to `frames` frames

        Returns:
            (samples, ok) where samples has shape (n, channels); ok is False
            once the stream is exhausted, failed or closed
        """
        with self._lock:
            if self._closed or self._error is not None:
                return self._empty(), False
            try:
                samples = self.sound_file.read(frames, dtype='float32', always_2d=True)
            except Exception as e:
                self._error = e
                return self._empty(), False
            self._position += len(samples)
            if len(samples) == 0:
                if self.source.error is not None:
                    self._error = self.source.error
                return self._empty(), False
            return samples, True

    def err(self) -> Optional[Exception]:
        """The error that ended the stream early, if any"""
        return self._error

    def position(self) -> int:
        return self._position

    def length(self) -> int:
        """Total frames, 0 when unknown (unbounded streams)"""
        if self.source.unbounded:
            return 0
        try:
            return max(0, int(self.sound_file.frames))
        except Exception:
            return 0

    def seek(self, frame: int) -> None:
        with self._lock:
            if self._closed:
                return
            self._position = int(self.sound_file.seek(frame))

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self.sound_file.close()
            finally:
                self.source.close()

    @property
    def closed(self) -> bool:
        return self._closed


class Decoder:
    """
    Base decoder for one container format

    Subclasses name the libsndfile major formats they accept; a source
    that libsndfile identifies as something else is rejected. zero_fill_tail
    is copied to the source before opening, see BufferedSource.
    """

    name = ""
    formats: Tuple[str, ...] = ()
    zero_fill_tail = False

    def decode(self, source: BufferedSource) -> Tuple[DecodedStream, AudioFormat]:
        """
        Open the source

        Raises:
            DecoderError: If the media cannot be opened as this format
        """
        source.zero_fill_tail = self.zero_fill_tail
        try:
            sound_file = sf.SoundFile(source, mode='r')
        except Exception as e:
            cause = source.error or e
            raise DecoderError(
                f"{self.name} decoder failed for {source.name or 'stream'}: {cause}",
                details={'format': self.name, 'original_error': cause}
            )
        if self.formats and sound_file.format not in self.formats:
            actual = sound_file.format
            sound_file.close()
            raise DecoderError(
                f"{self.name} decoder got {actual} data",
                details={'format': self.name, 'actual': actual}
            )
        audio_format = AudioFormat(sample_rate=sound_file.samplerate, channels=sound_file.channels)
        logger.debug(
            f"{self.name} {audio_format.sample_rate}Hz {audio_format.channels}ch {source.name}"
        )
        return DecodedStream(sound_file, source), audio_format


class FlacDecoder(Decoder):
    name = "FLAC"
    formats = ("FLAC",)


class Mp3Decoder(Decoder):
    name = "MP3"
    formats = ("MP3", "MPEG")
    zero_fill_tail = True


class VorbisDecoder(Decoder):
    name = "Vorbis"
    formats = ("OGG",)


class WavDecoder(Decoder):
    name = "WAV"
    formats = ("WAV", "WAVEX")


CONTENT_TYPES = {
    "audio/flac": FlacDecoder,
    "audio/x-flac": FlacDecoder,
    "audio/mp3": Mp3Decoder,
    "audio/mpeg": Mp3Decoder,
    "audio/ogg": VorbisDecoder,
    "audio/wav": WavDecoder,
}

SUFFIXES = {
    ".flac": FlacDecoder,
    ".mp3": Mp3Decoder,
    ".ogg": VorbisDecoder,
    ".wav": WavDecoder,
}


def select_decoder(content_type: Optional[str], path: Optional[str]) -> Decoder:
    """
    Choose a decoder, Content-Type first then path suffix

    Args:
        content_type: Response Content-Type, parameters are ignored
        path: URL path of the media

    Raises:
        DecoderUnknownError: If neither selects a decoder
    """
    mime = (content_type or "").split(';')[0].strip().lower()
    if mime in CONTENT_TYPES:
        return CONTENT_TYPES[mime]()

    lowered = (path or "").lower()
    for suffix, decoder in SUFFIXES.items():
        if lowered.endswith(suffix):
            return decoder()

    raise DecoderUnknownError(
        f"Unsupported audio format: {content_type or 'unknown type'} ({path or 'no path'})",
        details={'content_type': content_type, 'path': path}
    )


def decode(source: BufferedSource, content_type: Optional[str], path: Optional[str]) -> Tuple[DecodedStream, AudioFormat]:
    """Select a decoder and open the source with it"""
    return select_decoder(content_type, path).decode(source)
