"""Tests for decoder dispatch and decoded streams"""

import io

import numpy as np
import pytest

from playout.exceptions import DecoderError, DecoderUnknownError
from playout.player.decoder import (
    AudioFormat,
    FlacDecoder,
    Mp3Decoder,
    VorbisDecoder,
    WavDecoder,
    decode,
    select_decoder,
)
from playout.player.source import BufferedSource

from conftest import make_encoded, make_wav


def source_for(data, name="/media/track.wav"):
    return BufferedSource(io.BytesIO(data), len(data), name=name)


class TestSelectDecoder:
    """Test decoder selection"""

    @pytest.mark.parametrize("content_type,decoder", [
        ("audio/flac", FlacDecoder),
        ("audio/x-flac", FlacDecoder),
        ("audio/mp3", Mp3Decoder),
        ("audio/mpeg", Mp3Decoder),
        ("audio/ogg", VorbisDecoder),
        ("audio/wav", WavDecoder),
        ("audio/mpeg; charset=binary", Mp3Decoder),
    ])
    def test_by_content_type(self, content_type, decoder):
        assert isinstance(select_decoder(content_type, "/x"), decoder)

    @pytest.mark.parametrize("path,decoder", [
        ("/music/a.flac", FlacDecoder),
        ("/music/a.MP3", Mp3Decoder),
        ("/music/a.ogg", VorbisDecoder),
        ("/music/a.wav", WavDecoder),
    ])
    def test_by_suffix(self, path, decoder):
        assert isinstance(select_decoder("application/octet-stream", path), decoder)

    def test_content_type_wins(self):
        assert isinstance(select_decoder("audio/flac", "/music/a.mp3"), FlacDecoder)

    def test_unknown(self):
        with pytest.raises(DecoderUnknownError):
            select_decoder("video/mp4", "/movie.mkv")
        with pytest.raises(DecoderUnknownError):
            select_decoder(None, None)


class TestDecode:
    """Test opening and pulling decoded audio"""

    def test_wav(self):
        data = make_wav(seconds=0.1, sample_rate=8000, channels=1)
        stream, audio_format = decode(source_for(data), "audio/wav", "/media/track.wav")

        assert audio_format == AudioFormat(sample_rate=8000, channels=1)
        assert stream.length() == 800

        total = 0
        while True:
            samples, ok = stream.stream(256)
            if not ok:
                break
            assert samples.dtype == np.float32
            assert samples.shape[1] == 1
            total += len(samples)

        assert total == 800
        assert stream.position() == 800
        assert stream.err() is None
        stream.close()
        assert stream.closed

    def test_stereo_by_suffix(self):
        data = make_wav(seconds=0.05, sample_rate=16000, channels=2)
        stream, audio_format = decode(source_for(data), None, "/media/track.wav")

        assert audio_format.channels == 2
        samples, ok = stream.stream(100)
        assert ok
        assert samples.shape == (100, 2)

    def test_closed_stream_ends(self):
        stream, _ = decode(source_for(make_wav()), "audio/wav", "")
        stream.close()
        samples, ok = stream.stream(100)
        assert not ok
        assert len(samples) == 0

    def test_format_mismatch(self):
        with pytest.raises(DecoderError):
            FlacDecoder().decode(source_for(make_wav()))

    def test_garbage(self):
        with pytest.raises(DecoderError):
            WavDecoder().decode(source_for(b'\x01\x02' * 500))


class TestCompressedFormats:
    """Test FLAC, Vorbis and MP3 with and without a known length"""

    @pytest.mark.parametrize("fmt,content_type,path", [
        ("FLAC", "audio/flac", "/media/a.flac"),
        ("OGG", "audio/ogg", "/media/a.ogg"),
        ("MP3", "audio/mpeg", "/live"),
    ])
    @pytest.mark.parametrize("known_length", [True, False])
    def test_decode(self, fmt, content_type, path, known_length):
        data = make_encoded(fmt, seconds=0.5, sample_rate=44100)
        length = len(data) if known_length else None
        source = BufferedSource(io.BytesIO(data), length, name=path)

        stream, audio_format = decode(source, content_type, path)

        assert audio_format == AudioFormat(sample_rate=44100, channels=1)
        total = 0
        while True:
            samples, ok = stream.stream(4096)
            if not ok:
                break
            total += len(samples)
        # MP3 adds encoder padding
        assert total >= 0.9 * 22050
        if known_length:
            assert stream.length() > 0
            assert stream.err() is None
        else:
            assert stream.length() == 0
        stream.close()

    def test_mp3_stream_zero_fills_tail(self):
        source = BufferedSource(io.BytesIO(make_encoded("MP3")), None, name="/live")
        Mp3Decoder().decode(source)
        assert source.zero_fill_tail

        source = BufferedSource(io.BytesIO(make_encoded("OGG")), None, name="/live")
        VorbisDecoder().decode(source)
        assert not source.zero_fill_tail

class TestAudioFormat:
    def test_duration(self):
        audio_format = AudioFormat(sample_rate=44100, channels=2)
        assert audio_format.duration(88200) == 2.0
