"""Test configuration and fixtures"""

import io
import json
import struct
import threading
import wave
from urllib.parse import urlsplit

import numpy as np
import pytest
import requests
import soundfile as sf
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from playout.client.api import TakeoutClient
from playout.config.auth import TokenStore
from playout.player.speaker import Speaker

ENDPOINT = "http://takeout.test"


class RawBody(io.BytesIO):
    """Stand-in for urllib3's response.raw"""
    decode_content = False


def make_response(request, status=200, json_body=None, body=b'', headers=None):
    """Build a requests.Response for a prepared request"""
    response = requests.Response()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    if json_body is not None:
        body = json.dumps(json_body).encode('utf-8')
        response.headers.setdefault('Content-Type', 'application/json')
    response.raw = RawBody(body)
    response.url = request.url
    response.request = request
    response.encoding = 'utf-8'
    return response


class FakeServer(BaseAdapter):
    """
    Transport adapter answering from registered routes

    Handlers receive the prepared request and return a dict of
    make_response keyword arguments, or an exception to raise.
    Unknown routes answer 404.
    """

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.requests = []
        self._lock = threading.Lock()

    def route(self, method, path, handler=None, **response):
        self.routes[(method, path)] = handler or (lambda request: response)

    def calls(self, method, path):
        with self._lock:
            return [r for r in self.requests
                    if r.method == method and urlsplit(r.url).path == path]

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        with self._lock:
            self.requests.append(request)
        handler = self.routes.get((request.method, urlsplit(request.url).path))
        if handler is None:
            return make_response(request, status=404)
        result = handler(request)
        if isinstance(result, Exception):
            raise result
        return make_response(request, **result)

    def close(self):
        pass


def request_json(request):
    body = request.body
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    return json.loads(body)


def make_wav(seconds=0.1, sample_rate=8000, channels=1):
    """16-bit PCM WAV file bytes containing a quiet ramp"""
    frames = int(seconds * sample_rate)
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as w:
        w.setnchannels(channels)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        samples = []
        for i in range(frames):
            value = (i % 200) * 10
            samples.extend([value] * channels)
        w.writeframes(struct.pack(f'<{len(samples)}h', *samples))
    return buffer.getvalue()


def make_encoded(fmt, seconds=0.5, sample_rate=44100, channels=1):
    """Sine tone encoded by libsndfile as FLAC, OGG (Vorbis) or MP3"""
    t = np.arange(int(seconds * sample_rate)) / float(sample_rate)
    tone = (0.2 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    data = np.column_stack([tone] * channels)
    buffer = io.BytesIO()
    sf.write(buffer, data, sample_rate, format=fmt)
    return buffer.getvalue()


def icy_body(audio, interval, blocks=None):
    """
    Interleave ICY metadata into audio bytes

    blocks maps interval number to raw metadata text; other intervals get
    an empty block.
    """
    blocks = blocks or {}
    body = b''
    for n, start in enumerate(range(0, len(audio), interval)):
        chunk = audio[start:start + interval]
        body += chunk
        if len(chunk) < interval:
            break
        text = blocks.get(n)
        if text is None:
            body += b'\x00'
        else:
            units = (len(text) + 15) // 16
            body += bytes([units]) + text.ljust(units * 16, b'\x00')
    return body


class NullStream:
    """Output stream discarding samples, blocking while the speaker is held"""

    def __init__(self, speaker):
        self.speaker = speaker
        self.frames_written = 0

    def write(self, samples):
        self.speaker.flowing.wait()
        self.frames_written += len(samples)

    def stop(self):
        pass

    def close(self):
        pass


class FakeSpeaker(Speaker):
    """Speaker whose output stream discards audio instead of opening a device"""

    def __init__(self):
        super().__init__()
        self.inits = []
        self.flowing = threading.Event()
        self.flowing.set()

    def init(self, sample_rate, buffer_size, channels=2):
        with self._lock:
            self.inits.append((sample_rate, buffer_size, channels))
            if self._stream is None:
                self._stream = NullStream(self)
            self._params = (sample_rate, buffer_size, channels)
            if self._thread is None:
                self._running = True
                self._thread = threading.Thread(target=self._run, name="speaker", daemon=True)
                self._thread.start()

    def close(self):
        self.flowing.set()
        super().close()


@pytest.fixture
def server():
    """Fake Takeout server and media host"""
    return FakeServer()


@pytest.fixture
def session(server):
    """requests session routed to the fake server"""
    s = requests.Session()
    s.mount("http://", server)
    s.mount("https://", server)
    return s


@pytest.fixture
def token_store(tmp_path):
    """Paired token store in a temporary directory"""
    store = TokenStore(
        token_file=tmp_path / "tokens.yaml",
        endpoint=ENDPOINT,
        user_agent="Playout/test"
    )
    store.update_tokens("access1", "refresh1", "media1")
    return store


@pytest.fixture
def client(token_store, session):
    """Service client bound to the fake server"""
    return TakeoutClient(store=token_store, session=session)


@pytest.fixture
def speaker():
    s = FakeSpeaker()
    yield s
    s.close()


@pytest.fixture
def wav_bytes():
    return make_wav()
