"""Tests for activity reporting and ListenBrainz submission"""

from types import SimpleNamespace
from unittest.mock import Mock

import requests

from playout.activity.listenbrainz import ListenBrainz, SUBMIT_LISTENS_URL, Track
from playout.activity.reporter import ActivityReporter

from conftest import request_json


class ImmediateExecutor:
    """Executor running submitted work in the calling thread"""

    def submit(self, fn, *args):
        fn(*args)


def make_settings(track_activity=True, listenbrainz=True):
    return SimpleNamespace(activity=SimpleNamespace(
        enable_track_activity=track_activity,
        enable_listenbrainz=listenbrainz,
    ))


def make_player(stream=False, index=2, position=(42.0, 180.0)):
    player = Mock()
    player.is_stream.return_value = stream
    player.index.return_value = index
    player.position.return_value = position
    player.artist.return_value = "Gary Numan"
    player.album.return_value = "The Pleasure Principle"
    player.title.return_value = "Cars"
    player.etag.return_value = "etag-cars"
    return player


class TestActivityReporter:
    """Test callback translation"""

    def test_on_track_music(self):
        client = Mock()
        scrobbler = Mock()
        reporter = ActivityReporter(client, make_settings(), scrobbler=scrobbler, executor=ImmediateExecutor())

        reporter.on_track(make_player())

        client.position.assert_called_once_with(2, 0)
        scrobbler.submit_playing_now.assert_called_once_with(
            Track(artist="Gary Numan", album="The Pleasure Principle", title="Cars")
        )

    def test_on_track_stream(self):
        client = Mock()
        scrobbler = Mock()
        reporter = ActivityReporter(client, make_settings(), scrobbler=scrobbler, executor=ImmediateExecutor())

        reporter.on_track(make_player(stream=True))

        client.position.assert_not_called()
        scrobbler.submit_playing_now.assert_called_once()

    def test_on_pause(self):
        client = Mock()
        reporter = ActivityReporter(client, make_settings(), executor=ImmediateExecutor())

        reporter.on_pause(make_player())
        reporter.on_pause(make_player(stream=True))

        client.position.assert_called_once_with(2, 42.0)

    def test_on_listen(self):
        client = Mock()
        scrobbler = Mock()
        reporter = ActivityReporter(client, make_settings(), scrobbler=scrobbler, executor=ImmediateExecutor())

        reporter.on_listen(make_player())

        (events,), _ = client.track_activity.call_args
        assert len(events) == 1
        assert events[0].etag == "etag-cars"
        assert events[0].date.tzinfo is not None
        track, listened_at = scrobbler.submit_single.call_args[0]
        assert track.title == "Cars"
        assert isinstance(listened_at, int)

    def test_on_listen_disabled(self):
        client = Mock()
        scrobbler = Mock()
        settings = make_settings(track_activity=False, listenbrainz=False)
        reporter = ActivityReporter(client, settings, scrobbler=scrobbler, executor=ImmediateExecutor())

        reporter.on_listen(make_player())

        client.track_activity.assert_not_called()
        scrobbler.submit_single.assert_not_called()

    def test_failures_are_swallowed(self):
        client = Mock()
        client.position.side_effect = RuntimeError("server down")
        reporter = ActivityReporter(client, make_settings(), executor=ImmediateExecutor())

        reporter.on_track(make_player())

        client.position.assert_called_once()

    def test_default_executor(self):
        client = Mock()
        reporter = ActivityReporter(client, make_settings())

        reporter.on_track(make_player())
        reporter.close()

        client.position.assert_called_once_with(2, 0)


class TestListenBrainz:
    """Test listen submission"""

    def test_playing_now(self, session, server):
        server.route("POST", "/1/submit-listens", json_body={'status': 'ok'})
        lbz = ListenBrainz("lbz-token", session=session)

        assert lbz.submit_playing_now(Track("Low", "", "Lullaby"))

        request = server.requests[0]
        assert request.url == SUBMIT_LISTENS_URL
        assert request.headers['Authorization'] == 'Token lbz-token'
        assert request_json(request) == {
            'listen_type': 'playing_now',
            'payload': [{'track_metadata': {'artist_name': 'Low', 'track_name': 'Lullaby'}}],
        }

    def test_single(self, session, server):
        server.route("POST", "/1/submit-listens", json_body={'status': 'ok'})
        lbz = ListenBrainz("lbz-token", session=session)

        assert lbz.submit_single(Track("Low", "Secret Name", "Weight of Water"), 1700000000)

        body = request_json(server.requests[0])
        assert body['listen_type'] == 'single'
        assert body['payload'][0]['listened_at'] == 1700000000
        assert body['payload'][0]['track_metadata']['release_name'] == 'Secret Name'

    def test_failure_returns_false(self, session, server):
        server.route("POST", "/1/submit-listens", status=401)
        assert not ListenBrainz("bad", session=session).submit_playing_now(Track("a", "b", "c"))

    def test_transport_failure_returns_false(self, session, server):
        server.route("POST", "/1/submit-listens", lambda r: requests.ConnectionError("offline"))
        assert not ListenBrainz("t", session=session).submit_single(Track("a", "b", "c"), 1)
