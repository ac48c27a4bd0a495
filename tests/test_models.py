"""Test payload models"""

from datetime import datetime, timezone

from playout.client.models import (
    Events,
    EpisodeEvent,
    Offset,
    Playlist,
    RadioView,
    TrackEvent,
    TYPE_PODCAST,
)


class TestPlaylist:
    """Test playlist decoding"""

    def test_from_dict(self):
        playlist = Playlist.from_dict({
            'playlist': {
                'title': 'Episodes',
                'track': [{
                    '$ref': '/series/1',
                    'creator': 'Host',
                    'title': 'Pilot',
                    'location': ['/api/episodes/1/location'],
                    'identifier': ['e1'],
                    'size': [1024],
                }],
            },
            'index': 0,
            'position': 12.5,
            'type': 'podcast',
        })

        assert playlist.is_podcast()
        assert playlist.type == TYPE_PODCAST
        assert playlist.position == 12.5
        assert len(playlist) == 1
        entry = playlist.entries[0]
        assert entry.ref == '/series/1'
        assert entry.size == [1024]
        assert entry.etag == 'e1'

    def test_defaults(self):
        playlist = Playlist.from_dict({})
        assert playlist.index == -1
        assert playlist.is_music()
        assert playlist.entries == []


class TestOffset:
    """Test offset validity"""

    def test_valid(self):
        date = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert Offset(etag='e', offset=10, duration=100, date=date).is_valid()
        assert Offset(etag='e', offset=10, duration=0, date=date).is_valid()

    def test_invalid(self):
        date = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert not Offset(etag='', offset=10, date=date).is_valid()
        assert not Offset(etag='e', offset=-1, date=date).is_valid()
        assert not Offset(etag='e', offset=200, duration=100, date=date).is_valid()
        assert not Offset(etag='e', offset=10).is_valid()

    def test_zero_date_is_missing(self):
        offset = Offset.from_dict({'ETag': 'e', 'Offset': 1, 'Date': '0001-01-01T00:00:00Z'})
        assert offset.date is None


class TestRadioView:
    """Test station lookup"""

    def view(self):
        return RadioView.from_dict({
            'Artist': [{'ID': 1, 'Name': 'Joy Division Radio', 'Creator': 'Takeout'}],
            'Genre': [{'ID': 2, 'Name': 'Rock'}],
            'Similar': [{'ID': 3, 'Name': 'Rock'}],
            'Stream': [{'ID': 9, 'Name': 'Groove Salad', 'Creator': 'SomaFM'}],
        })

    def test_find_ignores_case(self):
        station = self.view().find('joy division radio')
        assert station.id == 1
        assert station.ref == '/music/radio/stations/1'

    def test_find_order(self):
        # Genre is searched before Similar
        assert self.view().find('ROCK').id == 2

    def test_find_stream(self):
        view = self.view()
        assert view.find('groove salad') is None
        assert view.find('groove salad', stream=True).creator == 'SomaFM'


class TestEvents:
    """Test activity serialization"""

    def test_to_dict(self):
        date = datetime(2024, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        events = Events(
            track_events=[TrackEvent(date=date, etag='t1', rid='r1')],
            episode_events=[EpisodeEvent(date=date, eid='ep1')],
        )

        assert events.to_dict() == {
            'MovieEvents': [],
            'ReleaseEvents': [],
            'EpisodeEvents': [{'Date': '2024-03-04T05:06:07Z', 'EID': 'ep1'}],
            'TrackEvents': [{'Date': '2024-03-04T05:06:07Z', 'RID': 'r1', 'RGID': '', 'ETag': 't1'}],
        }
