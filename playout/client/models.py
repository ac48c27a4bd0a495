"""
Data models for Takeout API payloads

Typed representations of the JSON documents exchanged with the server.
Every model is a dataclass with a `from_dict()` factory that tolerates
missing keys and, where the model is also sent to the server, a
`to_dict()` producing the wire format.

Wire naming follows the server: playlists use lower-case keys
(`playlist`, `track`, `$ref`) while views, tokens and activity events use
capitalized field names (`AccessToken`, `TrackEvents`, `ETag`).

Models:

- **Playlist / Spiff / Header / Entry**: the server side playlist ("spiff"),
  its current index and position, and its kind (music, video, podcast,
  stream)
- **AccessCode / Tokens**: device pairing and credential responses
- **Offset / ProgressView**: resumable playback positions
- **Station / RadioView**: radio stations grouped by kind
- **Release / Episode / HomeView**: home page listings
- **TrackEvent / ReleaseEvent / EpisodeEvent / MovieEvent / Events**:
  listening activity posted to /api/activity
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..utils.helpers import format_rfc3339, parse_rfc3339


TYPE_MUSIC = "music"
TYPE_VIDEO = "video"
TYPE_PODCAST = "podcast"
TYPE_STREAM = "stream"


def _str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


@dataclass
class Entry:
    """
    A playable item in a playlist

    For server hosted media the first location is a server path resolved
    with a media-token locate call; for streams it is the stream URL itself.

    Attributes:
        ref: Unresolved server relative locator, expanded by the server on PATCH
        creator: Artist or author
        album: Release or series title
        title: Track or episode title
        image: Cover image URL
        location: Candidate location URIs, first one is used
        identifier: External identifiers (ETag first)
        size: Sizes in bytes matching location
        date: Release or publish date as sent by the server
    """
    ref: str = ""
    creator: str = ""
    album: str = ""
    title: str = ""
    image: str = ""
    location: List[str] = field(default_factory=list)
    identifier: List[str] = field(default_factory=list)
    size: List[int] = field(default_factory=list)
    date: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entry':
        return cls(
            ref=data.get('$ref', ''),
            creator=data.get('creator', ''),
            album=data.get('album', ''),
            title=data.get('title', ''),
            image=data.get('image', ''),
            location=_str_list(data.get('location')),
            identifier=_str_list(data.get('identifier')),
            size=[int(s) for s in data.get('size') or []],
            date=data.get('date', ''),
        )

    @property
    def etag(self) -> str:
        return self.identifier[0] if self.identifier else ""


@dataclass
class Header:
    title: str = ""
    creator: str = ""
    image: str = ""
    location: str = ""
    date: str = ""


@dataclass
class Spiff:
    """Playlist header plus the ordered entries"""
    header: Header = field(default_factory=Header)
    entries: List[Entry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Spiff':
        data = data or {}
        header = Header(
            title=data.get('title', ''),
            creator=data.get('creator', ''),
            image=data.get('image', ''),
            location=data.get('location', ''),
            date=data.get('date', ''),
        )
        entries = [Entry.from_dict(e) for e in data.get('track') or []]
        return cls(header=header, entries=entries)


@dataclass
class Playlist:
    """
    Server side playlist with playback state

    Attributes:
        spiff: Header and entries
        index: Current entry, -1 for an empty playlist
        position: Seconds into the current entry
        type: One of TYPE_MUSIC, TYPE_VIDEO, TYPE_PODCAST, TYPE_STREAM
    """
    spiff: Spiff = field(default_factory=Spiff)
    index: int = -1
    position: float = 0.0
    type: str = TYPE_MUSIC

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Playlist':
        data = data or {}
        return cls(
            spiff=Spiff.from_dict(data.get('playlist') or {}),
            index=int(data.get('index', -1)),
            position=float(data.get('position', 0) or 0),
            type=data.get('type', TYPE_MUSIC) or TYPE_MUSIC,
        )

    @property
    def entries(self) -> List[Entry]:
        return self.spiff.entries

    def __len__(self) -> int:
        return len(self.spiff.entries)

    def is_music(self) -> bool:
        return self.type == TYPE_MUSIC

    def is_video(self) -> bool:
        return self.type == TYPE_VIDEO

    def is_podcast(self) -> bool:
        return self.type == TYPE_PODCAST

    def is_stream(self) -> bool:
        return self.type == TYPE_STREAM


@dataclass
class AccessCode:
    """Response of GET /api/code: the pairing code and its code-exchange token"""
    access_token: str = ""
    code: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessCode':
        return cls(access_token=data.get('AccessToken', ''), code=data.get('Code', ''))


@dataclass
class Tokens:
    access_token: str = ""
    refresh_token: str = ""
    media_token: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tokens':
        return cls(
            access_token=data.get('AccessToken', ''),
            refresh_token=data.get('RefreshToken', ''),
            media_token=data.get('MediaToken', ''),
        )


@dataclass
class Offset:
    """
    Resumable playback position of a single item

    Attributes:
        etag: Item identifier
        offset: Seconds into the item
        duration: Item length in seconds, 0 when unknown
        date: When the offset was recorded
    """
    etag: str = ""
    offset: int = 0
    duration: int = 0
    date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Offset':
        return cls(
            etag=data.get('ETag', ''),
            offset=int(data.get('Offset', 0) or 0),
            duration=int(data.get('Duration', 0) or 0),
            date=parse_rfc3339(data.get('Date')),
        )

    def is_valid(self) -> bool:
        if not self.etag or self.date is None or self.offset < 0:
            return False
        # duration may be unknown, otherwise the offset must be within it
        if self.duration > 0 and self.offset > self.duration:
            return False
        return True


@dataclass
class ProgressView:
    offsets: List[Offset] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgressView':
        return cls(offsets=[Offset.from_dict(o) for o in (data or {}).get('Offsets') or []])

    def by_etag(self) -> Dict[str, Offset]:
        return {o.etag: o for o in self.offsets}


@dataclass
class Station:
    id: int = 0
    name: str = ""
    creator: str = ""
    type: str = ""
    image: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Station':
        return cls(
            id=int(data.get('ID', 0) or 0),
            name=data.get('Name', ''),
            creator=data.get('Creator', ''),
            type=data.get('Type', ''),
            image=data.get('Image', ''),
            description=data.get('Description', ''),
        )

    @property
    def ref(self) -> str:
        """Playlist reference the server expands into the station's tracks"""
        return f"/music/radio/stations/{self.id}"


RADIO_GROUPS = ('Artist', 'Genre', 'Similar', 'Period', 'Series', 'Other', 'Stream')


@dataclass
class RadioView:
    """Radio stations grouped the way the server lists them"""
    artist: List[Station] = field(default_factory=list)
    genre: List[Station] = field(default_factory=list)
    similar: List[Station] = field(default_factory=list)
    period: List[Station] = field(default_factory=list)
    series: List[Station] = field(default_factory=list)
    other: List[Station] = field(default_factory=list)
    stream: List[Station] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RadioView':
        data = data or {}
        kwargs = {
            group.lower(): [Station.from_dict(s) for s in data.get(group) or []]
            for group in RADIO_GROUPS
        }
        return cls(**kwargs)

    def stations(self) -> List[Station]:
        """Every non-stream station, searched in this order by name lookups"""
        return (self.artist + self.genre + self.other + self.period
                + self.series + self.similar)

    def streams(self) -> List[Station]:
        return list(self.stream)

    def find(self, name: str, stream: bool = False) -> Optional[Station]:
        """Look up a station or stream by name, ignoring case"""
        candidates = self.streams() if stream else self.stations()
        wanted = name.casefold()
        for station in candidates:
            if station.name.casefold() == wanted:
                return station
        return None


@dataclass
class Release:
    id: int = 0
    artist: str = ""
    name: str = ""
    rgid: str = ""
    reid: str = ""
    type: str = ""
    date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Release':
        return cls(
            id=int(data.get('ID', 0) or 0),
            artist=data.get('Artist', ''),
            name=data.get('Name', ''),
            rgid=data.get('RGID', ''),
            reid=data.get('REID', ''),
            type=data.get('Type', ''),
            date=parse_rfc3339(data.get('Date')),
        )


@dataclass
class Episode:
    id: int = 0
    eid: str = ""
    title: str = ""
    author: str = ""
    date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Episode':
        return cls(
            id=int(data.get('ID', 0) or 0),
            eid=data.get('EID', ''),
            title=data.get('Title', ''),
            author=data.get('Author', ''),
            date=parse_rfc3339(data.get('Date')),
        )


@dataclass
class HomeView:
    """
    Home page listings

    Music and podcast lists are typed; the remaining lists (movies,
    recommendations, series) are kept as raw dictionaries in `other`.
    """
    added_releases: List[Release] = field(default_factory=list)
    new_releases: List[Release] = field(default_factory=list)
    new_episodes: List[Episode] = field(default_factory=list)
    other: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HomeView':
        data = dict(data or {})
        added = data.pop('AddedReleases', None) or []
        new = data.pop('NewReleases', None) or []
        episodes = data.pop('NewEpisodes', None) or []
        return cls(
            added_releases=[Release.from_dict(r) for r in added],
            new_releases=[Release.from_dict(r) for r in new],
            new_episodes=[Episode.from_dict(e) for e in episodes],
            other=data,
        )


@dataclass
class TrackEvent:
    """
    A track was listened to

    The server resolves the ETag to recording and release group ids when
    they are not supplied.
    """
    date: datetime
    etag: str = ""
    rid: str = ""
    rgid: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Date': format_rfc3339(self.date),
            'RID': self.rid,
            'RGID': self.rgid,
            'ETag': self.etag,
        }


@dataclass
class ReleaseEvent:
    date: datetime
    rgid: str = ""
    reid: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'Date': format_rfc3339(self.date), 'RGID': self.rgid, 'REID': self.reid}


@dataclass
class EpisodeEvent:
    date: datetime
    eid: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'Date': format_rfc3339(self.date), 'EID': self.eid}


@dataclass
class MovieEvent:
    date: datetime
    tmid: str = ""
    imid: str = ""
    etag: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Date': format_rfc3339(self.date),
            'TMID': self.tmid,
            'IMID': self.imid,
            'ETag': self.etag,
        }


@dataclass
class Events:
    """Body of POST /api/activity"""
    movie_events: List[MovieEvent] = field(default_factory=list)
    release_events: List[ReleaseEvent] = field(default_factory=list)
    episode_events: List[EpisodeEvent] = field(default_factory=list)
    track_events: List[TrackEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'MovieEvents': [e.to_dict() for e in self.movie_events],
            'ReleaseEvents': [e.to_dict() for e in self.release_events],
            'EpisodeEvents': [e.to_dict() for e in self.episode_events],
            'TrackEvents': [e.to_dict() for e in self.track_events],
        }
