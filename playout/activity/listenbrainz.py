"""
ListenBrainz listen submission

Submits "playing now" notifications and single listens for the track the
player is on. A user token is stored with `playout auth listenbrainz TOKEN`.

API reference: https://listenbrainz.readthedocs.io/en/latest/users/api/core.html
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..config.settings import get_settings
from ..utils.logger import get_logger

SUBMIT_LISTENS_URL = "https://api.listenbrainz.org/1/submit-listens"

LISTEN_TYPE_PLAYING_NOW = "playing_now"
LISTEN_TYPE_SINGLE = "single"


@dataclass
class Track:
    artist: str
    album: str
    title: str

    def to_metadata(self) -> Dict[str, Any]:
        metadata = {
            'artist_name': self.artist,
            'track_name': self.title,
        }
        if self.album:
            metadata['release_name'] = self.album
        return metadata


class ListenBrainz:
    """
    ListenBrainz submission client

    Args:
        token: ListenBrainz user token
        session: requests session, a new one by default
        timeout: Request timeout in seconds
    """

    def __init__(self, token: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.token = token
        self.timeout = timeout
        self.logger = get_logger(__name__)

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': get_settings().network.user_agent
        })

    def _submit(self, listen_type: str, listen: Dict[str, Any]) -> bool:
        """
        POST a submission

        Returns:
            True if ListenBrainz accepted it
        """
        payload = {
            'listen_type': listen_type,
            'payload': [listen],
        }
        try:
            response = self.session.post(
                SUBMIT_LISTENS_URL,
                json=payload,
                headers={'Authorization': f"Token {self.token}"},
                timeout=self.timeout
            )
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            self.logger.debug(f"ListenBrainz {listen_type} submission failed: {e}")
            return False

    def submit_playing_now(self, track: Track) -> bool:
        return self._submit(LISTEN_TYPE_PLAYING_NOW, {'track_metadata': track.to_metadata()})

    def submit_single(self, track: Track, listened_at: int) -> bool:
        """
        Submit a completed listen

        Args:
            track: Track listened to
            listened_at: Unix time in seconds
        """
        return self._submit(LISTEN_TYPE_SINGLE, {
            'listened_at': int(listened_at),
            'track_metadata': track.to_metadata(),
        })
