"""
Takeout API client

Named operations over the request layer. Every operation selects the bearer
mode it needs; regular calls use the access token and renew it
transparently when the server answers 401:

1. GET /api/token with the refresh token
2. Store the new access token (written to disk before continuing)
3. Retry the original call exactly once

If the refresh call fails, or the new token cannot be saved, the original
UnauthorizedError is raised.
Concurrent callers that hit 401 together perform a single refresh: the
renewal lock is taken and the access token compared with the one the
failed call used; if another thread already replaced it the call is simply
retried. Transport errors are never retried.

Usage:

    client = get_client()
    playlist = client.search_replace('+artist:"Joy Division"', shuffle=True)
    url = client.locate(playlist.entries[0].location[0])
"""

import threading
from typing import Callable, List, Optional, TypeVar
from urllib.parse import quote_plus

import requests

from ..config.auth import get_token_store
from ..exceptions import UnauthorizedError, PlayoutError, TokenStoreError
from ..utils.logger import get_logger
from .models import (
    AccessCode, Tokens, HomeView, RadioView, Playlist, ProgressView,
    Events, TrackEvent, TYPE_MUSIC
)
from .patch import patch_position, patch_replace
from .request import Bearer, RequestContext, get, post, patch, get_location

T = TypeVar('T')


class TakeoutClient:
    """
    Client for a single Takeout server

    Args:
        store: Token store supplying endpoint, user agent and credentials
        session: requests session shared by all calls (a new one by default)
    """

    def __init__(self, store=None, session: Optional[requests.Session] = None):
        self.store = store or get_token_store()
        self.session = session or requests.Session()
        self.logger = get_logger(__name__)
        self._renew_lock = threading.Lock()

    def context(self, bearer: Bearer) -> RequestContext:
        return RequestContext(self.store, bearer, self.session)

    def user_agent(self) -> str:
        return self.store.user_agent()

    def _with_renewal(self, call: Callable[[RequestContext], T]) -> T:
        """
        Run an access-token call, renewing the token once on 401

        Args:
            call: Function performing the request with the given context

        Returns:
            Result of the call or of its single retry

        Raises:
            UnauthorizedError: If renewal failed or the retry was still unauthorized
        """
        context = self.context(Bearer.ACCESS)
        used_token = self.store.access_token()
        try:
            return call(context)
        except UnauthorizedError as unauthorized:
            with self._renew_lock:
                if self.store.access_token() == used_token:
                    if not self._renew():
                        raise unauthorized
                else:
                    self.logger.debug("Access token already renewed, retrying")
            return call(context)

    def _renew(self) -> bool:
        """
        Exchange the refresh token for a new access token

        Returns:
            True if a new access token was stored
        """
        try:
            tokens = get(self.context(Bearer.REFRESH), "/api/token", Tokens.from_dict)
        except PlayoutError as e:
            self.logger.console_warning(f"Access token renewal failed: {e}")
            return False
        if tokens is None or not tokens.access_token:
            self.logger.warning("Access token renewal returned no token")
            return False
        try:
            self.store.update_access_token(tokens.access_token)
        except TokenStoreError as e:
            self.logger.console_warning(f"Renewed access token not saved: {e}")
            return False
        self.logger.info("Access token renewed")
        return True

    # Pairing

    def code(self) -> AccessCode:
        """
        Request a device pairing code

        Returns:
            Pairing code and the code-exchange token authorizing check_code
        """
        return get(self.context(Bearer.NONE), "/api/code", AccessCode.from_dict)

    def check_code(self) -> Tokens:
        """
        Exchange the stored pairing code for tokens

        Succeeds once the code has been entered on the server. Uses the
        code-exchange token stored by a previous code() call.
        """
        body = {'Code': self.store.code()}
        return post(self.context(Bearer.CODE), "/api/code", body, Tokens.from_dict)

    # Views

    def home(self) -> HomeView:
        return self._with_renewal(lambda ctx: get(ctx, "/api/home", HomeView.from_dict))

    def radio(self) -> RadioView:
        return self._with_renewal(lambda ctx: get(ctx, "/api/radio", RadioView.from_dict))

    def playlist(self) -> Playlist:
        return self._with_renewal(lambda ctx: get(ctx, "/api/playlist", Playlist.from_dict))

    def progress(self) -> ProgressView:
        return self._with_renewal(lambda ctx: get(ctx, "/api/progress", ProgressView.from_dict))

    # Media

    def locate(self, uri: str) -> str:
        """
        Resolve a media location to a presigned URL

        Args:
            uri: Server path from an entry's location list

        Returns:
            URL from the server's redirect

        Raises:
            NoRedirectionError: If the server did not redirect
        """
        return get_location(self.context(Bearer.MEDIA), uri)

    # Playlist mutation

    def search_replace(self, query: str, shuffle: bool = False, best: bool = False) -> Playlist:
        """
        Replace the playlist with the results of a search

        Args:
            query: Search query, see utils.helpers.build_query
            shuffle: Ask for a shuffled radio style selection
            best: Passed through to the server as m=1

        Returns:
            The resolved playlist
        """
        ref = "/music/search?q=" + quote_plus(query)
        if shuffle:
            ref += "&radio=1"
        if best:
            ref += "&m=1"
        return self.replace(ref, TYPE_MUSIC, "", "")

    def replace(self, ref: str, kind: str, creator: str, title: str) -> Playlist:
        data = patch_replace(ref, kind, creator, title)
        return self._with_renewal(lambda ctx: patch(ctx, "/api/playlist", data, Playlist.from_dict))

    def position(self, index: int, position: float) -> None:
        """Record the current entry and offset in the server side playlist"""
        data = patch_position(index, position)
        self._with_renewal(lambda ctx: patch(ctx, "/api/playlist", data, Playlist.from_dict))

    # Activity

    def activity(self, events: Events) -> None:
        body = events.to_dict()
        self._with_renewal(lambda ctx: post(ctx, "/api/activity", body))

    def track_activity(self, track_events: List[TrackEvent]) -> None:
        self.activity(Events(track_events=list(track_events)))


# Global client instance
_client_instance: Optional[TakeoutClient] = None


def get_client() -> TakeoutClient:
    """
    Get the global client instance (singleton pattern)

    Returns:
        Global TakeoutClient bound to the global token store
    """
    global _client_instance
    if not _client_instance:
        _client_instance = TakeoutClient()
    return _client_instance


def reset_client() -> None:
    """Drop the global client, e.g. after re-pairing or a config reload"""
    global _client_instance
    _client_instance = None
