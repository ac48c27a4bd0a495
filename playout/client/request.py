"""
Authenticated request layer for the Takeout API

Every call is built from a request context: the service endpoint, the
User-Agent and exactly one bearer mode selecting which credential (if any)
goes into the Authorization header.

    context = RequestContext(store, Bearer.ACCESS, session)
    playlist = get(context, "/api/playlist", Playlist.from_dict)

Redirects are never followed. Media locations are resolved by reading the
Location header of the raw 3xx response (see get_location), and a redirect
on any other call is returned to the caller as is.

Failures are classified by status code (see exceptions.error_check);
connection level failures surface as TransportError. This layer does not
renew tokens, that is the job of the API surface which knows which calls
were made with the access token.
"""

import json
from enum import Enum
from typing import Any, Callable, Optional, TypeVar
from urllib.parse import urljoin

import requests

from ..exceptions import PlayoutError, TransportError, NoRedirectionError, error_check
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

HEADER_AUTHORIZATION = "Authorization"
HEADER_USER_AGENT = "User-Agent"
HEADER_LOCATION = "Location"
HEADER_CONTENT_TYPE = "Content-Type"

BEARER_AUTHORIZATION = "Bearer"


class Bearer(Enum):
    """Credential attached to a request"""
    NONE = 0
    CODE = 1
    ACCESS = 2
    REFRESH = 3
    MEDIA = 4


class Headers(dict):
    """Request headers with chainable setters"""

    def authorization(self, bearer: str) -> 'Headers':
        self[HEADER_AUTHORIZATION] = f"{BEARER_AUTHORIZATION} {bearer}"
        return self

    def user_agent(self, value: str) -> 'Headers':
        self[HEADER_USER_AGENT] = value
        return self


class RequestContext:
    """
    Endpoint, headers and HTTP session for a single bearer mode

    Headers are computed on every call so a token renewed by another thread
    is picked up by the retry.

    Args:
        store: Token store (see config.auth.TokenStore)
        bearer: Which credential to send
        session: requests session used to execute the call
    """

    def __init__(self, store, bearer: Bearer = Bearer.ACCESS, session: Optional[requests.Session] = None):
        self.store = store
        self.bearer = bearer
        self.session = session or requests.Session()

    def endpoint(self) -> str:
        return self.store.endpoint()

    def headers(self) -> Headers:
        headers = Headers().user_agent(self.store.user_agent())
        if self.bearer == Bearer.CODE:
            headers.authorization(self.store.code_token())
        elif self.bearer == Bearer.ACCESS:
            headers.authorization(self.store.access_token())
        elif self.bearer == Bearer.REFRESH:
            headers.authorization(self.store.refresh_token())
        elif self.bearer == Bearer.MEDIA:
            headers.authorization(self.store.media_token())
        return headers

    def url(self, uri: str) -> str:
        return self.endpoint() + uri


def _do(context: RequestContext, method: str, uri: str, body: Any = None, stream: bool = False) -> requests.Response:
    """
    Execute one request and classify the response status

    Args:
        context: Request context supplying URL prefix and headers
        method: HTTP method
        uri: Path relative to the endpoint
        body: Value marshalled to JSON, None for no body
        stream: Leave the body unread (used by get_location)

    Returns:
        The response, with a status below 400

    Raises:
        TransportError: If no response was received
        HTTPStatusError: Subclass matching the error status
    """
    url = context.url(uri)
    headers = context.headers()
    data = None
    if body is not None:
        data = json.dumps(body)
        headers[HEADER_CONTENT_TYPE] = "application/json"

    logger.debug(f"{method} {url} ({context.bearer.name.lower()})")
    try:
        response = context.session.request(
            method, url,
            headers=headers,
            data=data,
            allow_redirects=False,
            stream=stream
        )
    except requests.RequestException as e:
        raise TransportError(
            f"{method} {uri} failed: {e}",
            details={'url': url, 'original_error': e}
        )

    error = error_check(response.status_code)
    if error is not None:
        response.close()
        error.details.update({'url': url, 'method': method})
        logger.debug(f"{method} {url} -> {response.status_code}")
        raise error
    return response


def _decode(response: requests.Response, result: Optional[Callable[[Any], T]]) -> Optional[T]:
    """Decode a 200 response body into result, anything else yields None"""
    if result is None or response.status_code != 200:
        return None
    if not response.content:
        return None
    try:
        data = response.json()
    except ValueError as e:
        raise PlayoutError(
            "Invalid JSON in response",
            details={'url': response.url, 'original_error': e}
        )
    return result(data)


def get(context: RequestContext, uri: str, result: Optional[Callable[[Any], T]] = None) -> Optional[T]:
    """
    Issue a GET and decode the JSON body

    Args:
        context: Request context
        uri: Path relative to the endpoint
        result: Callable building the target from the decoded JSON,
            e.g. Playlist.from_dict

    Returns:
        Decoded target on 200, otherwise None
    """
    response = _do(context, "GET", uri)
    return _decode(response, result)


def post(context: RequestContext, uri: str, body: Any, result: Optional[Callable[[Any], T]] = None) -> Optional[T]:
    """Issue a POST with a JSON body and decode the JSON response"""
    response = _do(context, "POST", uri, body)
    return _decode(response, result)


def patch(context: RequestContext, uri: str, body: Any, result: Optional[Callable[[Any], T]] = None) -> Optional[T]:
    """Issue a PATCH with a JSON body and decode the JSON response"""
    response = _do(context, "PATCH", uri, body)
    return _decode(response, result)


def get_location(context: RequestContext, uri: str) -> str:
    """
    Issue a GET without following redirects and return the Location header

    Relative locations are resolved against the request URL.

    Args:
        context: Request context
        uri: Path relative to the endpoint

    Returns:
        Absolute URL taken from the Location header, as a string rather than
        a parsed urllib result since it is handed straight to requests.get

    Raises:
        NoRedirectionError: If the response has no Location header
    """
    response = _do(context, "GET", uri, stream=True)
    try:
        location = response.headers.get(HEADER_LOCATION)
    finally:
        response.close()
    if not location:
        raise NoRedirectionError(
            f"No redirection for {uri}",
            details={'url': context.url(uri), 'status_code': response.status_code}
        )
    return urljoin(context.url(uri), location)
