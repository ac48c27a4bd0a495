"""
Exception classes for playout.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide a clear message and to distinguish
between the failure modes the client and the playback engine react to.

Exception Hierarchy:
    PlayoutError (base)
        HTTPStatusError - Non-2xx response from the server
            UnauthorizedError - 401, triggers access token renewal
            ForbiddenError - 403
            ClientError - any other 4xx
            ServerError - 5xx
        TransportError - Connection level failure, no response
        NoRedirectionError - Locate response without a Location header
        InvalidMetadataLengthError - ICY metadata block too large
        InvalidIntervalLengthError - ICY metadata interval too large
        DecoderUnknownError - No decoder for the media type
        DecoderError - Decoder failed to open the media
        TokenStoreError - Credentials could not be persisted
"""

from typing import Optional


class PlayoutError(Exception):
    """
    Base exception for all playout errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all playout errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URL, status).
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class HTTPStatusError(PlayoutError):
    """
    Raised when the server answers with an error status.

    Attributes:
        status_code: The HTTP status of the response.
    """

    def __init__(self, message: str, status_code: int, details: Optional[dict] = None) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class UnauthorizedError(HTTPStatusError):
    """
    Raised on 401.

    For calls made with the access token this triggers a single renewal
    with the refresh token followed by one retry.
    """
    pass


class ForbiddenError(HTTPStatusError):
    """Raised on 403."""
    pass


class ClientError(HTTPStatusError):
    """Raised on any 4xx other than 401 and 403."""
    pass


class ServerError(HTTPStatusError):
    """Raised on 5xx."""
    pass


class TransportError(PlayoutError):
    """
    Raised when a request produced no response at all.

    Common causes:
        - DNS failure or connection refused
        - TLS errors
        - Connection reset while reading the body

    The underlying requests exception is kept in details['original_error'].
    Transport errors never trigger token renewal.
    """
    pass


class NoRedirectionError(PlayoutError):
    """
    Raised when a locate request returns without a Location header.

    Media locations are resolved by the server with a redirect to a
    presigned URL; a response without Location cannot be played.
    """
    pass


class InvalidMetadataLengthError(PlayoutError):
    """Raised when an ICY metadata block claims more than 1024 bytes."""
    pass


class InvalidIntervalLengthError(PlayoutError):
    """
    Raised when a stream advertises an ICY metadata interval above 4 MiB.

    The stream cannot be safely de-interleaved so the track fails before
    any audio is read.
    """
    pass


class DecoderUnknownError(PlayoutError):
    """Raised when neither the content type nor the path suffix selects a decoder."""
    pass


class DecoderError(PlayoutError):
    """Raised when the selected decoder cannot open the media."""
    pass


class TokenStoreError(PlayoutError):
    """
    Raised when the token store cannot be written.

    A renewed access token that cannot be persisted would be lost on the
    next start, so this is surfaced instead of ignored.
    """
    pass


def error_check(status_code: int) -> Optional[HTTPStatusError]:
    """
    Classify an HTTP status code.

    Args:
        status_code: Response status.

    Returns:
        The matching error instance, or None for statuses below 400.
    """
    if status_code == 401:
        return UnauthorizedError("unauthorized", status_code)
    if status_code == 403:
        return ForbiddenError("forbidden", status_code)
    if 400 <= status_code < 500:
        return ClientError(f"client error ({status_code})", status_code)
    if 500 <= status_code < 600:
        return ServerError(f"server error ({status_code})", status_code)
    return None
