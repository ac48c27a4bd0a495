"""
Helper functions for Playout

Search query composition for the server's search syntax, loose date
parsing for release date filters, and small formatting utilities shared by
the CLI and the terminal view.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional, Union


DAY_ZERO = date(1, 1, 1)

_DATE_PATTERNS = [
    re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$'),
    re.compile(r'^(\d{4})-(\d{1,2})$'),
    re.compile(r'^(\d{4})$'),
]


def parse_date(value: str) -> date:
    """
    Parse a loosely formatted date

    Accepts YYYY, YYYY-M and YYYY-M-D with or without zero padding. Missing
    month and day default to 1.

    Args:
        value: Date string from the command line

    Returns:
        Parsed date, or 0001-01-01 when the value cannot be parsed
    """
    value = (value or "").strip()
    for pattern in _DATE_PATTERNS:
        match = pattern.match(value)
        if not match:
            continue
        parts = [int(p) for p in match.groups()]
        while len(parts) < 3:
            parts.append(1)
        try:
            return date(*parts)
        except ValueError:
            return DAY_ZERO
    return DAY_ZERO


def _term(key: str, op: str, value: str) -> str:
    return f'+{key}{op}"{value}"'


def build_query(
    artist: Optional[str] = None,
    release: Optional[str] = None,
    title: Optional[str] = None,
    genre: Optional[str] = None,
    popular: bool = False,
    single: bool = False,
    cover: bool = False,
    live: bool = False,
    before: Optional[str] = None,
    after: Optional[str] = None
) -> str:
    """
    Compose a server search query from individual filters

    Every filter is a required term; date bounds are inclusive.

        build_query(artist="Gary Numan", single=True, after="1979")
        => '+artist:"Gary Numan" +type:"single" +first_date:>="1979-01-01"'

    Args:
        artist: Artist name
        release: Release (album) name
        title: Track title
        genre: Genre
        popular: Only popular tracks
        single: Only tracks released as singles
        cover: Only cover versions
        live: Only live performances
        before: Released in/on or before this date
        after: Released in/on or after this date

    Returns:
        Query string, empty if no filter is set
    """
    terms = []
    if artist:
        terms.append(_term("artist", ":", artist))
    if release:
        terms.append(_term("release", ":", release))
    if title:
        terms.append(_term("title", ":", title))
    if genre:
        terms.append(_term("genre", ":", genre))
    if popular:
        terms.append(_term("type", ":", "popular"))
    if single:
        terms.append(_term("type", ":", "single"))
    if cover:
        terms.append(_term("type", ":", "cover"))
    if live:
        terms.append(_term("type", ":", "live"))
    if before:
        terms.append(_term("first_date", ":<=", parse_date(before).isoformat()))
    if after:
        terms.append(_term("first_date", ":>=", parse_date(after).isoformat()))
    return " ".join(terms)


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (M:SS or H:MM:SS)
    """
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def mmss(seconds: Union[int, float]) -> str:
    """Format seconds as zero padded MM:SS, minutes are not wrapped at 60"""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_rfc3339(value: datetime) -> str:
    """
    Format a datetime as RFC 3339 in UTC with a Z suffix

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S') + 'Z'


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp as sent by the server

    Fractional seconds beyond microseconds are dropped.

    Returns:
        Aware datetime, or None for empty or zero values
    """
    if not value or value.startswith('0001-01-01'):
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    # fromisoformat accepts at most 6 fractional digits
    text = re.sub(r'(\.\d{6})\d+', r'\1', text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
