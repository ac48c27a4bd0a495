# tests/test_utils.py
"""Test utilities and helpers"""

from datetime import date, datetime, timezone, timedelta

from playout.utils.helpers import (
    DAY_ZERO,
    build_query,
    format_duration,
    format_rfc3339,
    mmss,
    parse_date,
    parse_rfc3339,
    truncate_string,
)


class TestQuery:
    """Test search query composition"""

    def test_single_term(self):
        assert build_query(artist="Joy Division") == '+artist:"Joy Division"'

    def test_term_order(self):
        query = build_query(
            after="1979", before="1980-6", live=True, cover=True, single=True,
            popular=True, genre="rock", title="Atmosphere", release="Closer", artist="Joy Division",
        )
        assert query == (
            '+artist:"Joy Division" +release:"Closer" +title:"Atmosphere" +genre:"rock" '
            '+type:"popular" +type:"single" +type:"cover" +type:"live" '
            '+first_date:<="1980-06-01" +first_date:>="1979-01-01"'
        )

    def test_empty(self):
        assert build_query() == ""

    def test_unparseable_date(self):
        assert build_query(after="soon") == '+first_date:>="0001-01-01"'


class TestHelpers:
    """Test helper functions"""

    def test_parse_date(self):
        assert parse_date("1979") == date(1979, 1, 1)
        assert parse_date("1979-6") == date(1979, 6, 1)
        assert parse_date("1979-06-15") == date(1979, 6, 15)
        assert parse_date("1979-2-30") == DAY_ZERO
        assert parse_date("") == DAY_ZERO
        assert parse_date("June") == DAY_ZERO

    def test_format_duration(self):
        """Test duration formatting"""
        assert format_duration(90) == "1:30"
        assert format_duration(3661) == "1:01:01"
        assert format_duration(0) == "0:00"
        assert format_duration(-10) == "0:00"

    def test_mmss(self):
        assert mmss(0) == "00:00"
        assert mmss(65.9) == "01:05"
        assert mmss(3725) == "62:05"

    def test_truncate_string(self):
        assert truncate_string("short", 10) == "short"
        assert truncate_string("a long title", 8) == "a lon..."

    def test_rfc3339(self):
        value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=2)))
        assert format_rfc3339(value) == "2024-01-02T01:04:05Z"
        assert format_rfc3339(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05Z"

    def test_parse_rfc3339(self):
        parsed = parse_rfc3339("2024-01-02T03:04:05.123456789Z")
        assert parsed == datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
        assert parse_rfc3339("2024-01-02T03:04:05+01:00").utcoffset() == timedelta(hours=1)
        assert parse_rfc3339("") is None
        assert parse_rfc3339("0001-01-01T00:00:00Z") is None
        assert parse_rfc3339("garbage") is None
