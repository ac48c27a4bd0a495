"""
Utilities package
Logging setup and small helpers
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    get_current_log_file
)
from .helpers import (
    build_query,
    parse_date,
    format_duration,
    mmss,
    truncate_string,
    format_rfc3339,
    parse_rfc3339,
    utc_now
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'get_current_log_file',

    # Helper exports
    'build_query',
    'parse_date',
    'format_duration',
    'mmss',
    'truncate_string',
    'format_rfc3339',
    'parse_rfc3339',
    'utc_now',
]
