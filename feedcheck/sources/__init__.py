"""
feedcheck/sources package marker.
"""

from feedcheck.sources.record_source import (
    FeedDecodeError,
    FeedFormat,
    FeedInputError,
    ParsedFeed,
    RecordParseError,
    UnsupportedFormatError,
    detect_format,
    open_record_source,
)

__all__ = [
    "FeedDecodeError",
    "FeedFormat",
    "FeedInputError",
    "ParsedFeed",
    "RecordParseError",
    "UnsupportedFormatError",
    "detect_format",
    "open_record_source",
]
