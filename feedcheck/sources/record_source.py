"""
feedcheck/sources/record_source.py

Turns an uploaded feed file into a lazy stream of raw records.

Supported formats are CSV and JSONL, each optionally gzip-compressed.
Format detection problems and decoding problems are raised eagerly by
``open_record_source``; row-level tokenization problems surface while the
record stream is consumed.
"""

from __future__ import annotations

import csv
import gzip
import io
import json
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class FeedFormat(str, Enum):
    CSV = "csv"
    JSONL = "jsonl"
    CSV_GZ = "csv.gz"
    JSONL_GZ = "jsonl.gz"

    @property
    def base_format(self) -> str:
        return self.value.removesuffix(".gz")

    @property
    def is_compressed(self) -> bool:
        return self.value.endswith(".gz")


SUPPORTED_EXTENSIONS: tuple[str, ...] = (".jsonl", ".csv", ".jsonl.gz", ".csv.gz")


class FeedInputError(ValueError):
    """
    Base class for feed input problems that stop a run before it starts.
    """


class UnsupportedFormatError(FeedInputError):
    """
    Raised when the file extension is not a supported feed format.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.supported = SUPPORTED_EXTENSIONS
        super().__init__(
            f"Unsupported file format: {filename or '<unnamed>'}. "
            f"Use {', '.join(SUPPORTED_EXTENSIONS)}."
        )


class FeedDecodeError(FeedInputError):
    """
    Raised when the payload cannot be decompressed or decoded as UTF-8.
    """


class RecordParseError(FeedInputError):
    """
    Raised when one line or row cannot be tokenized into a record.
    """

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        super().__init__(message)
        self.line_number = line_number


@dataclass(frozen=True)
class ParsedFeed:
    """
    Opened feed: detected format, line count estimate and the record stream.
    """

    format: FeedFormat
    total_lines: int
    records: Iterator[dict[str, Any]]


def detect_format(filename: str) -> FeedFormat:
    lower = (filename or "").strip().lower()
    if lower.endswith(".jsonl.gz"):
        return FeedFormat.JSONL_GZ
    if lower.endswith(".csv.gz"):
        return FeedFormat.CSV_GZ
    if lower.endswith(".jsonl"):
        return FeedFormat.JSONL
    if lower.endswith(".csv"):
        return FeedFormat.CSV
    raise UnsupportedFormatError(filename)


def decode_payload(payload: bytes, *, compressed: bool) -> str:
    if compressed:
        try:
            payload = gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as exc:
            raise FeedDecodeError("Compressed feed is corrupt or not gzip data.") from exc
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FeedDecodeError("Feed must be UTF-8 encoded.") from exc


def iter_jsonl_records(content: str) -> Iterator[dict[str, Any]]:
    for line_number, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            record = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise RecordParseError(
                f"Invalid JSON on line {line_number}: {stripped[:50]}...",
                line_number=line_number,
            ) from exc
        if not isinstance(record, dict):
            raise RecordParseError(
                f"Line {line_number} is not a JSON object.",
                line_number=line_number,
            )
        yield record


def iter_csv_records(content: str) -> Iterator[dict[str, Any]]:
    """
    Yield one record per CSV data row with trimmed headers and values.

    Blank lines are skipped. Rows with more or fewer cells than the header
    raise ``RecordParseError``.
    """

    reader = csv.reader(io.StringIO(content, newline=""))
    try:
        header_row = next(reader, None)
        if header_row is None:
            return
        headers = [header.strip() for header in header_row]
        if not any(headers):
            raise RecordParseError("CSV header row is missing.", line_number=1)

        for cells in reader:
            if not cells or all(not cell.strip() for cell in cells):
                continue
            if len(cells) != len(headers):
                problem = "too many" if len(cells) > len(headers) else "too few"
                raise RecordParseError(
                    f"CSV parsing error at line {reader.line_num}: {problem} fields "
                    f"(expected {len(headers)}, got {len(cells)}).",
                    line_number=reader.line_num,
                )
            yield {header: cell.strip() for header, cell in zip(headers, cells)}
    except csv.Error as exc:
        raise RecordParseError(
            f"Invalid CSV format at line {reader.line_num}: {exc}",
            line_number=reader.line_num,
        ) from exc


def open_record_source(filename: str, payload: bytes) -> ParsedFeed:
    feed_format = detect_format(filename)
    content = decode_payload(payload, compressed=feed_format.is_compressed)

    lines = sum(1 for line in content.splitlines() if line.strip())
    if feed_format.base_format == "jsonl":
        return ParsedFeed(format=feed_format, total_lines=lines, records=iter_jsonl_records(content))
    return ParsedFeed(
        format=feed_format,
        total_lines=max(0, lines - 1),
        records=iter_csv_records(content),
    )
