"""
feedcheck/services/export_service.py

Line-delimited JSON export of validated feed records.

Each record is serialised as one compact JSON object per line, so every
line is valid standalone JSON and the whole file is a valid JSONL stream.
Output can optionally be gzip-compressed.
"""

from __future__ import annotations

import gzip
import json
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

JSONL_MEDIA_TYPE = "application/x-ndjson"
GZIP_MEDIA_TYPE = "application/gzip"


def _json_line(record: Mapping[str, Any]) -> str:
    return json.dumps(
        dict(record), ensure_ascii=False, allow_nan=False, separators=(",", ":"), default=str
    )


def iter_jsonl_lines(records: Iterable[Mapping[str, Any]]) -> Iterator[str]:
    """
    Yield newline-terminated JSON lines, one per record.
    """

    for record in records:
        yield _json_line(record) + "\n"


def to_jsonl(records: Iterable[Mapping[str, Any]]) -> str:
    return "".join(iter_jsonl_lines(records))


def export_jsonl(records: Iterable[Mapping[str, Any]], *, compress: bool = False) -> bytes:
    """
    Serialise records to JSONL bytes, gzip-compressed when requested.
    """

    data = to_jsonl(records).encode("utf-8")
    if compress:
        # Fixed mtime keeps compressed exports byte-identical across runs.
        return gzip.compress(data, mtime=0)
    return data


def write_jsonl(records: Iterable[Mapping[str, Any]], path: str | Path) -> int:
    """
    Write records to ``path``; a ``.gz`` suffix selects gzip output.

    Returns the number of records written.
    """

    target = Path(path)
    count = 0
    if target.suffix == ".gz":
        handle = gzip.open(target, "wt", encoding="utf-8", newline="\n")
    else:
        handle = target.open("w", encoding="utf-8", newline="\n")
    with handle:
        for line in iter_jsonl_lines(records):
            handle.write(line)
            count += 1
    return count


def export_filename(source_name: str, *, compress: bool = False) -> str:
    """
    Derive the export file name from the uploaded feed name.
    """

    stem = Path(source_name or "feed").name
    for suffix in (".jsonl.gz", ".csv.gz", ".jsonl", ".csv"):
        if stem.lower().endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    name = f"{stem or 'feed'}_validated.jsonl"
    return f"{name}.gz" if compress else name
