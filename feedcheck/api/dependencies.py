"""
feedcheck/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

from feedcheck.config import get_upload_settings
from feedcheck.sources.record_source import SUPPORTED_EXTENSIONS


def get_feed_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file carries a supported feed extension.
    """

    filename = (file.filename or "").strip().lower()
    if not filename.endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": f"Unsupported file format. Use {', '.join(SUPPORTED_EXTENSIONS)}.",
                "supported_extensions": list(SUPPORTED_EXTENSIONS),
            },
        )

    return file


async def read_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded feed, rejecting payloads above the configured limit.
    """

    limit = get_upload_settings().max_upload_bytes
    payload = await file.read(limit + 1)
    if len(payload) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Feed file exceeds the {limit} byte upload limit.",
        )
    return payload
