"""Spooling of multipart uploads onto the cache filesystem.

Uploads are streamed in chunks into a temp file that lives on the same
filesystem as the cache, so the store can adopt them by rename.
"""

import contextlib
import os
from pathlib import Path

from fastapi import UploadFile, status
from fastapi.concurrency import run_in_threadpool

from template_cache.errors import ProblemError
from template_cache.hashing import CHUNK_SIZE


async def spool_upload(upload: UploadFile, destination: Path, max_bytes: int) -> int:
    """Copy an upload into ``destination``, enforcing a size limit.

    The destination is deleted if the copy fails or the limit is exceeded.

    Args:
        upload: The uploaded file
        destination: File to write (usually reserved with ``CacheService.reserve_upload_path``)
        max_bytes: Maximum accepted size in bytes

    Returns:
        Number of bytes written

    Raises:
        ProblemError: 413 if the upload is larger than ``max_bytes``
    """
    written = 0
    try:
        with open(destination, "wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise ProblemError(
                        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        f"Upload exceeds the maximum size of {max_bytes} bytes.",
                    )
                await run_in_threadpool(out.write, chunk)
    except BaseException:
        discard(destination)
        raise
    return written


def discard(path: Path) -> None:
    """Delete a spooled upload if it still exists."""
    with contextlib.suppress(FileNotFoundError):
        os.unlink(path)
