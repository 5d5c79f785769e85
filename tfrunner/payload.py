"""Configuration bundle sources.

The bundle (normally a ``.tar.gz`` of Terraform files) is uploaded as an
opaque byte stream.  Callers may hand the orchestrator raw bytes, an async
byte iterator, or a filesystem path; paths are streamed in fixed-size chunks
through ``anyio`` so the event loop is never blocked on disk reads.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterable, AsyncIterator
from pathlib import Path

import anyio

CHUNK_SIZE = 64 * 1024

PayloadSource = str | os.PathLike[str] | bytes | AsyncIterable[bytes]


async def iter_file(path: str | os.PathLike[str], chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the contents of *path* in chunks.  Raises ``FileNotFoundError`` if missing."""
    async with await anyio.open_file(path, "rb") as f:
        while chunk := await f.read(chunk_size):
            yield chunk


async def ensure_readable(source: PayloadSource) -> None:
    """Fail early if *source* names a file that cannot be uploaded.

    Non-path sources are accepted as-is.
    """
    if isinstance(source, bytes | AsyncIterable):
        return
    path = anyio.Path(source)
    if not await path.is_file():
        msg = f"Configuration bundle not found: {Path(source)}"
        raise FileNotFoundError(msg)


def open_payload(source: PayloadSource) -> bytes | AsyncIterable[bytes]:
    """Turn a payload source into upload content for the HTTP client."""
    if isinstance(source, bytes | AsyncIterable):
        return source
    return iter_file(source)
