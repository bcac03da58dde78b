"""Interfaces for the collaborators a scan session depends on."""
from __future__ import annotations

from typing import AsyncIterator, Protocol, Sequence

from bookscan.models import BookRecord, Detection


class StreamDecodeEngine(Protocol):
    """Live camera decoding.

    ``start`` acquires the camera and raises on capture failures.
    ``detections`` yields decoded payloads until ``stop`` is called.
    ``stop`` must be idempotent and always release the camera.
    """

    async def start(self) -> None: ...

    def detections(self) -> AsyncIterator[Detection]: ...

    async def stop(self) -> None: ...


class ImageDecodeEngine(Protocol):
    async def decode(self, data: bytes) -> Detection:
        """Decode one still image; raise ``BarcodeNotFoundError`` if empty."""
        ...


class LookupService(Protocol):
    async def search(self, query: str) -> Sequence[BookRecord]:
        """Return zero or more result records for ``query``, best match first."""
        ...
