"""Decode engines backed by zxing-cpp."""
from __future__ import annotations

import asyncio
import io
import logging
import threading
from typing import Any, AsyncIterator, Iterable, Optional, Protocol, Set

import zxingcpp
from PIL import Image

from bookscan.constants import DEFAULT_SCAN_INTERVAL
from bookscan.errors import BarcodeNotFoundError, CaptureError, InvalidUploadError
from bookscan.models import Detection
from bookscan.symbology import BOOKLAND_PREFIXES, clean_payload

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """A camera or other frame provider.

    ``read`` returns a PIL image or numpy array, or ``None`` when no frame is
    ready yet. ``open`` raises on permission or device problems.
    """

    def open(self) -> None: ...

    def read(self) -> Any: ...

    def release(self) -> None: ...


def _format_name(result: Any) -> Optional[str]:
    fmt = getattr(result, "format", None)
    if fmt is None:
        return None
    return getattr(fmt, "name", None) or str(fmt)


def pick_detection(results: Iterable[Any]) -> Optional[Detection]:
    """Choose the most book-like payload among decoder results."""
    fallback: Optional[Detection] = None
    for res in results:
        raw = (getattr(res, "text", "") or "").strip()
        if not raw:
            continue
        detection = Detection(text=raw, symbology_hint=_format_name(res))
        if clean_payload(raw).startswith(BOOKLAND_PREFIXES):
            return detection
        if fallback is None:
            fallback = detection
    return fallback


def decode_frame(frame: Any) -> Optional[Detection]:
    return pick_detection(zxingcpp.read_barcodes(frame))


def decode_image_bytes(data: bytes) -> Detection:
    try:
        img = Image.open(io.BytesIO(data)).convert("RGB")
    except OSError as exc:
        raise InvalidUploadError(f"Unreadable image: {exc}") from exc
    detection = decode_frame(img)
    if detection is None:
        raise BarcodeNotFoundError("No barcode found in image")
    return detection


class ZXingImageDecoder:
    """One-shot decoder for uploaded images; decoding runs in a worker thread."""

    async def decode(self, data: bytes) -> Detection:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, decode_image_bytes, data)


class ZXingStreamDecoder:
    """Polls a :class:`FrameSource` and emits detections.

    At most one decode attempt is made per ``interval`` seconds. A source can
    be held by one decoder at a time.
    """

    _sources_in_use: Set[int] = set()

    def __init__(self, source: FrameSource, interval: float = DEFAULT_SCAN_INTERVAL):
        self.source = source
        self.interval = interval
        self._running = False
        # Frame reads and the release run on executor threads; capture
        # handles must not see them concurrently.
        self._io_lock = threading.Lock()

    @classmethod
    def from_settings(cls, source: FrameSource, settings) -> "ZXingStreamDecoder":
        return cls(source, interval=settings.SCAN_INTERVAL)

    def _read_frame(self) -> Any:
        with self._io_lock:
            if not self._running:
                return None
            return self.source.read()

    def _release_source(self) -> None:
        with self._io_lock:
            self.source.release()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        key = id(self.source)
        if self._running or key in self._sources_in_use:
            raise CaptureError("Camera is already in use", reason="NotReadableError")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.source.open)
        self._sources_in_use.add(key)
        self._running = True
        logger.debug("Frame source %r opened", self.source)

    async def detections(self) -> AsyncIterator[Detection]:
        loop = asyncio.get_running_loop()
        while self._running:
            frame = await loop.run_in_executor(None, self._read_frame)
            if frame is not None and self._running:
                detection = await loop.run_in_executor(None, decode_frame, frame)
                if detection is not None:
                    yield detection
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        was_running, self._running = self._running, False
        if was_running:
            self._sources_in_use.discard(id(self.source))
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._release_source)
            logger.debug("Frame source %r released", self.source)
