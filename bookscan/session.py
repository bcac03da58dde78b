"""Scan session state machine.

A :class:`ScanSessionController` drives one capture surface: it owns the
camera while in camera mode, accepts detections from the stream engine or an
uploaded image, and walks each detection through parsing, validation and the
book lookup::

    IDLE -> DETECTING -> VALIDATING -> LOOKING_UP -> FOUND | NOT_FOUND | FAILED

Only one resolution runs at a time. Detections that arrive while a
resolution is in flight are dropped rather than queued. Every state change is
published to subscribers as an immutable :class:`~bookscan.models.ScanSession`
snapshot.

The controller is meant to run on a single asyncio event loop; all public
coroutines and ``submit_detection`` must be called from that loop.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, List, Optional

from bookscan.capabilities import CapabilityProbe, initial_mode, mode_available, probe_capabilities
from bookscan.checksum import validate
from bookscan.config import Settings
from bookscan.constants import ACCEPTED_IMAGE_TYPES, ISBN_QUERY_PREFIX
from bookscan.engines import ImageDecodeEngine, LookupService, StreamDecodeEngine
from bookscan.errors import (
    BarcodeNotFoundError,
    BookNotFoundError,
    BookScanError,
    DecodeTimeoutError,
    InvalidChecksumError,
    InvalidFormatError,
    InvalidUploadError,
    classify,
)
from bookscan.models import (
    ChecksumPolicy,
    ErrorContext,
    ScanMode,
    ScanningError,
    ScanSession,
    ScanStatus,
)
from bookscan.symbology import extract_candidate

logger = logging.getLogger(__name__)

Subscriber = Callable[[ScanSession], None]


class ScanSessionController:
    def __init__(
        self,
        lookup: LookupService,
        image_decoder: Optional[ImageDecodeEngine] = None,
        stream_decoder: Optional[StreamDecodeEngine] = None,
        probe: Optional[CapabilityProbe] = None,
        settings: Optional[Settings] = None,
        policy: Optional[ChecksumPolicy] = None,
        debug_log: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings or Settings()
        self._lookup = lookup
        self._image_decoder = image_decoder
        self._stream = stream_decoder
        self._policy = policy or self._settings.CHECKSUM_POLICY
        self._debug_log = debug_log
        self._clock = clock

        if probe is None:
            self.capabilities = probe_capabilities(stream_decoder, image_decoder, self._settings)
        else:
            self.capabilities = probe()
        for reason in self.capabilities.reasons:
            logger.info("Capability: %s", reason)

        self._session = ScanSession(mode=initial_mode(self.capabilities))
        self._subscribers: List[Subscriber] = []
        self._pipeline: Optional[asyncio.Task] = None
        self._camera_task: Optional[asyncio.Task] = None
        self._camera_open = False
        self._closed = False

    # ------------------------------------------------------------------ #
    # State and notifications
    # ------------------------------------------------------------------ #
    @property
    def snapshot(self) -> ScanSession:
        return self._session

    @property
    def status(self) -> ScanStatus:
        return self._session.status

    @property
    def mode(self) -> ScanMode:
        return self._session.mode

    @property
    def camera_open(self) -> bool:
        return self._camera_open

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for state snapshots; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def elapsed(self) -> Optional[float]:
        """Seconds since the current resolution started."""
        if self._session.started_at is None:
            return None
        return self._clock() - self._session.started_at

    def _debug(self, message: str) -> None:
        logger.debug(message)
        if self._debug_log is not None:
            self._debug_log(message)

    def _transition(self, **changes: Any) -> None:
        previous = self._session.status
        self._session = replace(self._session, **changes)
        current = self._session.status
        if previous is not current:
            self._debug(f"{self._session.mode.value}: {previous.value} -> {current.value}")
        for callback in list(self._subscribers):
            try:
                callback(self._session)
            except Exception:
                logger.exception("Scan session subscriber %r failed", callback)

    def _fail(self, error: ScanningError, **changes: Any) -> None:
        logger.warning("Scan failed: %s (%s)", error.kind.value, error.user_message)
        self._transition(status=ScanStatus.FAILED, error=error, **changes)

    def _begin(self, raw: Optional[str]) -> None:
        self._transition(
            status=ScanStatus.DETECTING,
            detected_isbn=None,
            error=None,
            started_at=self._clock(),
            raw_payload=raw,
            query=None,
            book=None,
            result_count=0,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    async def start(self) -> None:
        """Mount the capture surface; opens the camera in camera mode."""
        if self._closed:
            raise BookScanError("Scan session is closed")
        if self._session.mode is ScanMode.CAMERA:
            await self._open_camera()

    async def close(self) -> None:
        """Unmount: cancel any resolution and release the camera."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._cancel_pipeline()
        finally:
            await self._release_camera()
            self._subscribers.clear()
            self._debug("session closed")

    async def __aenter__(self) -> "ScanSessionController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def reset(self) -> ScanSession:
        """Abandon the current attempt and return to ``IDLE``."""
        await self._cancel_pipeline()
        self._transition(
            status=ScanStatus.IDLE,
            detected_isbn=None,
            error=None,
            started_at=None,
            raw_payload=None,
            query=None,
            book=None,
            result_count=0,
        )
        if self._session.mode is ScanMode.CAMERA and not self._closed:
            await self._open_camera()
        return self._session

    async def switch_mode(self, mode: ScanMode) -> bool:
        """Change capture mode; only allowed while idle or finished."""
        if self._closed:
            return False
        if self._session.status.is_busy:
            self._debug(f"mode switch to {mode.value} rejected while {self._session.status.value}")
            return False
        if not mode_available(self.capabilities, mode):
            self._debug(f"mode {mode.value} unavailable")
            return False

        await self._release_camera()
        self._session = replace(self._session, mode=mode)
        await self.reset()
        return True

    # ------------------------------------------------------------------ #
    # Camera
    # ------------------------------------------------------------------ #
    async def _open_camera(self) -> None:
        if self._stream is None or self._camera_open or not self.capabilities.camera_available:
            return
        try:
            await self._stream.start()
        except Exception as exc:
            logger.warning("Camera start failed: %s", exc)
            await self._stream.stop()
            if not self._session.status.is_busy:
                self._fail(classify(exc, ErrorContext.CAPTURE))
            return
        self._camera_open = True
        self._camera_task = asyncio.ensure_future(self._consume_stream())
        self._debug("camera started")

    async def _consume_stream(self) -> None:
        assert self._stream is not None
        try:
            async for detection in self._stream.detections():
                self.submit_detection(detection.text)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Camera stream failed: %s", exc)
            await self._release_camera()
            if not self._session.status.is_busy:
                self._fail(classify(exc, ErrorContext.CAPTURE))
            return
        self._debug("camera stream ended")
        await self._release_camera()

    async def _release_camera(self) -> None:
        task, self._camera_task = self._camera_task, None
        was_open, self._camera_open = self._camera_open, False
        try:
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                await asyncio.wait({task})
        finally:
            # The stream is stopped even if this release is itself cancelled.
            if was_open:
                assert self._stream is not None
                await self._stream.stop()
                self._debug("camera released")

    async def report_capture_error(self, error: BaseException) -> ScanSession:
        """Record a failure raised by the host's own capture widget."""
        logger.warning("Capture error reported: %s", error)
        await self._release_camera()
        if not self._session.status.is_busy:
            self._fail(classify(error, ErrorContext.CAPTURE))
        return self._session

    # ------------------------------------------------------------------ #
    # Resolution pipeline
    # ------------------------------------------------------------------ #
    def submit_detection(self, raw: Optional[str]) -> Optional[asyncio.Task]:
        """Start resolving ``raw`` unless a resolution is already running.

        Returns the pipeline task, or ``None`` when the detection was dropped.
        """
        if self._closed:
            return None
        if self._session.status.is_busy:
            self._debug(f"detection ignored while {self._session.status.value}")
            return None
        self._begin(raw)
        self._pipeline = asyncio.ensure_future(self._resolve(raw))
        return self._pipeline

    async def barcode_detected(self, raw: Optional[str]) -> ScanSession:
        """Submit ``raw`` and wait for its resolution to finish."""
        task = self.submit_detection(raw)
        if task is not None:
            await asyncio.wait({task})
        return self._session

    async def upload_image(self, data: bytes, content_type: Optional[str] = None) -> ScanSession:
        """Decode an uploaded image and resolve the barcode found in it."""
        if self._closed or self._image_decoder is None:
            return self._session
        if self._session.mode is not ScanMode.UPLOAD:
            self._debug("upload ignored outside upload mode")
            return self._session
        if self._session.status.is_busy:
            self._debug(f"upload ignored while {self._session.status.value}")
            return self._session

        try:
            self._check_upload(data, content_type)
        except InvalidUploadError as exc:
            self._fail(classify(exc, ErrorContext.CAPTURE))
            return self._session

        self._begin(None)
        task = asyncio.ensure_future(self._decode_upload(data))
        self._pipeline = task
        await asyncio.wait({task})
        return self._session

    def _check_upload(self, data: bytes, content_type: Optional[str]) -> None:
        if not data:
            raise InvalidUploadError("Uploaded file is empty")
        if content_type and content_type.lower() not in ACCEPTED_IMAGE_TYPES:
            raise InvalidUploadError(f"Unsupported image type '{content_type}'")
        if len(data) > self._settings.MAX_UPLOAD_BYTES:
            raise InvalidUploadError(
                f"Image size {len(data)} exceeds limit of {self._settings.MAX_UPLOAD_BYTES} bytes"
            )

    async def _decode_upload(self, data: bytes) -> None:
        assert self._image_decoder is not None
        timeout = self._settings.IMAGE_DECODE_TIMEOUT
        mode = self._session.mode
        try:
            # wait_for cancels the decode if the deadline wins the race.
            detection = await asyncio.wait_for(self._image_decoder.decode(data), timeout=timeout)
        except asyncio.TimeoutError:
            self._fail(classify(DecodeTimeoutError(f"No barcode within {timeout:g}s"), ErrorContext.DETECTION, mode))
            return
        except BarcodeNotFoundError as exc:
            self._fail(classify(exc, ErrorContext.DETECTION, mode))
            return
        except Exception as exc:
            logger.warning("Image decode failed: %s", exc)
            self._fail(classify(exc, ErrorContext.DETECTION, mode))
            return

        self._debug(f"image decoded: {detection.text!r}")
        self._transition(raw_payload=detection.text)
        await self._resolve(detection.text)

    async def _resolve(self, raw: Optional[str]) -> None:
        mode = self._session.mode
        await self._resolve_payload(raw, mode)
        # Any outcome ends the camera scan; reset() re-opens it.
        if mode is ScanMode.CAMERA and self._session.status.is_terminal:
            await self._release_camera()

    async def _resolve_payload(self, raw: Optional[str], mode: ScanMode) -> None:
        candidate = extract_candidate(raw)
        if candidate is None:
            self._fail(classify(InvalidFormatError(f"No ISBN in {raw!r}"), ErrorContext.DETECTION, mode))
            return

        self._debug(f"candidate {candidate.digits} ({candidate.symbology.value})")
        self._transition(status=ScanStatus.VALIDATING)
        validated = validate(candidate, self._policy)
        if not validated.checksum_valid:
            self._fail(
                classify(InvalidChecksumError(validated.isbn), ErrorContext.DETECTION, mode),
                detected_isbn=validated,
            )
            return

        query = f"{ISBN_QUERY_PREFIX}{validated.isbn}"
        self._transition(status=ScanStatus.LOOKING_UP, detected_isbn=validated, query=query)
        try:
            results = list(await self._lookup.search(query))
        except Exception as exc:
            logger.warning("Lookup failed for %s: %s", query, exc)
            self._fail(classify(exc, ErrorContext.LOOKUP))
            return

        if not results:
            self._transition(
                status=ScanStatus.NOT_FOUND,
                error=classify(BookNotFoundError(query), ErrorContext.LOOKUP),
                result_count=0,
            )
            return

        self._transition(status=ScanStatus.FOUND, book=results[0], result_count=len(results))
        elapsed = self.elapsed()
        if elapsed is not None:
            logger.info("Resolved %s in %.2fs via %s", validated.isbn, elapsed, mode.value)

    async def _cancel_pipeline(self) -> None:
        task, self._pipeline = self._pipeline, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.wait({task})
        self._debug("resolution cancelled")
