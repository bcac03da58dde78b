"""Shared pytest fixtures for all tests."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Sequence

import pytest

from bookscan.capabilities import static_probe
from bookscan.config import Settings
from bookscan.errors import BarcodeNotFoundError
from bookscan.models import BookRecord, Detection, ScanStatus
from bookscan.session import ScanSessionController


class FakeLookup:
    """Lookup service returning scripted results."""

    def __init__(self, results: Optional[Sequence[BookRecord]] = None, error: Optional[BaseException] = None):
        self.results = list(results or [])
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.queries: List[str] = []

    async def search(self, query: str) -> List[BookRecord]:
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakeImageDecoder:
    """One-shot decoder that answers after an optional delay."""

    def __init__(self, text: Optional[str] = None, error: Optional[BaseException] = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def decode(self, data: bytes) -> Detection:
        self.calls += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        if self.text is None:
            raise BarcodeNotFoundError("No barcode found in image")
        return Detection(text=self.text)


class FakeStreamEngine:
    """Camera stream fed by the test through ``emit``."""

    def __init__(self, start_error: Optional[BaseException] = None):
        self.start_error = start_error
        self.start_calls = 0
        self.stop_calls = 0
        self.running = False
        self._queue: Optional[asyncio.Queue] = None

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self._queue = asyncio.Queue()
        self.running = True

    async def detections(self):
        assert self._queue is not None
        while self.running:
            item = await self._queue.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield Detection(text=item)

    async def stop(self) -> None:
        self.stop_calls += 1
        self.running = False

    def emit(self, item: Any) -> None:
        assert self._queue is not None, "stream not started"
        self._queue.put_nowait(item)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Start every test from default settings."""
    for name in (
        "GOOGLE_BOOKS_API_KEY",
        "BOOKSCAN_SCAN_INTERVAL",
        "BOOKSCAN_IMAGE_DECODE_TIMEOUT",
        "BOOKSCAN_LOOKUP_TIMEOUT",
        "BOOKSCAN_LOOKUP_MAX_RESULTS",
        "BOOKSCAN_MAX_UPLOAD_BYTES",
        "BOOKSCAN_CHECKSUM_POLICY",
        "BOOKSCAN_CAMERA_ENABLED",
        "BOOKSCAN_UPLOAD_ENABLED",
        "BOOKSCAN_LOG_LEVEL",
        "BOOKSCAN_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def sample_isbn() -> str:
    """A valid ISBN-13 (978-0-306-40615-7)."""
    return "9780306406157"


@pytest.fixture
def sample_isbn_10() -> str:
    return "0306406152"


@pytest.fixture
def sample_book(sample_isbn: str, sample_isbn_10: str) -> BookRecord:
    return BookRecord(
        title="Test Book",
        authors=("Test Author",),
        publisher="Test Publisher",
        published_date="2020-01-01",
        page_count=300,
        isbn_13=sample_isbn,
        isbn_10=sample_isbn_10,
        volume_id="test_id",
    )


@pytest.fixture
def lookup(sample_book: BookRecord) -> FakeLookup:
    return FakeLookup(results=[sample_book])


@pytest.fixture
def fake_lookup() -> Callable[..., FakeLookup]:
    return FakeLookup


@pytest.fixture
def fake_image_decoder() -> Callable[..., FakeImageDecoder]:
    return FakeImageDecoder


@pytest.fixture
def fake_stream() -> Callable[..., FakeStreamEngine]:
    return FakeStreamEngine


@pytest.fixture
def make_controller(settings: Settings) -> Callable[..., ScanSessionController]:
    """Build a controller with a fixed capability report."""

    def _make(
        lookup: Any,
        image_decoder: Any = None,
        stream: Any = None,
        camera: bool = False,
        upload: bool = True,
        **kwargs: Any,
    ) -> ScanSessionController:
        kwargs.setdefault("settings", settings)
        return ScanSessionController(
            lookup,
            image_decoder=image_decoder,
            stream_decoder=stream,
            probe=static_probe(camera, upload),
            **kwargs,
        )

    return _make


@pytest.fixture
def wait_for_status() -> Callable[..., Any]:
    """Coroutine helper that polls until the controller reaches a status."""

    async def _wait(controller: ScanSessionController, *statuses: ScanStatus, timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while controller.status not in statuses:
            if loop.time() > deadline:
                raise AssertionError(f"status {controller.status} never reached {statuses}")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def png_bytes() -> bytes:
    """A small blank PNG image."""
    import io

    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), "white").save(buffer, format="PNG")
    return buffer.getvalue()


# Markers for categorizing tests
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Session controller tests with fake engines"
    )
    config.addinivalue_line(
        "markers", "network: Tests that require network access"
    )
