from __future__ import annotations

from typing import Any, Callable, List, Optional

from bookscan.config import Settings
from bookscan.models import CapabilityReport, ScanMode

CapabilityProbe = Callable[[], CapabilityReport]


def probe_capabilities(
    camera: Optional[Any] = None,
    image_decoder: Optional[Any] = None,
    settings: Optional[Settings] = None,
) -> CapabilityReport:
    """Work out which capture modes can be offered.

    ``camera`` is the stream engine (or ``None`` when the host has no camera
    wired up) and ``image_decoder`` the one-shot engine.
    """
    cfg = settings or Settings()
    reasons: List[str] = []

    camera_available = True
    if not cfg.CAMERA_ENABLED:
        camera_available = False
        reasons.append("Camera scanning disabled by configuration")
    elif camera is None:
        camera_available = False
        reasons.append("No camera source available")

    upload_available = True
    if not cfg.UPLOAD_ENABLED:
        upload_available = False
        reasons.append("Image upload disabled by configuration")
    elif image_decoder is None:
        upload_available = False
        reasons.append("No image decoder available")

    return CapabilityReport(
        camera_available=camera_available,
        upload_available=upload_available,
        reasons=tuple(reasons),
    )


def static_probe(camera: bool = True, upload: bool = True, *reasons: str) -> CapabilityProbe:
    """Probe returning a fixed report, for hosts that already know the answer."""
    report = CapabilityReport(camera_available=camera, upload_available=upload, reasons=tuple(reasons))
    return lambda: report


def initial_mode(report: CapabilityReport) -> ScanMode:
    return ScanMode.CAMERA if report.camera_available else ScanMode.UPLOAD


def mode_available(report: CapabilityReport, mode: ScanMode) -> bool:
    if mode is ScanMode.CAMERA:
        return report.camera_available
    return report.upload_available
