"""Rolling debug log for on-screen scanner diagnostics."""
from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Callable, Deque, List, Optional

from bookscan.constants import DEBUG_LOG_SIZE


class DebugLog:
    """
    Keeps the most recent scanner messages for a debug overlay.

    Instances are handed to a session controller, which records every state
    transition and notable event. Only the last ``max_size`` entries are
    retained, each prefixed with the wall-clock time it was recorded.
    """

    def __init__(self, max_size: int = DEBUG_LOG_SIZE, now: Optional[Callable[[], datetime]] = None):
        self.max_size = max_size
        self._entries: Deque[str] = deque(maxlen=max_size)
        self._now = now or datetime.now

    def __call__(self, message: str) -> None:
        self.record(message)

    def record(self, message: str) -> None:
        timestamp = self._now().strftime("%H:%M:%S")
        self._entries.append(f"[{timestamp}] {message}")

    def messages(self) -> List[str]:
        """Recorded entries, oldest first."""
        return list(self._entries)

    def latest(self) -> Optional[str]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DebugLog(size={len(self)}, max_size={self.max_size})"
