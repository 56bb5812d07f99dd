from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .types import DecodeDiagnostics


class FrameGate:
    """
    Non-blocking single-flight gate: at most one decode per stream at a time.

    Frames that arrive while the gate is held are meant to be dropped, not
    queued, because inference is usually slower than the frame interval.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


@dataclass
class DecodeContext:
    """
    Caller-owned state for one camera stream.

    Holds everything that would otherwise be hidden mutable state on a
    detector object: the busy gate, frame counters and log throttling.
    One context per stream; never share it between streams.
    """

    log_interval_s: float = 1.0
    clock: Callable[[], float] = time.monotonic
    gate: FrameGate = field(default_factory=FrameGate)
    frames_seen: int = 0
    frames_decoded: int = 0
    frames_dropped: int = 0
    last_diagnostics: Optional[DecodeDiagnostics] = None
    _last_log_ts: Optional[float] = field(default=None, init=False, repr=False)
    _stats_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.log_interval_s < 0:
            raise ValueError("log_interval_s must be >= 0")

    def note_frame(self, dropped: bool) -> None:
        # Dropped frames are counted from threads that lost the gate.
        with self._stats_lock:
            self.frames_seen += 1
            if dropped:
                self.frames_dropped += 1

    def record(self, diagnostics: DecodeDiagnostics) -> None:
        self.frames_decoded += 1
        self.last_diagnostics = diagnostics

    def should_log(self) -> bool:
        now = self.clock()
        if self._last_log_ts is None or now - self._last_log_ts >= self.log_interval_s:
            self._last_log_ts = now
            return True
        return False

    def reset(self) -> None:
        self.frames_seen = 0
        self.frames_decoded = 0
        self.frames_dropped = 0
        self.last_diagnostics = None
        self._last_log_ts = None
