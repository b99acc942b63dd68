"""Auto-capture readiness scoring and debouncing."""

import logging
import threading
import time
from typing import Callable, Optional

from .config import ScannerConfig
from .geometry import DetectionResult

logger = logging.getLogger(__name__)


class QualityScorer:
    """Decides whether a single detection is good enough to auto-capture.

    The readiness band is narrower than the detector's acceptance band: a
    contour can be detected without being ready.
    """

    def __init__(self, config: Optional[ScannerConfig] = None):
        self.config = config or ScannerConfig()

    def is_ready(self, result: DetectionResult) -> bool:
        low, high = self.config.auto_capture_ready_ratio_range
        return (
            result.quad is not None
            and low <= result.area_ratio <= high
            and result.corner_count >= 4
        )


class AutoCaptureDebouncer:
    """Fires once readiness has held continuously for a time window.

    Any not-ready reading resets the window. ``update`` is safe to call
    from several threads; reset and check happen under one lock.
    """

    def __init__(self, window_s: float = 1.0, clock: Callable[[], float] = time.monotonic):
        """Initialize the debouncer.

        Args:
            window_s: Seconds readiness must hold before firing.
            clock: Monotonic time source, in seconds.
        """
        self.window_s = window_s
        self.clock = clock
        self._lock = threading.Lock()
        self._ready_since: Optional[float] = None

    @classmethod
    def from_config(cls, config: ScannerConfig, clock: Callable[[], float] = time.monotonic):
        return cls(window_s=config.auto_capture_debounce_s, clock=clock)

    @property
    def ready_since(self) -> Optional[float]:
        with self._lock:
            return self._ready_since

    def update(self, ready: bool) -> bool:
        """Record one readiness reading.

        Returns:
            True exactly when the window has elapsed; the debouncer then
            resets so the next capture needs a fresh window.
        """
        with self._lock:
            if not ready:
                self._ready_since = None
                return False

            now = self.clock()
            if self._ready_since is None:
                self._ready_since = now

            if now - self._ready_since >= self.window_s:
                logger.debug(f"Detection stable for {now - self._ready_since:.2f}s")
                self._ready_since = None
                return True

            return False

    def reset(self) -> None:
        with self._lock:
            self._ready_since = None
