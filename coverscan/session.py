"""
Scan session: the state machine behind one cover-scanning interaction.

A session pulls frames from a FrameSource, scores each detection for
auto-capture, lets the user refine the corners of the captured frame and
rectifies the result off the calling thread.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from .config import ScannerConfig
from .detector import ContourDetector, DetectionBackend, OpenCVBackend
from .editor import CornerEditor
from .errors import ErrorKind, InvalidStateError, ScanError
from .geometry import DetectionResult, Frame, Point, Quad, default_quad, scale_quad
from .image_io import encode_jpeg
from .quality import AutoCaptureDebouncer, QualityScorer
from .transformer import PerspectiveTransformer

logger = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    CAPTURED = "captured"
    EDITING = "editing"
    RECTIFYING = "rectifying"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


TRANSITIONS: Dict[ScanState, FrozenSet[ScanState]] = {
    ScanState.IDLE: frozenset({ScanState.CAPTURING, ScanState.CAPTURED, ScanState.CANCELLED}),
    ScanState.CAPTURING: frozenset({ScanState.CAPTURED, ScanState.CANCELLED}),
    ScanState.CAPTURED: frozenset({ScanState.EDITING, ScanState.CAPTURING, ScanState.CANCELLED}),
    ScanState.EDITING: frozenset({ScanState.RECTIFYING, ScanState.CAPTURING, ScanState.CANCELLED}),
    ScanState.RECTIFYING: frozenset({
        ScanState.COMPLETE, ScanState.EDITING, ScanState.CAPTURING, ScanState.CANCELLED,
    }),
    ScanState.COMPLETE: frozenset({ScanState.CAPTURING, ScanState.IDLE}),
    ScanState.CANCELLED: frozenset({ScanState.IDLE}),
}


class FrameSource(ABC):
    """Produces frames (a camera, a video file...) and pushes them to a callback."""

    @abstractmethod
    def start(self, on_frame: Callable[[Frame], None]) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class ScanSession:
    """Ties detection, auto-capture, corner editing and rectification together.

    Callbacks:
        on_complete(frame): receives the rectified cover.
        on_error(error): receives the ScanError of a failed rectification.
        on_state_change(old, new): called on every transition.
    """

    def __init__(
        self,
        source: Optional[FrameSource] = None,
        backend: Optional[DetectionBackend] = None,
        config: Optional[ScannerConfig] = None,
        on_complete: Optional[Callable[[Frame], None]] = None,
        on_error: Optional[Callable[[ScanError], None]] = None,
        on_state_change: Optional[Callable[[ScanState, ScanState], None]] = None,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ScannerConfig()
        self.source = source
        self.backend = backend or OpenCVBackend(canny_thresholds=self.config.canny_thresholds)
        self.detector = ContourDetector(self.backend, self.config)
        self.scorer = QualityScorer(self.config)
        self.debouncer = AutoCaptureDebouncer.from_config(self.config, clock=clock)
        self.transformer = PerspectiveTransformer.for_backend(self.backend)

        self.on_complete = on_complete
        self.on_error = on_error
        self.on_state_change = on_state_change

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="coverscan-rectify"
        )
        self._lock = threading.RLock()
        self._generation = 0

        self.state = ScanState.IDLE
        self.current_frame: Optional[Frame] = None
        self.output_image: Optional[Frame] = None
        self.last_error: Optional[ErrorKind] = None
        self.last_result: Optional[DetectionResult] = None
        self.auto_capture_ready = False
        self._editor: Optional[CornerEditor] = None

    # -- properties ---------------------------------------------------------

    @property
    def quad(self) -> Optional[Quad]:
        with self._lock:
            return self._editor.quad if self._editor else None

    @property
    def editor(self) -> Optional[CornerEditor]:
        with self._lock:
            return self._editor

    @property
    def detection_quality(self) -> float:
        """Area ratio of the latest detection, for the live overlay."""
        result = self.last_result
        return result.area_ratio if result else 0.0

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Begin pulling frames and scoring detections."""
        with self._lock:
            self._require(ScanState.IDLE)
            self._ensure_backend()
            self._transition(ScanState.CAPTURING)
            self._start_source()

    def on_frame(self, frame: Frame) -> None:
        """Handle one frame from the source. Frames outside Capturing are ignored."""
        with self._lock:
            if self.state is not ScanState.CAPTURING:
                return
            self.current_frame = frame

        result = self.detector.detect(frame)
        ready = self.scorer.is_ready(result)

        with self._lock:
            if self.state is not ScanState.CAPTURING:
                return
            # Newest result supersedes whatever was not consumed yet
            self.last_result = result
            self.auto_capture_ready = ready
            fire = self.debouncer.update(ready)
            if fire:
                logger.info(f"Auto-capture after stable detection (area {result.area_ratio:.2f})")
                self._capture(frame, detect_on_snapshot=False)

    def capture_frame(self, frame: Optional[Frame] = None) -> Quad:
        """Snapshot a frame and move to corner editing.

        Args:
            frame: Frame to capture; defaults to the latest frame from the source.

        Returns:
            The initial quad offered for editing.
        """
        with self._lock:
            self._require(ScanState.CAPTURING)
            frame = frame if frame is not None else self.current_frame
            if frame is None:
                raise InvalidStateError("No frame has arrived yet")
            logger.info(f"Manual capture of {frame.width}x{frame.height} frame")
            self._capture(frame, detect_on_snapshot=False)
            return self._editor.quad

    def load_image(self, frame: Frame) -> Quad:
        """Use a still photo instead of the live feed."""
        with self._lock:
            self._require(ScanState.IDLE, ScanState.CAPTURING)
            self._ensure_backend()
            logger.info(f"Loaded {frame.width}x{frame.height} image")
            self._capture(frame, detect_on_snapshot=True)
            return self._editor.quad

    def retry(self) -> None:
        """Discard the capture and go back to the live feed."""
        with self._lock:
            self._require(
                ScanState.CAPTURED, ScanState.EDITING, ScanState.RECTIFYING, ScanState.COMPLETE
            )
            self._discard()
            self._transition(ScanState.CAPTURING)
            self._start_source()

    def cancel(self) -> None:
        """Stop everything and drop all session data. Nothing is emitted."""
        with self._lock:
            self._stop_source()
            self._discard()
            if self.state is ScanState.COMPLETE:
                self._transition(ScanState.IDLE)
            elif self.state is not ScanState.IDLE:
                self._transition(ScanState.CANCELLED)
                self._transition(ScanState.IDLE)

    def close(self) -> None:
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # -- corner editing -----------------------------------------------------

    def set_display_size(self, width: float, height: float) -> None:
        with self._lock:
            self._require(ScanState.EDITING)
            self._editor = self._editor.with_display_size(width, height)

    def select_corner(self, display_point: Point, touch: bool = False) -> Optional[int]:
        with self._lock:
            self._require(ScanState.EDITING)
            self._editor = self._editor.select_corner(display_point, touch=touch)
            return self._editor.selected

    def adjust_corner(self, display_point: Point, index: Optional[int] = None) -> Optional[Point]:
        """Drag a corner (the selected one by default) to ``display_point``.

        Returns:
            The corner's new, clamped position, or None if no corner is selected.
        """
        with self._lock:
            self._require(ScanState.EDITING)
            self._editor = self._editor.drag_to(display_point, index=index)
            selected = self._editor.selected
            return self._editor.quad[selected] if selected is not None else None

    def release_corner(self) -> None:
        with self._lock:
            if self._editor is not None:
                self._editor = self._editor.release()

    # -- rectification ------------------------------------------------------

    def confirm(self) -> "Future[Optional[Frame]]":
        """Rectify the current quad in the background.

        Returns:
            Future resolving to the output frame, or None if rectification
            failed or its result was discarded.
        """
        with self._lock:
            self._require(ScanState.EDITING)
            self._editor = self._editor.release()
            self._generation += 1
            generation = self._generation
            frame, quad = self.current_frame, self._editor.quad
            self.last_error = None
            self._transition(ScanState.RECTIFYING)

        return self._executor.submit(self._rectify, generation, frame, quad)

    def output_jpeg(self) -> bytes:
        """Encode the rectified cover for upload at the configured JPEG quality."""
        with self._lock:
            self._require(ScanState.COMPLETE)
            output = self.output_image
        return encode_jpeg(output, quality=self.config.jpeg_quality)

    def _rectify(self, generation: int, frame: Frame, quad: Quad) -> Optional[Frame]:
        error: Optional[ScanError] = None
        output: Optional[Frame] = None
        try:
            output = self.transformer.rectify(frame, quad)
        except ScanError as e:
            error = e

        with self._lock:
            if generation != self._generation or self.state is not ScanState.RECTIFYING:
                logger.info("Discarding rectification result of a superseded request")
                return None

            if error is not None:
                logger.error(f"Rectification failed: {error}")
                self.last_error = error.kind
                self._transition(ScanState.EDITING)
            else:
                logger.info(f"Rectified cover to {output.width}x{output.height}")
                self.output_image = output
                self._transition(ScanState.COMPLETE)

        if error is not None:
            if self.on_error:
                self.on_error(error)
            return None

        if self.on_complete:
            self.on_complete(output)
        return output

    # -- internals ----------------------------------------------------------

    def _capture(self, frame: Frame, detect_on_snapshot: bool) -> None:
        snapshot = frame.copy()
        self._stop_source()
        self.debouncer.reset()
        self.current_frame = snapshot

        # Offer a near-full-frame quad straight away, then refine it
        self._editor = CornerEditor.create(
            default_quad(snapshot.width, snapshot.height, self.config.default_quad_margin),
            snapshot.size,
            config=self.config,
        )
        self._transition(ScanState.CAPTURED)

        result = self.last_result
        if detect_on_snapshot or result is None or result.quad is None:
            result = self.detector.detect(snapshot)

        if result.quad is not None:
            self._editor = self._editor.with_quad(self._rescale(result, snapshot.size))
        else:
            logger.info("No usable contour, keeping default corners")

        self._transition(ScanState.EDITING)

    @staticmethod
    def _rescale(result: DetectionResult, size: Tuple[int, int]) -> Quad:
        rw, rh = result.frame_size
        if (rw, rh) == size or not rw or not rh:
            return result.quad
        return scale_quad(result.quad, size[0] / rw, size[1] / rh)

    def _discard(self) -> None:
        # Bumping the generation orphans any in-flight rectification
        self._generation += 1
        self.current_frame = None
        self.output_image = None
        self.last_error = None
        self.last_result = None
        self.auto_capture_ready = False
        self._editor = None
        self.debouncer.reset()

    def _ensure_backend(self) -> None:
        if not self.backend.ready and not self.backend.initialize():
            logger.warning("Detection backend unavailable; frames will not be analysed")

    def _start_source(self) -> None:
        if self.source is not None:
            self.source.start(self.on_frame)

    def _stop_source(self) -> None:
        if self.source is not None:
            self.source.stop()

    def _require(self, *states: ScanState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidStateError(f"Session is {self.state.value}, expected one of: {allowed}")

    def _transition(self, new: ScanState) -> None:
        old = self.state
        if new not in TRANSITIONS[old]:
            raise InvalidStateError(f"Cannot go from {old.value} to {new.value}")
        self.state = new
        logger.info(f"Scan session {old.value} -> {new.value}")
        if self.on_state_change:
            self.on_state_change(old, new)
