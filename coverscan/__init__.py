"""Book-cover scanning: boundary detection, corner editing and perspective correction."""

__version__ = "0.1.0"

from .config import ScannerConfig
from .detector import ContourDetector, DetectionBackend, OpenCVBackend
from .editor import CornerEditor, EditorState
from .errors import ErrorKind, InvalidQuad, InvalidStateError, RectificationFailed, ScanError
from .geometry import DetectionResult, Frame, Point, Quad, default_quad
from .ordering import order_corners
from .quality import AutoCaptureDebouncer, QualityScorer
from .session import FrameSource, ScanSession, ScanState
from .transformer import (
    BilinearRectifier,
    MatrixRectifier,
    PerspectiveTransformer,
    Rectifier,
    compute_output_dimensions,
)

__all__ = [
    "AutoCaptureDebouncer",
    "BilinearRectifier",
    "ContourDetector",
    "CornerEditor",
    "DetectionBackend",
    "DetectionResult",
    "EditorState",
    "ErrorKind",
    "Frame",
    "FrameSource",
    "InvalidQuad",
    "InvalidStateError",
    "MatrixRectifier",
    "OpenCVBackend",
    "PerspectiveTransformer",
    "Point",
    "Quad",
    "QualityScorer",
    "RectificationFailed",
    "Rectifier",
    "ScanError",
    "ScanSession",
    "ScanState",
    "ScannerConfig",
    "compute_output_dimensions",
    "default_quad",
    "order_corners",
]
