"""
Shared YOLO detection post-processing for camera overlays.

Turns a raw detector output tensor ((1, 84, N) or (1, N, 84)) into a short,
deduplicated list of labeled boxes normalized to [0, 1]. The core depends on
NumPy only; OpenCV is needed just for the debug overlay.
"""

from .config import DecodeConfig, decode_config_from_dict, load_decode_config
from .context import DecodeContext, FrameGate
from .heuristics import resolve_coord_space, resolve_score_mode
from .labels import COCO80_LABELS, LabelMapper, load_class_names, load_label_table
from .layout import normalize_layout
from .nms import NMSConfig, iou, nms, nms_per_class
from .postprocess import CandidateBatch, YoloPostprocessor, decode, decode_with_diagnostics, extract_candidates
from .runtime import DetectionStream, find_project_root, resolve_path
from .types import CoordSpace, DecodeDiagnostics, DecodeResult, Detection, RectN, ScoreMode
from .visualize import draw_detections

__all__ = [
    "DecodeConfig",
    "decode_config_from_dict",
    "load_decode_config",
    "DecodeContext",
    "FrameGate",
    "resolve_coord_space",
    "resolve_score_mode",
    "COCO80_LABELS",
    "LabelMapper",
    "load_class_names",
    "load_label_table",
    "normalize_layout",
    "NMSConfig",
    "iou",
    "nms",
    "nms_per_class",
    "CandidateBatch",
    "YoloPostprocessor",
    "decode",
    "decode_with_diagnostics",
    "extract_candidates",
    "DetectionStream",
    "find_project_root",
    "resolve_path",
    "CoordSpace",
    "DecodeDiagnostics",
    "DecodeResult",
    "Detection",
    "RectN",
    "ScoreMode",
    "draw_detections",
]
