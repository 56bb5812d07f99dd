from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .labels import COCO80_LABELS, load_label_table
from .types import ScoreMode


PathLike = Union[str, Path]


@dataclass(frozen=True)
class DecodeConfig:
    """
    Configuration for decoding one raw YOLO output tensor.

    Invalid values are caller bugs, not frame problems, so they fail here at
    construction time instead of inside the per-frame decode.
    """

    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    # Only used when box coordinates turn out to be in pixel units.
    input_size: int = 640
    score_mode: ScoreMode = ScoreMode.AUTO
    max_detections: int = 20
    # False runs NMS per class then merges by score; True suppresses across classes.
    class_agnostic_nms: bool = False
    labels: Tuple[str, ...] = COCO80_LABELS

    def __post_init__(self) -> None:
        if not (0.0 <= self.conf_threshold <= 1.0):
            raise ValueError("conf_threshold must be within [0, 1]")
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        for name in ("input_size", "max_detections"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ValueError(f"{name} must be an integer")
            object.__setattr__(self, name, int(value))
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")
        if not isinstance(self.score_mode, ScoreMode):
            try:
                object.__setattr__(self, "score_mode", ScoreMode(self.score_mode))
            except ValueError as exc:
                raise ValueError(f"Unknown score_mode: {self.score_mode!r}") from exc
        labels = tuple(self.labels)
        if not labels:
            raise ValueError("labels must not be empty")
        object.__setattr__(self, "labels", labels)


_ALLOWED_KEYS = {
    "conf_threshold",
    "iou_threshold",
    "input_size",
    "score_mode",
    "max_detections",
    "class_agnostic_nms",
    "labels",
    "labels_path",
}


def _require_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def decode_config_from_dict(payload: Dict[str, Any], base_dir: Optional[PathLike] = None) -> DecodeConfig:
    """
    Build a `DecodeConfig` from a plain mapping (e.g. parsed JSON).

    `labels_path` is resolved against `base_dir` when relative; it cannot be
    combined with an inline `labels` list.
    """

    if not isinstance(payload, dict):
        raise ValueError("Decode config must be a JSON object")
    unknown = sorted(set(payload.keys()) - _ALLOWED_KEYS)
    if unknown:
        raise ValueError(f"Unknown decode config keys: {unknown}")

    defaults = DecodeConfig()

    score_mode = payload.get("score_mode", defaults.score_mode.value)
    if not isinstance(score_mode, str):
        raise ValueError("score_mode must be a string")

    class_agnostic = payload.get("class_agnostic_nms", defaults.class_agnostic_nms)
    if not isinstance(class_agnostic, bool):
        raise ValueError("class_agnostic_nms must be a boolean")

    if "labels" in payload and "labels_path" in payload:
        raise ValueError("Pass either labels or labels_path, not both")

    labels: Tuple[str, ...] = defaults.labels
    if "labels" in payload:
        raw_labels = payload["labels"]
        if not isinstance(raw_labels, list) or not all(isinstance(x, str) for x in raw_labels):
            raise ValueError("labels must be a list of strings")
        labels = tuple(raw_labels)
    elif "labels_path" in payload:
        labels_path = payload["labels_path"]
        if not isinstance(labels_path, str):
            raise ValueError("labels_path must be a string")
        p = Path(labels_path)
        if not p.is_absolute() and base_dir is not None:
            p = Path(base_dir) / p
        labels = load_label_table(p)

    return DecodeConfig(
        conf_threshold=_require_number(payload, "conf_threshold", defaults.conf_threshold),
        iou_threshold=_require_number(payload, "iou_threshold", defaults.iou_threshold),
        input_size=_require_int(payload, "input_size", defaults.input_size),
        score_mode=score_mode,  # type: ignore[arg-type]
        max_detections=_require_int(payload, "max_detections", defaults.max_detections),
        class_agnostic_nms=class_agnostic,
        labels=labels,
    )


def load_decode_config(path: PathLike) -> DecodeConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Decode config not found: {p}")
    raw = p.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid decode config JSON: {p}") from exc
    return decode_config_from_dict(payload, base_dir=p.parent)
