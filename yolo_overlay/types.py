from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ScoreMode(str, Enum):
    AUTO = "auto"
    CLASS_ONLY = "class_only"
    OBJ_TIMES_CLASS = "obj_times_class"


class CoordSpace(str, Enum):
    NORMALIZED = "normalized"
    PIXEL = "pixel"


@dataclass(frozen=True)
class RectN:
    """
    Axis-aligned rectangle in normalized [0, 1] view coordinates.
    """

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return max(0.0, self.right - self.left)

    @property
    def height(self) -> float:
        return max(0.0, self.bottom - self.top)

    @property
    def center(self) -> Tuple[float, float]:
        return self.left + self.width / 2, self.top + self.height / 2

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


@dataclass(frozen=True)
class Detection:
    """
    Final labeled detection handed to the rendering side.

    The consumer multiplies `rect` by the view width/height to draw it.
    """

    rect: RectN
    class_id: int
    label: str
    score: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.rect.as_xyxy()


@dataclass(frozen=True)
class DecodeDiagnostics:
    n_anchors: int = 0
    coord_space: Optional[CoordSpace] = None
    coord_max: float = 0.0
    score_mode: Optional[ScoreMode] = None
    max_score: float = 0.0
    n_above_threshold: int = 0
    n_candidates: int = 0
    n_kept: int = 0
    # None on success; otherwise a short reason code such as "unsupported_shape".
    failure: Optional[str] = None

    def summary(self) -> str:
        if self.failure is not None:
            return f"failure={self.failure} n={self.n_anchors}"
        coords = self.coord_space.value if self.coord_space is not None else "-"
        mode = self.score_mode.value if self.score_mode is not None else "-"
        return (
            f"n={self.n_anchors} coordsMax={self.coord_max:.3f} coords={coords} mode={mode} "
            f"maxScore={self.max_score:.3f} above={self.n_above_threshold} "
            f"cand={self.n_candidates} kept={self.n_kept}"
        )


@dataclass(frozen=True)
class DecodeResult:
    detections: Tuple[Detection, ...]
    diagnostics: DecodeDiagnostics

    def __len__(self) -> int:
        return len(self.detections)
