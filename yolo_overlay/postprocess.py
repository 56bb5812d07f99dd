from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import DecodeConfig
from .context import DecodeContext
from .heuristics import resolve_coord_space, resolve_score_mode, sample_coord_max
from .labels import LabelMapper
from .layout import try_normalize_layout
from .nms import NMSConfig, nms, nms_per_class
from .types import CoordSpace, DecodeDiagnostics, DecodeResult, Detection, RectN, ScoreMode


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateBatch:
    """
    Anchors that survived the confidence filter and the degenerate-box check.

    Arrays are parallel, one row per candidate, in anchor order.
    """

    raw_boxes: np.ndarray  # (K, 4) cx, cy, w, h in source units
    rects: np.ndarray  # (K, 4) left, top, right, bottom clamped to [0, 1]
    scores: np.ndarray  # (K,)
    class_ids: np.ndarray  # (K,)
    n_above_threshold: int = 0
    max_score: float = 0.0

    def __len__(self) -> int:
        return int(self.scores.shape[0])


def score_anchors(channels: np.ndarray, score_mode: ScoreMode) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-anchor (score, class_id) under an explicit score mode.

    Class ids are relative to the first class row (row 4 for CLASS_ONLY,
    row 5 for OBJ_TIMES_CLASS). Anchors whose class scores are all <= 0 get
    score 0 and class 0.
    """

    if score_mode == ScoreMode.AUTO:
        raise ValueError("score_anchors needs a resolved score mode, got AUTO")

    first = 5 if score_mode == ScoreMode.OBJ_TIMES_CLASS else 4
    class_scores = channels[first:, :]
    class_ids = np.argmax(class_scores, axis=0)
    best = class_scores[class_ids, np.arange(class_scores.shape[1])]
    class_ids = np.where(best > 0, class_ids, 0)
    best = np.maximum(best, 0.0)

    if score_mode == ScoreMode.OBJ_TIMES_CLASS:
        # float64 so large finite float32 inputs cannot overflow to inf.
        return channels[4, :].astype(np.float64) * best, class_ids
    return best, class_ids


def extract_candidates(
    channels: np.ndarray,
    cfg: DecodeConfig,
    score_mode: Optional[ScoreMode] = None,
    coord_space: Optional[CoordSpace] = None,
) -> CandidateBatch:
    """
    Score every anchor, drop those under `cfg.conf_threshold`, and convert the
    rest to clamped, normalized corner boxes. Unresolved conventions are
    detected from the tensor itself.
    """

    if score_mode is None or score_mode == ScoreMode.AUTO:
        score_mode = resolve_score_mode(channels, cfg.score_mode if score_mode is None else score_mode)
    if coord_space is None:
        coord_space = resolve_coord_space(channels)

    scores, class_ids = score_anchors(channels, score_mode)
    max_score = float(scores.max()) if scores.size else 0.0

    keep = scores >= cfg.conf_threshold
    n_above = int(np.count_nonzero(keep))
    raw_boxes = channels[0:4, keep].T
    scores, class_ids = scores[keep], class_ids[keep]

    cx, cy, w, h = raw_boxes.astype(np.float64).T
    left = cx - w / 2
    top = cy - h / 2
    rects = np.stack([left, top, left + w, top + h], axis=1)
    if coord_space == CoordSpace.PIXEL:
        rects = rects / float(cfg.input_size)
    rects = np.clip(rects, 0.0, 1.0)

    valid = (rects[:, 2] > rects[:, 0]) & (rects[:, 3] > rects[:, 1])
    return CandidateBatch(
        raw_boxes=raw_boxes[valid],
        rects=rects[valid],
        scores=scores[valid],
        class_ids=class_ids[valid],
        n_above_threshold=n_above,
        max_score=max_score,
    )


class YoloPostprocessor:
    """
    Turns one raw YOLO output tensor into labeled, deduplicated detections.

    Supported layouts (per frame):
    - (84, N) / (1, 84, N): channel-major, e.g. 84 x 8400 for yolov8/v11
    - (N, 84) / (1, N, 84): anchor-major, transposed internally

    Rows are [cx, cy, w, h, obj-or-class0, scores...]. Whether row 4 is an
    objectness score and whether boxes are normalized or in pixels is
    resolved per tensor unless the config forces it.

    Malformed tensors never raise: they produce an empty result whose
    diagnostics explain why.
    """

    def __init__(self, cfg: DecodeConfig = DecodeConfig()):
        self.cfg = cfg
        self.labels = LabelMapper(cfg.labels)
        self._nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold, max_detections=cfg.max_detections)

    def process(
        self,
        data,
        shape: Optional[Sequence[int]] = None,
        ctx: Optional[DecodeContext] = None,
    ) -> DecodeResult:
        """
        Args:
            data: flat float sequence (row-major per `shape`) or a NumPy array
            shape: tensor shape; defaults to `data.shape` for arrays
            ctx: optional per-stream context that receives the diagnostics
        """

        channels, failure = try_normalize_layout(data, shape)
        if channels is None:
            return self._finish((), DecodeDiagnostics(failure=failure), ctx)

        coord_max = sample_coord_max(channels)
        coord_space = resolve_coord_space(channels)
        score_mode = resolve_score_mode(channels, self.cfg.score_mode)
        batch = extract_candidates(channels, self.cfg, score_mode=score_mode, coord_space=coord_space)

        keep = self._apply_nms(batch)
        detections = tuple(
            Detection(
                rect=RectN(*(float(v) for v in batch.rects[i])),
                class_id=int(batch.class_ids[i]),
                label=self.labels(int(batch.class_ids[i])),
                score=float(batch.scores[i]),
            )
            for i in keep
        )

        diagnostics = DecodeDiagnostics(
            n_anchors=int(channels.shape[1]),
            coord_space=coord_space,
            coord_max=coord_max,
            score_mode=score_mode,
            max_score=batch.max_score,
            n_above_threshold=batch.n_above_threshold,
            n_candidates=len(batch),
            n_kept=len(detections),
        )
        return self._finish(detections, diagnostics, ctx)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _apply_nms(self, batch: CandidateBatch) -> np.ndarray:
        if len(batch) == 0:
            return np.empty((0,), dtype=np.int64)
        if self.cfg.class_agnostic_nms:
            return nms(batch.rects, batch.scores, self._nms_cfg)
        return nms_per_class(batch.rects, batch.scores, batch.class_ids, self._nms_cfg)

    def _finish(
        self,
        detections: Tuple[Detection, ...],
        diagnostics: DecodeDiagnostics,
        ctx: Optional[DecodeContext],
    ) -> DecodeResult:
        logger.debug("decode: %s conf=%.3f", diagnostics.summary(), self.cfg.conf_threshold)
        if ctx is not None:
            ctx.record(diagnostics)
        return DecodeResult(detections=detections, diagnostics=diagnostics)


def decode_with_diagnostics(
    data,
    shape: Optional[Sequence[int]] = None,
    cfg: DecodeConfig = DecodeConfig(),
    ctx: Optional[DecodeContext] = None,
) -> DecodeResult:
    return YoloPostprocessor(cfg).process(data, shape, ctx)


def decode(
    data,
    shape: Optional[Sequence[int]] = None,
    cfg: DecodeConfig = DecodeConfig(),
    ctx: Optional[DecodeContext] = None,
) -> Tuple[Detection, ...]:
    """
    Decode one raw output tensor into detections, best score first.
    """

    return decode_with_diagnostics(data, shape, cfg, ctx).detections
