"""
Per-tensor convention detection.

Both resolvers are pure functions of the channel-major (84, N) tensor so
their thresholds can be tested without running extraction or NMS.
"""

from __future__ import annotations

import numpy as np

from .types import CoordSpace, ScoreMode


# Normalized boxes rarely exceed 1.0; pixel boxes are in the hundreds.
NORMALIZED_COORD_LIMIT = 1.5
COORD_SAMPLE_ANCHORS = 200
# obj*cls must beat class-only by this factor before AUTO picks it.
OBJECTNESS_MARGIN = 1.2


def sample_coord_max(channels: np.ndarray) -> float:
    """
    Largest absolute box value over the first `COORD_SAMPLE_ANCHORS` anchors.
    """

    sample = channels[0:4, :COORD_SAMPLE_ANCHORS]
    if sample.size == 0:
        return 0.0
    return float(np.max(np.abs(sample)))


def resolve_coord_space(channels: np.ndarray) -> CoordSpace:
    if sample_coord_max(channels) <= NORMALIZED_COORD_LIMIT:
        return CoordSpace.NORMALIZED
    return CoordSpace.PIXEL


def best_class_only(channels: np.ndarray) -> np.ndarray:
    """
    Per-anchor best score treating rows 4..83 as class scores (floored at 0).
    """

    return np.maximum(channels[4:, :].max(axis=0), 0.0)


def best_obj_times_class(channels: np.ndarray) -> np.ndarray:
    """
    Per-anchor objectness (row 4) times best class score over rows 5..83.
    """

    cls_best = np.maximum(channels[5:, :].max(axis=0), 0.0)
    return channels[4, :].astype(np.float64) * cls_best


def resolve_score_mode(channels: np.ndarray, requested: ScoreMode = ScoreMode.AUTO) -> ScoreMode:
    """
    Decide how scores are encoded for this tensor.

    Explicit modes are returned unchanged. AUTO compares the best score each
    convention would produce over the whole tensor and only picks
    objectness-times-class when it wins by `OBJECTNESS_MARGIN`.
    """

    if requested != ScoreMode.AUTO:
        return requested
    if channels.shape[1] == 0:
        return ScoreMode.CLASS_ONLY

    max_no_obj = max(0.0, float(best_class_only(channels).max()))
    max_obj = max(0.0, float(best_obj_times_class(channels).max()))
    if max_obj > max_no_obj * OBJECTNESS_MARGIN:
        return ScoreMode.OBJ_TIMES_CLASS
    return ScoreMode.CLASS_ONLY
