from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Union

import numpy as np

from .types import RectN


BoxLike = Union[RectN, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: int = 20


def _as_xyxy(box: BoxLike) -> np.ndarray:
    if isinstance(box, RectN):
        return np.array(box.as_xyxy(), dtype=np.float64)
    return np.asarray(box, dtype=np.float64).reshape(4)


def iou(a: BoxLike, b: BoxLike) -> float:
    """
    Intersection over union of two xyxy boxes; 0 when the union is empty.
    """

    return float(_iou_one_to_many(_as_xyxy(a), _as_xyxy(b)[None, :])[0])


def _iou_one_to_many(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[2], others[:, 2])
    yy2 = np.minimum(box[3], others[:, 3])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    area_a = max(0.0, box[2] - box[0]) * max(0.0, box[3] - box[1])
    area_b = np.maximum(0.0, others[:, 2] - others[:, 0]) * np.maximum(0.0, others[:, 3] - others[:, 1])
    union = area_a + area_b - inter

    out = np.zeros(others.shape[0], dtype=np.float64)
    ok = union > 0
    out[ok] = inter[ok] / union[ok]
    return out


def _descending(scores: np.ndarray) -> np.ndarray:
    # Stable so equal scores keep their anchor order and results are reproducible.
    return np.argsort(-scores, kind="stable")


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS across all boxes. Expects boxes shape (N,4) in xyxy and
    scores shape (N,). Returns indices of kept boxes, best score first.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = _descending(scores)
    keep: List[int] = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = order[0]
        keep.append(int(i))
        if order.size == 1:
            break

        overlap = _iou_one_to_many(boxes[i], boxes[order[1:]])
        order = order[1:][overlap <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def nms_per_class(boxes: np.ndarray, scores: np.ndarray, class_ids: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Run `nms` independently for every class, then merge the survivors by
    descending score and keep at most `cfg.max_detections`.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], cfg)
        kept.extend(idx[keep_local].tolist())

    merged = np.array(sorted(kept), dtype=np.int64)
    merged = merged[_descending(scores[merged])]
    return merged[: cfg.max_detections]
