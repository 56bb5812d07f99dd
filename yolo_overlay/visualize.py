"""
Debug overlay for decoded detections. Not a UI layer: the app's own view
code renders boxes in production, this only exists to eyeball saved tensors.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection


def _class_color(class_id: int) -> Tuple[int, int, int]:
    # Stable per class; BGR for OpenCV.
    rng = np.random.default_rng(int(class_id))
    b, g, r = rng.integers(64, 256, size=3)
    return int(b), int(g), int(r)


def to_pixel_rect(det: Detection, width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Scale a normalized detection rect to integer pixel corners inside a
    width x height view.
    """

    left, top, right, bottom = det.as_xyxy()
    x1 = int(np.clip(round(left * width), 0, width - 1))
    y1 = int(np.clip(round(top * height), 0, height - 1))
    x2 = int(np.clip(round(right * width), 0, width - 1))
    y2 = int(np.clip(round(bottom * height), 0, height - 1))
    return x1, y1, x2, y2


def draw_detections(image_bgr: np.ndarray, detections: Iterable[Detection], show_score: bool = True) -> np.ndarray:
    """
    Return a copy of `image_bgr` with each detection's box and label drawn.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {image_bgr.shape}")

    out = image_bgr.copy()
    h, w = out.shape[:2]
    for det in detections:
        x1, y1, x2, y2 = to_pixel_rect(det, w, h)
        color = _class_color(det.class_id)
        cv2.rectangle(out, (x1, y1), (x2, y2), color, 2)
        text = f"{det.label} {det.score:.2f}" if show_score else det.label
        cv2.putText(out, text, (x1, max(y1 - 4, 12)), cv2.FONT_HERSHEY_SIMPLEX, 0.45, color, 1, cv2.LINE_AA)
    return out
