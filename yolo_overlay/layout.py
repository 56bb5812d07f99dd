"""
Layout normalization for raw YOLO detection outputs.

Exports disagree on axis order: some emit (1, 84, N), others (1, N, 84).
Everything downstream works on the channel-major (84, N) view:
rows 0-3 are cx, cy, w, h, row 4 is objectness (or the first class score),
rows 5-83 are the remaining scores.
"""

from __future__ import annotations

import numbers
from typing import Optional, Sequence, Tuple

import numpy as np


NUM_CHANNELS = 84

UNSUPPORTED_SHAPE = "unsupported_shape"
LENGTH_MISMATCH = "length_mismatch"
INVALID_DATA = "invalid_data"


def try_normalize_layout(
    data, shape: Optional[Sequence[int]] = None
) -> Tuple[Optional[np.ndarray], Optional[str]]:
    """
    Reshape `data` into a channel-major (84, N) float32 array.

    Returns (channels, None) on success or (None, reason) when the tensor
    cannot be interpreted. Never raises on malformed data.
    """

    try:
        arr = np.asarray(data, dtype=np.float32)
    except (TypeError, ValueError):
        return None, INVALID_DATA

    if shape is None:
        dims = tuple(int(d) for d in arr.shape)
    else:
        try:
            items = tuple(shape)
        except TypeError:
            return None, UNSUPPORTED_SHAPE
        # Fractional or boolean dims are malformed metadata, not something to truncate.
        if not all(isinstance(d, numbers.Integral) and not isinstance(d, bool) for d in items):
            return None, UNSUPPORTED_SHAPE
        dims = tuple(int(d) for d in items)

    if len(dims) not in (2, 3) or any(d <= 0 for d in dims):
        return None, UNSUPPORTED_SHAPE
    if len(dims) == 3:
        if dims[0] != 1:
            # Batch > 1 is not supported; callers decode one frame at a time.
            return None, UNSUPPORTED_SHAPE
        dims = dims[1:]

    if arr.size != dims[0] * dims[1]:
        return None, LENGTH_MISMATCH

    p = arr.reshape(dims)
    if dims[0] == NUM_CHANNELS:
        channels = p
    elif dims[1] == NUM_CHANNELS:
        channels = p.T
    else:
        return None, UNSUPPORTED_SHAPE

    channels = np.ascontiguousarray(channels)
    if not np.all(np.isfinite(channels)):
        channels = np.nan_to_num(channels, nan=0.0, posinf=0.0, neginf=0.0)
    return channels, None


def normalize_layout(data, shape: Optional[Sequence[int]] = None) -> Optional[np.ndarray]:
    """
    Convenience wrapper around `try_normalize_layout` that drops the reason.
    """

    channels, _ = try_normalize_layout(data, shape)
    return channels
