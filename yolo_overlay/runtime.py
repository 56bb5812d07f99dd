from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DecodeConfig
from .context import DecodeContext
from .postprocess import YoloPostprocessor
from .types import DecodeResult


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
# Inference output: a NumPy array, or a (flat_data, shape) pair.
RawOutput = Union[np.ndarray, Tuple[Sequence[float], Sequence[int]]]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, otherwise
      against the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def _split_output(output: RawOutput) -> Tuple[Any, Optional[Sequence[int]]]:
    if isinstance(output, tuple) and len(output) == 2:
        return output[0], output[1]
    return output, None


class DetectionStream:
    """
    Single-flight driver for one camera stream: inference -> decode.

    `infer_fn` is the caller's inference call (model loading and
    preprocessing live outside this package). While a frame is being
    processed, frames submitted from other threads are dropped, not queued.
    """

    def __init__(
        self,
        infer_fn: Callable[[Any], RawOutput],
        cfg: DecodeConfig = DecodeConfig(),
        ctx: Optional[DecodeContext] = None,
    ):
        self._infer_fn = infer_fn
        self.post = YoloPostprocessor(cfg)
        self.ctx = ctx if ctx is not None else DecodeContext()

    def submit(self, frame: Any) -> Optional[DecodeResult]:
        """
        Returns the decode result, or None when the frame was dropped because
        another decode is in flight. Errors from `infer_fn` propagate.
        """

        ctx = self.ctx
        if not ctx.gate.try_acquire():
            ctx.note_frame(dropped=True)
            return None

        try:
            ctx.note_frame(dropped=False)
            data, shape = _split_output(self._infer_fn(frame))
            result = self.post.process(data, shape, ctx)
            # Throttle state is only touched while the gate is held.
            log_now = ctx.should_log()
        finally:
            ctx.gate.release()

        if log_now:
            logger.info(
                "frames seen=%d decoded=%d dropped=%d dets=%d %s",
                ctx.frames_seen,
                ctx.frames_decoded,
                ctx.frames_dropped,
                len(result.detections),
                result.diagnostics.summary(),
            )
        return result

    __call__ = submit
