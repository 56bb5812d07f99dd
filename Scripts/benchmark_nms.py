from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolo_overlay import DecodeConfig, ScoreMode, YoloPostprocessor


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = [v * 1000.0 for v in values_s]
    ms_sorted = sorted(ms)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_tensor(anchors: int, hot_fraction: float, imgsz: int, seed: int = 0) -> np.ndarray:
    """
    Channel-major (1, 84, N) pixel-space tensor with a fraction of confident anchors.
    """

    rng = np.random.default_rng(seed)
    out = np.zeros((84, anchors), dtype=np.float32)
    out[0:2, :] = rng.uniform(0, imgsz, size=(2, anchors))
    out[2:4, :] = rng.uniform(8, imgsz / 4, size=(2, anchors))
    out[4:, :] = rng.uniform(0.0, 0.05, size=(80, anchors))

    hot = rng.random(anchors) < hot_fraction
    hot_idx = np.where(hot)[0]
    hot_cls = rng.integers(0, 80, size=hot_idx.size)
    out[4 + hot_cls, hot_idx] = rng.uniform(0.3, 1.0, size=hot_idx.size)
    return out[None, ...]


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode latency with per-class vs class-agnostic NMS.")
    parser.add_argument("--anchors", type=int, default=8400, help="Anchors per synthetic tensor.")
    parser.add_argument("--hot-fraction", type=float, default=0.02, help="Share of anchors with a confident class.")
    parser.add_argument("--imgsz", type=int, default=640, help="Model input size for pixel-space boxes.")
    parser.add_argument("--conf", type=float, default=0.25, help="Confidence threshold (pre-NMS).")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=20, help="Max detections to keep after NMS.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup iterations to run but not record.")
    parser.add_argument("--repeats", type=int, default=200, help="Recorded iterations.")
    args = parser.parse_args()

    if args.anchors < 1:
        raise ValueError("--anchors must be >= 1")
    if not (0.0 <= args.hot_fraction <= 1.0):
        raise ValueError("--hot-fraction must be within [0, 1]")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    base = dict(
        conf_threshold=float(args.conf),
        iou_threshold=float(args.iou),
        input_size=int(args.imgsz),
        score_mode=ScoreMode.CLASS_ONLY,
        max_detections=int(args.max_det),
    )
    per_class = YoloPostprocessor(DecodeConfig(class_agnostic_nms=False, **base))
    agnostic = YoloPostprocessor(DecodeConfig(class_agnostic_nms=True, **base))
    auto = YoloPostprocessor(DecodeConfig(class_agnostic_nms=False, **{**base, "score_mode": ScoreMode.AUTO}))

    preds = synthetic_tensor(int(args.anchors), float(args.hot_fraction), int(args.imgsz))

    t_per_class: List[float] = []
    t_agnostic: List[float] = []
    t_auto: List[float] = []
    kept_per_class = kept_agnostic = 0

    for i in range(int(args.warmup) + int(args.repeats)):
        t0 = time.perf_counter()
        r_pc = per_class.process(preds)
        t1 = time.perf_counter()
        r_ag = agnostic.process(preds)
        t2 = time.perf_counter()
        auto.process(preds)
        t3 = time.perf_counter()

        if i < int(args.warmup):
            continue
        t_per_class.append(t1 - t0)
        t_agnostic.append(t2 - t1)
        t_auto.append(t3 - t2)
        kept_per_class, kept_agnostic = len(r_pc), len(r_ag)

    print(_format_summary("decode_per_class_nms", _summarize_ms(t_per_class)))
    print(_format_summary("decode_class_agnostic_nms", _summarize_ms(t_agnostic)))
    print(_format_summary("decode_auto_score_mode", _summarize_ms(t_auto)))
    print(f"anchors={args.anchors} kept_per_class={kept_per_class} kept_agnostic={kept_agnostic}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
