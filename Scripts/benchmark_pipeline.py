from __future__ import annotations

import argparse
import statistics
from dataclasses import dataclass
from typing import List

import numpy as np

from obstacle_kit import CameraGeometry, CollectingSink, ObstaclePipeline, PipelineConfig, TensorShape


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


def _summarize(ms: List[float]) -> TimingSummary:
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


def synthetic_tensor(rng: np.random.Generator, shape: TensorShape, hit_rate: float) -> np.ndarray:
    """
    Random channel-major output where roughly `hit_rate` of the anchors carry a confident class.
    """

    e = shape.elements
    p = np.zeros((shape.channels, e), dtype=np.float32)
    p[0] = rng.uniform(0.2, 0.8, size=e)
    p[1] = rng.uniform(0.2, 0.8, size=e)
    p[2] = rng.uniform(0.02, 0.3, size=e)
    p[3] = rng.uniform(0.02, 0.3, size=e)
    p[4:] = rng.uniform(0.0, 0.2, size=(shape.num_classes, e))
    hits = rng.random(e) < hit_rate
    cls = rng.integers(0, shape.num_classes, size=e)
    p[4 + cls[hits], np.flatnonzero(hits)] = rng.uniform(0.4, 1.0, size=int(hits.sum()))
    return p.reshape(-1)


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode/NMS/distance on synthetic output tensors.")
    parser.add_argument("--classes", type=int, default=80, help="Number of classes in the synthetic output.")
    parser.add_argument("--elements", type=int, default=8400, help="Number of anchor elements.")
    parser.add_argument("--hit-rate", type=float, default=0.01, help="Fraction of anchors above the threshold.")
    parser.add_argument("--conf", type=float, default=0.35, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.3, help="IoU threshold for NMS.")
    parser.add_argument("--frames", type=int, default=200, help="Frames to record.")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup frames to run but not record.")
    args = parser.parse_args()

    if args.frames < 1:
        raise ValueError("--frames must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if not 0.0 <= args.hit_rate <= 1.0:
        raise ValueError("--hit-rate must be in [0, 1]")

    shape = TensorShape(channels=args.classes + 4, elements=args.elements)
    labels = [f"class_{i}" for i in range(args.classes)]
    sink = CollectingSink()
    pipeline = ObstaclePipeline(
        shape,
        labels,
        PipelineConfig(confidence_threshold=args.conf, iou_threshold=args.iou),
        camera=CameraGeometry(focal_length_mm=4.25, sensor_height_mm=3.6, image_height_pixels=640.0),
        sink=sink,
    )

    rng = np.random.default_rng(0)
    decode_ms: List[float] = []
    nms_ms: List[float] = []
    distance_ms: List[float] = []
    total_ms: List[float] = []

    for i in range(args.warmup + args.frames):
        pipeline.detect(synthetic_tensor(rng, shape, args.hit_rate))
        if i < args.warmup or sink.last_timing is None:
            continue
        decode_ms.append(sink.last_timing.decode_ms)
        nms_ms.append(sink.last_timing.nms_ms)
        distance_ms.append(sink.last_timing.distance_ms)
        total_ms.append(sink.last_timing.total_ms)

    print(_format_summary("decode", _summarize(decode_ms)))
    print(_format_summary("nms", _summarize(nms_ms)))
    print(_format_summary("distance", _summarize(distance_ms)))
    print(_format_summary("total", _summarize(total_ms)))
    print(f"frames={sink.frames} empty_frames={sink.empty_frames} warmup={args.warmup}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
