"""
Result sinks: where the pipeline delivers each frame's outcome.

Timing travels with the outcome so that instrumentation stays out of the
decode/NMS/distance code.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Union

from .types import EmptyDetection, FrameTiming, ObjectDetectionResult


logger = logging.getLogger(__name__)


class DetectionSink(Protocol):
    def on_detect(self, results: Sequence[ObjectDetectionResult], timing: FrameTiming) -> None:
        ...

    def on_empty_detect(self, timing: FrameTiming) -> None:
        ...


class CollectingSink:
    """
    Keeps the most recent outcome and a running frame count.
    """

    def __init__(self) -> None:
        self.last: Optional[Union[EmptyDetection, List[ObjectDetectionResult]]] = None
        self.last_timing: Optional[FrameTiming] = None
        self.frames = 0
        self.empty_frames = 0

    def on_detect(self, results: Sequence[ObjectDetectionResult], timing: FrameTiming) -> None:
        self.last = list(results)
        self.last_timing = timing
        self.frames += 1

    def on_empty_detect(self, timing: FrameTiming) -> None:
        self.last = EmptyDetection()
        self.last_timing = timing
        self.frames += 1
        self.empty_frames += 1


def deliver(
    sink: DetectionSink,
    outcome: Union[EmptyDetection, Sequence[ObjectDetectionResult]],
    timing: Optional[FrameTiming],
) -> None:
    timing = timing or FrameTiming()
    if isinstance(outcome, EmptyDetection):
        sink.on_empty_detect(timing)
    else:
        sink.on_detect(outcome, timing)


def _format_timing(timing: FrameTiming) -> str:
    parts = [
        f"decode={timing.decode_ms:.3f}ms",
        f"nms={timing.nms_ms:.3f}ms",
        f"distance={timing.distance_ms:.3f}ms",
        f"total={timing.total_ms:.3f}ms",
    ]
    if timing.preprocess_ms is not None:
        parts.insert(0, f"preprocess={timing.preprocess_ms:.3f}ms")
    if timing.inference_ms is not None:
        parts.insert(1 if timing.preprocess_ms is not None else 0, f"inference={timing.inference_ms:.3f}ms")
    return " ".join(parts)


class LoggingSink:
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def on_detect(self, results: Sequence[ObjectDetectionResult], timing: FrameTiming) -> None:
        with_distance = sum(1 for r in results if r.distance is not None)
        self._log.info("detected %d obstacle(s), %d with distance", len(results), with_distance)
        self._log.debug("frame timing: %s", _format_timing(timing))

    def on_empty_detect(self, timing: FrameTiming) -> None:
        self._log.info("no obstacles detected")
        self._log.debug("frame timing: %s", _format_timing(timing))
