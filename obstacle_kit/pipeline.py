from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Tuple, Union

from .config import CameraGeometry, PipelineConfig, TensorShape
from .decode import TensorNotReadyError, decode
from .geometry import DEFAULT_REFERENCE_HEIGHTS, ReferenceHeights, estimate_distance
from .nms import suppress
from .sinks import DetectionSink, deliver
from .types import CandidateDetection, EmptyDetection, FrameTiming, ObjectDetectionResult


logger = logging.getLogger(__name__)

DetectionOutcome = Union[EmptyDetection, List[ObjectDetectionResult]]


def _ms(start: float, end: float) -> float:
    return (end - start) * 1000.0


class ObstaclePipeline:
    """
    Post-inference core: decode -> NMS -> distance, one frame at a time.

    Everything is fixed at construction; no state is kept between frames.
    """

    def __init__(
        self,
        shape: TensorShape,
        labels: Sequence[str],
        config: PipelineConfig = PipelineConfig(),
        *,
        camera: Optional[CameraGeometry] = None,
        reference_heights: ReferenceHeights = DEFAULT_REFERENCE_HEIGHTS,
        sink: Optional[DetectionSink] = None,
    ):
        if len(labels) < shape.num_classes:
            raise ValueError(
                f"Label table has {len(labels)} names but the model output declares {shape.num_classes} classes."
            )
        self.shape = shape
        self.labels: Tuple[str, ...] = tuple(labels)
        self.config = config
        self.camera = camera
        self.reference_heights = reference_heights
        self.sink = sink

    def detect(self, tensor) -> Optional[DetectionOutcome]:
        """
        Process one raw output tensor and hand the outcome to the sink.

        Returns:
            None if the tensor is not ready (the sink is not called),
            EmptyDetection if no box survives, otherwise the results ordered by
            descending confidence.
        """

        outcome, timing = self.run(tensor)
        if outcome is not None and self.sink is not None:
            deliver(self.sink, outcome, timing)
        return outcome

    def run(self, tensor) -> Tuple[Optional[DetectionOutcome], Optional[FrameTiming]]:
        """
        Same as `detect` but without the sink; also returns the stage timings.
        """

        t0 = time.perf_counter()
        try:
            candidates = decode(
                tensor,
                num_classes=self.shape.num_classes,
                num_elements=self.shape.elements,
                confidence_threshold=self.config.confidence_threshold,
                labels=self.labels,
            )
        except TensorNotReadyError as exc:
            logger.debug("skipping frame: %s", exc)
            return None, None
        t1 = time.perf_counter()

        if not candidates:
            return EmptyDetection(), FrameTiming(decode_ms=_ms(t0, t1), total_ms=_ms(t0, t1))

        kept = suppress(candidates, self.config.iou_threshold, max_detections=self.config.max_detections)
        t2 = time.perf_counter()

        results = [ObjectDetectionResult.from_candidate(c, self._distance_for(c)) for c in kept]
        t3 = time.perf_counter()

        timing = FrameTiming(
            decode_ms=_ms(t0, t1),
            nms_ms=_ms(t1, t2),
            distance_ms=_ms(t2, t3),
            total_ms=_ms(t0, t3),
        )
        return results, timing

    def _distance_for(self, candidate: CandidateDetection) -> Optional[float]:
        if self.camera is None:
            return None
        # Box height is normalized; convert to pixels of the model input.
        image_h = self.camera.image_height_pixels
        return estimate_distance(
            class_name=candidate.class_name,
            object_height_pixels=candidate.height * image_h,
            focal_length_mm=self.camera.focal_length_mm,
            image_height_pixels=image_h,
            sensor_height_mm=self.camera.sensor_height_mm,
            reference_heights=self.reference_heights,
        )
