from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Optional, Tuple


@dataclass(frozen=True)
class CandidateDetection:
    """
    One decoded box, before distance estimation.

    Coordinates are normalized to [0, 1]. `width`/`height` are the values read
    from the model output, not recomputed from the corners.
    """

    class_index: int
    class_name: str
    confidence: float
    x1: float
    y1: float
    x2: float
    y2: float
    width: float
    height: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2


@dataclass(frozen=True)
class ObjectDetectionResult(CandidateDetection):
    # Meters; None when no estimate is possible.
    distance: Optional[float] = None

    @classmethod
    def from_candidate(cls, candidate: CandidateDetection, distance: Optional[float]) -> "ObjectDetectionResult":
        values = {f.name: getattr(candidate, f.name) for f in fields(CandidateDetection)}
        return cls(distance=distance, **values)


@dataclass(frozen=True)
class EmptyDetection:
    """
    Returned when a frame decoded correctly but no box survived filtering.
    """


@dataclass(frozen=True)
class FrameTiming:
    decode_ms: float = 0.0
    nms_ms: float = 0.0
    distance_ms: float = 0.0
    total_ms: float = 0.0
    preprocess_ms: Optional[float] = None
    inference_ms: Optional[float] = None
