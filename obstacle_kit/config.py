from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .geometry import ReferenceHeights


@dataclass(frozen=True)
class PipelineConfig:
    """
    Thresholds for a detection session. Fixed once the pipeline is built.
    """

    confidence_threshold: float = 0.35
    iou_threshold: float = 0.3
    # None keeps every box that survives NMS.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence_threshold < 1.0:
            raise ValueError("confidence_threshold must be in (0, 1)")
        if not 0.0 < self.iou_threshold < 1.0:
            raise ValueError("iou_threshold must be in (0, 1)")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 when set")


@dataclass(frozen=True)
class TensorShape:
    """
    Logical `[1, C, E]` shape of the model output: C channels (4 box values +
    one score per class) by E anchor elements.
    """

    channels: int
    elements: int

    def __post_init__(self) -> None:
        if self.channels < 5:
            raise ValueError(f"channels must be >= 5 (4 box values + at least one class), got {self.channels}")
        if self.elements < 1:
            raise ValueError(f"elements must be >= 1, got {self.elements}")

    @property
    def num_classes(self) -> int:
        return self.channels - 4

    @property
    def size(self) -> int:
        return self.channels * self.elements

    @classmethod
    def from_output_shape(cls, shape: Sequence[int]) -> "TensorShape":
        dims = [int(d) for d in shape]
        if len(dims) == 3:
            if dims[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {tuple(dims)}).")
            dims = dims[1:]
        if len(dims) != 2:
            raise ValueError(f"Expected an output shape of [1, C, E], got {tuple(shape)}")
        return cls(channels=dims[0], elements=dims[1])


@dataclass(frozen=True)
class CameraGeometry:
    focal_length_mm: Optional[float] = None
    sensor_height_mm: Optional[float] = None
    image_height_pixels: float = 640.0

    def __post_init__(self) -> None:
        if self.image_height_pixels <= 0:
            raise ValueError("image_height_pixels must be > 0")
        if self.focal_length_mm is not None and self.focal_length_mm <= 0:
            raise ValueError("focal_length_mm must be > 0 when set")
        if self.sensor_height_mm is not None and self.sensor_height_mm <= 0:
            raise ValueError("sensor_height_mm must be > 0 when set")

    @property
    def has_distance_support(self) -> bool:
        return self.focal_length_mm is not None and self.sensor_height_mm is not None


def _read_json_object(path: Path, what: str) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid {what} JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{what} must be a JSON object")
    return payload


def _reject_unknown(payload: Dict[str, Any], allowed: set, what: str) -> None:
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown {what} keys: {unknown}")


def _optional_number(payload: Dict[str, Any], key: str) -> Optional[float]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number or null")
    return float(value)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = _optional_number(payload, key)
    if value is None:
        raise ValueError(f"{key} must be a number")
    return value


def load_camera_geometry(path: Path) -> CameraGeometry:
    """
    Load camera parameters from JSON:

        {"focal_length_mm": 4.25, "sensor_height_mm": 3.6, "image_height_pixels": 640}

    Either mm value may be omitted or null; distance estimation is then disabled.
    """

    payload = _read_json_object(Path(path), "camera geometry")
    _reject_unknown(payload, {"focal_length_mm", "sensor_height_mm", "image_height_pixels"}, "camera geometry")
    return CameraGeometry(
        focal_length_mm=_optional_number(payload, "focal_length_mm"),
        sensor_height_mm=_optional_number(payload, "sensor_height_mm"),
        image_height_pixels=_require_number(payload, "image_height_pixels"),
    )


def load_reference_heights(path: Path) -> ReferenceHeights:
    """
    Load per-class real heights from JSON: {"heights_mm": {"person": 1700, ...}}.
    """

    payload = _read_json_object(Path(path), "reference heights")
    _reject_unknown(payload, {"heights_mm"}, "reference heights")
    heights = payload.get("heights_mm")
    if not isinstance(heights, dict):
        raise ValueError("heights_mm must be a JSON object")
    return ReferenceHeights(heights)
