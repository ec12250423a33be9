"""
Monocular distance estimation with the pinhole camera model.

Similar triangles give

    distance = real_height * focal_length * image_height_px / (object_height_px * sensor_height)

With the real height, focal length and sensor height in millimetres the result
is in millimetres; `estimate_distance` returns meters.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional


# Typical real-world heights (mm) for common road obstacles.
DEFAULT_HEIGHTS_MM: Dict[str, float] = {
    "person": 1700.0,
    "bicycle": 1000.0,
    "car": 1500.0,
    "motorcycle": 1100.0,
    "bus": 3200.0,
    "truck": 3500.0,
    "traffic light": 900.0,
    "stop sign": 750.0,
    "bench": 850.0,
    "dog": 600.0,
    "cat": 300.0,
    "chair": 900.0,
    "pole": 3000.0,
}


class ReferenceHeights(Mapping[str, float]):
    """
    Read-only lookup of real object heights in millimetres, keyed by class name.
    """

    def __init__(self, heights_mm: Optional[Mapping[str, float]] = None):
        table = dict(DEFAULT_HEIGHTS_MM if heights_mm is None else heights_mm)
        for name, value in table.items():
            if not isinstance(name, str) or not name:
                raise ValueError("reference height keys must be non-empty strings")
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"reference height for {name!r} must be a positive number")
        self._heights = MappingProxyType({k: float(v) for k, v in table.items()})

    def __getitem__(self, class_name: str) -> float:
        return self._heights[class_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._heights)

    def __len__(self) -> int:
        return len(self._heights)

    def lookup(self, class_name: str) -> Optional[float]:
        return self._heights.get(class_name)


DEFAULT_REFERENCE_HEIGHTS = ReferenceHeights()


def estimate_distance(
    class_name: str,
    object_height_pixels: float,
    focal_length_mm: Optional[float],
    image_height_pixels: float,
    sensor_height_mm: Optional[float],
    reference_heights: Mapping[str, float] = DEFAULT_REFERENCE_HEIGHTS,
) -> Optional[float]:
    """
    Estimate the camera-to-object distance in meters.

    Returns None (never a sentinel) when the focal length or sensor height is
    missing, when any of the pixel measurements is not positive, or when the
    class has no reference height.
    """

    if focal_length_mm is None or sensor_height_mm is None:
        return None
    if focal_length_mm <= 0 or sensor_height_mm <= 0:
        return None
    if object_height_pixels <= 0 or image_height_pixels <= 0:
        return None

    real_height_mm = reference_heights.get(class_name)
    if real_height_mm is None:
        return None

    distance_mm = (real_height_mm * focal_length_mm * image_height_pixels) / (object_height_pixels * sensor_height_mm)
    return float(distance_mm) / 1000.0
