from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import ObjectDetectionResult


def _color_for_class_index(class_index: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color for a class index (OpenCV expects BGR).
    """

    palette = [
        (56, 56, 255),
        (151, 157, 255),
        (31, 112, 255),
        (29, 178, 255),
        (49, 210, 207),
        (10, 249, 72),
        (23, 204, 146),
        (134, 219, 61),
        (52, 147, 26),
        (187, 212, 0),
    ]
    if 0 <= class_index < len(palette):
        return palette[class_index]

    rng = np.random.default_rng(int(class_index))
    bgr = rng.integers(0, 256, size=3, dtype=np.uint8)
    return int(bgr[0]), int(bgr[1]), int(bgr[2])


def format_label(det: ObjectDetectionResult, show_score: bool = True) -> str:
    label = det.class_name
    if show_score:
        label = f"{label} {det.confidence:.2f}"
    if det.distance is not None:
        label = f"{label} {det.distance:.1f}m"
    return label


def draw_obstacles(
    image_bgr: np.ndarray,
    detections: Iterable[ObjectDetectionResult],
    *,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw normalized obstacle boxes with class, score and distance on a copy of a BGR image.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_obstacles(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        x1i = int(np.clip(round(x1 * w), 0, w - 1))
        y1i = int(np.clip(round(y1 * h), 0, h - 1))
        x2i = int(np.clip(round(x2 * w), 0, w - 1))
        y2i = int(np.clip(round(y2 * h), 0, h - 1))

        color = _color_for_class_index(det.class_index)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = format_label(det, show_score=show_score)
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Above the box if it fits, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        x_text_right = min(x1i + tw, w - 1)
        y_text_bottom = min(y_text_top + th + baseline, h - 1)

        cv2.rectangle(out, (x1i, y_text_top), (x_text_right, y_text_bottom), color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
