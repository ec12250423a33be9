from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import CandidateDetection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.3
    max_detections: Optional[int] = None


def box_iou(a: CandidateDetection, b: CandidateDetection) -> float:
    """
    Intersection over union of two candidates.

    The intersection comes from the corners, the areas from the stored
    width/height. A non-positive union yields 0.0.
    """

    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x1, b.x1))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y1, b.y1))
    inter = inter_w * inter_h
    union = a.width * a.height + b.width * b.height - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def nms(boxes: np.ndarray, areas: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy, areas and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    Boxes are visited in descending score order (stable for ties). A box whose
    IoU with an already kept box is >= `cfg.iou_threshold` is marked suppressed;
    kept indices are collected in a second pass over the markers.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]

    order = np.argsort(-scores, kind="stable")
    suppressed = np.zeros(order.size, dtype=bool)
    accepted = 0

    for pos, i in enumerate(order):
        if suppressed[pos]:
            continue
        accepted += 1
        if cfg.max_detections is not None and accepted >= cfg.max_detections:
            suppressed[pos + 1:] = True
            break

        rest = order[pos + 1:]
        if rest.size == 0:
            break

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[rest] - inter
        with np.errstate(divide="ignore", invalid="ignore"):
            iou = np.where(union > 0.0, inter / union, 0.0)

        suppressed[pos + 1:] |= iou >= cfg.iou_threshold

    return order[~suppressed]


def suppress(
    candidates: Sequence[CandidateDetection],
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> List[CandidateDetection]:
    """
    Class-agnostic NMS over decoded candidates; returns survivors by descending confidence.
    """

    if not candidates:
        return []

    boxes = np.array([c.as_xyxy() for c in candidates], dtype=np.float64)
    areas = np.array([c.width * c.height for c in candidates], dtype=np.float64)
    scores = np.array([c.confidence for c in candidates], dtype=np.float64)

    keep_idx = nms(boxes, areas, scores, NMSConfig(iou_threshold=iou_threshold, max_detections=max_detections))
    return [candidates[int(i)] for i in keep_idx]
