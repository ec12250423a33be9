from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import CandidateDetection


class TensorNotReadyError(ValueError):
    """
    The output tensor cannot be decoded yet: its declared dimensions are unset
    or do not match the buffer that was passed in.
    """


def _as_channel_major(tensor, num_classes: int, num_elements: int) -> np.ndarray:
    if num_classes <= 0 or num_elements <= 0:
        raise TensorNotReadyError(f"Tensor dimensions not set (classes={num_classes}, elements={num_elements}).")

    flat = np.asarray(tensor, dtype=np.float32).reshape(-1)
    channels = num_classes + 4
    expected = channels * num_elements
    if flat.size != expected:
        raise TensorNotReadyError(
            f"Tensor has {flat.size} values, expected {expected} for shape [1, {channels}, {num_elements}]."
        )
    # Element `e` of channel `c` lives at flat index e + E * c.
    return flat.reshape(channels, num_elements)


def decode(
    tensor,
    num_classes: int,
    num_elements: int,
    confidence_threshold: float,
    labels: Sequence[str],
) -> List[CandidateDetection]:
    """
    Decode a channel-major `[1, 4 + num_classes, num_elements]` output into candidates.

    Per anchor element the best class wins (first one on ties), the element is
    kept only if that score is strictly above `confidence_threshold` and at most
    1, and boxes with x1 > x2 or any corner outside [0, 1] are dropped rather
    than clamped. Output keeps element-index order.

    Raises:
        TensorNotReadyError: dimensions are zero or inconsistent with the buffer.
    """

    p = _as_channel_major(tensor, num_classes, num_elements)
    if len(labels) < num_classes:
        raise ValueError(f"Label table has {len(labels)} names, model declares {num_classes} classes.")

    class_scores = p[4:, :]  # (num_classes, E)
    class_ids = np.argmax(class_scores, axis=0)
    scores = class_scores[class_ids, np.arange(num_elements)]

    # Scores live in (0, 1]; anything above 1 is not a probability.
    keep = (scores > np.float32(confidence_threshold)) & (scores <= np.float32(1.0))

    cx, cy, w, h = p[0], p[1], p[2], p[3]
    half_w = w / np.float32(2.0)
    half_h = h / np.float32(2.0)
    x1 = cx - half_w
    # Top edge is offset by the box width, not its height.
    y1 = cy - half_w
    x2 = cx + half_w
    y2 = cy + half_h

    corners = np.stack([x1, y1, x2, y2], axis=0)
    in_range = np.all((corners >= 0.0) & (corners <= 1.0), axis=0)
    keep &= in_range
    keep &= x1 <= x2

    candidates: List[CandidateDetection] = []
    for e in np.flatnonzero(keep):
        cls_id = int(class_ids[e])
        candidates.append(
            CandidateDetection(
                class_index=cls_id,
                class_name=labels[cls_id],
                confidence=float(scores[e]),
                x1=float(x1[e]),
                y1=float(y1[e]),
                x2=float(x2[e]),
                y2=float(y2[e]),
                width=float(w[e]),
                height=float(h[e]),
            )
        )
    return candidates
