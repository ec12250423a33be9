from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class PreprocessConfig:
    # (width, height) of the model input.
    input_size: Tuple[int, int] = (640, 640)
    # NCHW (ONNX exports) when True, NHWC (TFLite exports) otherwise.
    channels_first: bool = True

    def __post_init__(self) -> None:
        w, h = self.input_size
        if w < 1 or h < 1:
            raise ValueError(f"input_size must be positive, got {self.input_size}")


def to_input_tensor(image_bgr: np.ndarray, cfg: PreprocessConfig) -> np.ndarray:
    """
    Stretch-resize a BGR frame to the model input and build a float32 batch of one.

    No letterboxing: the normalized boxes the model returns map straight back
    onto the original frame.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for to_input_tensor(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    new_w, new_h = cfg.input_size
    h, w = image_bgr.shape[:2]
    img = image_bgr
    if (w, h) != (new_w, new_h):
        img = cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    # BGR -> RGB, scale to [0, 1]
    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    if cfg.channels_first:
        blob = np.transpose(blob, (2, 0, 1))
    return np.ascontiguousarray(blob[None, ...])
