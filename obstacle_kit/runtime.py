from __future__ import annotations

import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .config import CameraGeometry, PipelineConfig, TensorShape
from .geometry import DEFAULT_REFERENCE_HEIGHTS, ReferenceHeights
from .metadata import load_labels
from .pipeline import DetectionOutcome, ObstaclePipeline
from .preprocess import PreprocessConfig, to_input_tensor
from .sinks import DetectionSink, deliver
from .types import FrameTiming


PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, so `Models/...` resolves from any cwd.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path; relative paths are taken from `root`
    or, with "auto"/None, from the project root.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class ObstacleDetector:
    """
    Frame-level wrapper: preprocess -> inference -> ObstaclePipeline.

    Expects BGR images (OpenCV-style). Boxes in the results stay normalized to
    [0, 1] of the frame.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        pipeline: ObstaclePipeline,
        *,
        preprocess_cfg: PreprocessConfig = PreprocessConfig(),
        sink: Optional[DetectionSink] = None,
        backend: Optional[object] = None,
    ):
        self._infer_fn = infer_fn
        self.pipeline = pipeline
        self.preprocess_cfg = preprocess_cfg
        # Fall back to the pipeline's sink; `pipeline.run` never notifies it.
        self.sink = sink if sink is not None else pipeline.sink
        self.backend = backend

    def detect_frame(self, image_bgr: np.ndarray) -> Optional[DetectionOutcome]:
        outcome, _ = self.run_frame(image_bgr)
        return outcome

    def run_frame(self, image_bgr: np.ndarray) -> Tuple[Optional[DetectionOutcome], Optional[FrameTiming]]:
        t0 = time.perf_counter()
        blob = to_input_tensor(image_bgr, self.preprocess_cfg)
        t1 = time.perf_counter()
        preds = self._infer_fn(blob)
        t2 = time.perf_counter()

        outcome, timing = self.pipeline.run(preds)
        if outcome is None:
            return None, None

        timing = replace(
            timing or FrameTiming(),
            preprocess_ms=(t1 - t0) * 1000.0,
            inference_ms=(t2 - t1) * 1000.0,
        )
        if self.sink is not None:
            deliver(self.sink, outcome, timing)
        return outcome, timing

    def __call__(self, image_bgr: np.ndarray) -> Optional[DetectionOutcome]:
        return self.detect_frame(image_bgr)


def load_detector(
    model_path: PathLike,
    labels_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    config: PipelineConfig = PipelineConfig(),
    camera: Optional[CameraGeometry] = None,
    reference_heights: ReferenceHeights = DEFAULT_REFERENCE_HEIGHTS,
    sink: Optional[DetectionSink] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_threads: Optional[int] = None,
) -> ObstacleDetector:
    """
    Build a detector for an ONNX model on disk.

    The output tensor shape and input size are read from the model once here.
    Without a `camera`, distances are left empty.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    backend = OnnxRuntimeBackend(
        resolve_path(model_path, root=root),
        OnnxRuntimeBackendConfig(providers=onnx_providers, intra_op_threads=onnx_threads),
    )
    shape = TensorShape.from_output_shape(backend.output_shape)
    labels = load_labels(resolve_path(labels_path, root=root))

    input_w, input_h = backend.input_size

    pipeline = ObstaclePipeline(
        shape,
        labels,
        config,
        camera=camera,
        reference_heights=reference_heights,
    )
    return ObstacleDetector(
        backend.infer,
        pipeline,
        preprocess_cfg=PreprocessConfig(input_size=(input_w, input_h), channels_first=backend.channels_first),
        sink=sink,
        backend=backend,
    )
