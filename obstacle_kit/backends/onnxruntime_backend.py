from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - intra_op_threads: CPU threads per operator; None lets ORT decide
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    intra_op_threads: Optional[int] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


def _static_shape(shape: Sequence[Any]) -> Tuple[int, ...]:
    dims = []
    for d in shape:
        if not isinstance(d, int):
            raise ValueError(f"Model declares a dynamic dimension {d!r} in shape {list(shape)}; export with a fixed shape.")
        dims.append(d)
    return tuple(dims)


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for a single-input, single-output detector.

    Exposes the declared input/output shapes so the pipeline can be set up
    before the first frame.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        if cfg.intra_op_threads is not None:
            sess_opts.intra_op_num_threads = int(cfg.intra_op_threads)
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        inputs = {i.name: i for i in self.session.get_inputs()}
        outputs = {o.name: o for o in self.session.get_outputs()}
        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name
        if self.input_name not in inputs:
            raise ValueError(f"Model has no input named {self.input_name!r}")
        if self.output_name not in outputs:
            raise ValueError(f"Model has no output named {self.output_name!r}")

        self.input_shape = _static_shape(inputs[self.input_name].shape)
        self.output_shape = _static_shape(outputs[self.output_name].shape)

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    @property
    def channels_first(self) -> bool:
        # (1, 3, H, W) vs (1, H, W, 3)
        return len(self.input_shape) == 4 and self.input_shape[1] == 3

    @property
    def input_size(self) -> Tuple[int, int]:
        """(width, height) of the model input."""
        if len(self.input_shape) != 4:
            raise ValueError(f"Expected a 4D image input, got {self.input_shape}")
        if self.channels_first:
            return self.input_shape[3], self.input_shape[2]
        return self.input_shape[2], self.input_shape[1]

    def infer(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> np.ndarray:
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        outputs = self.session.run([self.output_name], inputs)
        return outputs[0]
