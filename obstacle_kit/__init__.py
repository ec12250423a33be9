"""
Post-inference obstacle detection: decode a YOLO-style output tensor, drop
overlapping boxes with NMS and estimate each obstacle's distance from the
camera.

The core (decode, NMS, distance, pipeline) needs only NumPy. OpenCV is used for
preprocessing/drawing and ONNX Runtime for the optional inference backend.
"""

from .types import CandidateDetection, EmptyDetection, FrameTiming, ObjectDetectionResult
from .config import (
    CameraGeometry,
    PipelineConfig,
    TensorShape,
    load_camera_geometry,
    load_reference_heights,
)
from .decode import TensorNotReadyError, decode
from .nms import NMSConfig, box_iou, nms, suppress
from .geometry import DEFAULT_REFERENCE_HEIGHTS, ReferenceHeights, estimate_distance
from .pipeline import DetectionOutcome, ObstaclePipeline
from .sinks import CollectingSink, DetectionSink, LoggingSink
from .metadata import load_labels
from .preprocess import PreprocessConfig, to_input_tensor
from .runtime import ObstacleDetector, find_project_root, load_detector, resolve_path
from .visualize import draw_obstacles

__all__ = [
    "CandidateDetection",
    "EmptyDetection",
    "FrameTiming",
    "ObjectDetectionResult",
    "CameraGeometry",
    "PipelineConfig",
    "TensorShape",
    "load_camera_geometry",
    "load_reference_heights",
    "TensorNotReadyError",
    "decode",
    "NMSConfig",
    "box_iou",
    "nms",
    "suppress",
    "DEFAULT_REFERENCE_HEIGHTS",
    "ReferenceHeights",
    "estimate_distance",
    "DetectionOutcome",
    "ObstaclePipeline",
    "CollectingSink",
    "DetectionSink",
    "LoggingSink",
    "load_labels",
    "PreprocessConfig",
    "to_input_tensor",
    "ObstacleDetector",
    "find_project_root",
    "load_detector",
    "resolve_path",
    "draw_obstacles",
]
