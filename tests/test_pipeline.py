import unittest

import numpy as np

from obstacle_kit.config import CameraGeometry, PipelineConfig, TensorShape
from obstacle_kit.geometry import ReferenceHeights
from obstacle_kit.pipeline import ObstaclePipeline
from obstacle_kit.sinks import CollectingSink, LoggingSink
from obstacle_kit.types import EmptyDetection, ObjectDetectionResult


def _tensor(boxes, class_scores) -> np.ndarray:
    boxes = np.asarray(boxes, dtype=np.float32).T
    scores = np.asarray(class_scores, dtype=np.float32).T
    return np.vstack([boxes, scores]).reshape(-1)


CAMERA = CameraGeometry(focal_length_mm=4.0, sensor_height_mm=4.0, image_height_pixels=640.0)


class TestObstaclePipeline(unittest.TestCase):
    def test_single_detection(self) -> None:
        sink = CollectingSink()
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"], sink=sink)
        out = pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))

        self.assertIsInstance(out, list)
        self.assertEqual(len(out), 1)
        det = out[0]
        self.assertIsInstance(det, ObjectDetectionResult)
        self.assertEqual(det.class_name, "person")
        for got, want in zip(det.as_xyxy(), (0.4, 0.4, 0.6, 0.6)):
            self.assertAlmostEqual(got, want, places=6)
        self.assertIsNone(det.distance)

        self.assertEqual(sink.last, out)
        self.assertEqual(sink.frames, 1)
        self.assertIsNotNone(sink.last_timing)
        self.assertGreaterEqual(sink.last_timing.total_ms, 0.0)

    def test_no_candidates_is_empty_detection(self) -> None:
        sink = CollectingSink()
        pipe = ObstaclePipeline(TensorShape(5, 2), ["person"], sink=sink)
        out = pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2], [0.3, 0.3, 0.1, 0.1]], [[0.2], [0.35]]))
        self.assertIsInstance(out, EmptyDetection)
        self.assertIsInstance(sink.last, EmptyDetection)
        self.assertEqual(sink.empty_frames, 1)

    def test_not_ready_returns_none_without_notifying(self) -> None:
        sink = CollectingSink()
        pipe = ObstaclePipeline(TensorShape(5, 2), ["person"], sink=sink)
        self.assertIsNone(pipe.detect(np.zeros(7, dtype=np.float32)))
        self.assertIsNone(sink.last)
        self.assertEqual(sink.frames, 0)

    def test_duplicates_suppressed_and_sorted(self) -> None:
        boxes = [
            [0.30, 0.30, 0.2, 0.2],  # 0.7
            [0.70, 0.70, 0.2, 0.2],  # 0.95
            [0.31, 0.30, 0.2, 0.2],  # 0.8, overlaps the first
        ]
        pipe = ObstaclePipeline(TensorShape(5, 3), ["car"], PipelineConfig(iou_threshold=0.3))
        out = pipe.detect(_tensor(boxes, [[0.7], [0.95], [0.8]]))
        self.assertEqual([round(d.confidence, 2) for d in out], [0.95, 0.8])

    def test_distance_attached_with_camera(self) -> None:
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"], camera=CAMERA)
        out = pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))
        # 0.2 * 640 = 128px -> 1700 * 4 * 640 / (128 * 4) mm
        self.assertAlmostEqual(out[0].distance, 8.5, places=4)

    def test_distance_absent_without_optics(self) -> None:
        for camera in (
            None,
            CameraGeometry(focal_length_mm=None, sensor_height_mm=4.0, image_height_pixels=640.0),
            CameraGeometry(focal_length_mm=4.0, sensor_height_mm=None, image_height_pixels=640.0),
        ):
            pipe = ObstaclePipeline(TensorShape(5, 1), ["person"], camera=camera)
            out = pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))
            self.assertIsNone(out[0].distance)

    def test_unknown_class_has_no_distance(self) -> None:
        pipe = ObstaclePipeline(
            TensorShape(5, 1),
            ["person"],
            camera=CAMERA,
            reference_heights=ReferenceHeights({"cone": 700}),
        )
        out = pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))
        self.assertIsNone(out[0].distance)

    def test_frames_are_independent(self) -> None:
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"])
        hit = _tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]])
        miss = _tensor([[0.5, 0.5, 0.2, 0.2]], [[0.1]])
        self.assertEqual(len(pipe.detect(hit)), 1)
        self.assertIsInstance(pipe.detect(miss), EmptyDetection)
        self.assertEqual(len(pipe.detect(hit)), 1)

    def test_run_returns_timing(self) -> None:
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"])
        outcome, timing = pipe.run(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))
        self.assertEqual(len(outcome), 1)
        self.assertGreaterEqual(timing.total_ms, timing.decode_ms)
        self.assertIsNone(timing.inference_ms)

    def test_inverted_box_never_reaches_results(self) -> None:
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"])
        out = pipe.detect(_tensor([[0.5, 0.5, -0.2, 0.2]], [[0.9]]))
        self.assertIsInstance(out, EmptyDetection)

    def test_short_label_table_rejected_at_setup(self) -> None:
        with self.assertRaises(ValueError):
            ObstaclePipeline(TensorShape(7, 10), ["a", "b"])

    def test_logging_sink(self) -> None:
        pipe = ObstaclePipeline(TensorShape(5, 1), ["person"], camera=CAMERA, sink=LoggingSink())
        with self.assertLogs("obstacle_kit.sinks", level="DEBUG") as logs:
            pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.9]]))
            pipe.detect(_tensor([[0.5, 0.5, 0.2, 0.2]], [[0.1]]))
        text = "\n".join(logs.output)
        self.assertIn("detected 1 obstacle(s), 1 with distance", text)
        self.assertIn("no obstacles detected", text)
        self.assertIn("frame timing:", text)


if __name__ == "__main__":
    unittest.main()
