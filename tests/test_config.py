import json
import tempfile
import unittest
from pathlib import Path

from obstacle_kit.config import (
    CameraGeometry,
    PipelineConfig,
    TensorShape,
    load_camera_geometry,
    load_reference_heights,
)


class _TmpJsonMixin:
    def _write_json(self, payload) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)  # type: ignore[attr-defined]
        path = Path(tmpdir.name) / "config.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path


class TestPipelineConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        self.assertEqual(cfg.confidence_threshold, 0.35)
        self.assertEqual(cfg.iou_threshold, 0.3)
        self.assertIsNone(cfg.max_detections)

    def test_thresholds_must_be_open_unit_interval(self) -> None:
        for bad in (0.0, 1.0, -0.1, 1.5):
            with self.assertRaises(ValueError):
                PipelineConfig(confidence_threshold=bad)
            with self.assertRaises(ValueError):
                PipelineConfig(iou_threshold=bad)

    def test_max_detections_positive(self) -> None:
        with self.assertRaises(ValueError):
            PipelineConfig(max_detections=0)


class TestTensorShape(unittest.TestCase):
    def test_num_classes(self) -> None:
        shape = TensorShape(channels=84, elements=8400)
        self.assertEqual(shape.num_classes, 80)
        self.assertEqual(shape.size, 84 * 8400)

    def test_rejects_degenerate_shapes(self) -> None:
        with self.assertRaises(ValueError):
            TensorShape(channels=4, elements=10)
        with self.assertRaises(ValueError):
            TensorShape(channels=5, elements=0)

    def test_from_output_shape(self) -> None:
        self.assertEqual(TensorShape.from_output_shape((1, 7, 2100)), TensorShape(7, 2100))
        self.assertEqual(TensorShape.from_output_shape([7, 2100]), TensorShape(7, 2100))
        with self.assertRaises(ValueError):
            TensorShape.from_output_shape((2, 7, 2100))
        with self.assertRaises(ValueError):
            TensorShape.from_output_shape((1, 1, 7, 2100))


class TestCameraGeometry(unittest.TestCase):
    def test_distance_support(self) -> None:
        self.assertTrue(CameraGeometry(4.25, 3.6, 640.0).has_distance_support)
        self.assertFalse(CameraGeometry(None, 3.6, 640.0).has_distance_support)
        self.assertFalse(CameraGeometry(4.25, None, 640.0).has_distance_support)

    def test_rejects_non_positive(self) -> None:
        with self.assertRaises(ValueError):
            CameraGeometry(0.0, 3.6, 640.0)
        with self.assertRaises(ValueError):
            CameraGeometry(4.25, 3.6, 0.0)


class TestLoadCameraGeometry(_TmpJsonMixin, unittest.TestCase):
    def test_load_ok(self) -> None:
        path = self._write_json({"focal_length_mm": 4.25, "sensor_height_mm": 3.6, "image_height_pixels": 640})
        cam = load_camera_geometry(path)
        self.assertEqual(cam, CameraGeometry(4.25, 3.6, 640.0))

    def test_missing_optics_allowed(self) -> None:
        path = self._write_json({"focal_length_mm": None, "image_height_pixels": 480})
        cam = load_camera_geometry(path)
        self.assertIsNone(cam.focal_length_mm)
        self.assertIsNone(cam.sensor_height_mm)
        self.assertFalse(cam.has_distance_support)

    def test_image_height_required(self) -> None:
        path = self._write_json({"focal_length_mm": 4.25})
        with self.assertRaises(ValueError):
            load_camera_geometry(path)

    def test_unknown_keys_rejected(self) -> None:
        path = self._write_json({"image_height_pixels": 480, "fov": 70})
        with self.assertRaises(ValueError):
            load_camera_geometry(path)

    def test_wrong_types_rejected(self) -> None:
        path = self._write_json({"image_height_pixels": 480, "focal_length_mm": "4mm"})
        with self.assertRaises(ValueError):
            load_camera_geometry(path)
        path = self._write_json({"image_height_pixels": True})
        with self.assertRaises(ValueError):
            load_camera_geometry(path)

    def test_not_an_object(self) -> None:
        path = self._write_json([1, 2, 3])
        with self.assertRaises(ValueError):
            load_camera_geometry(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_camera_geometry(Path(tempfile.gettempdir()) / "no_such_camera.json")


class TestLoadReferenceHeights(_TmpJsonMixin, unittest.TestCase):
    def test_load_ok(self) -> None:
        path = self._write_json({"heights_mm": {"cone": 700, "person": 1650.5}})
        heights = load_reference_heights(path)
        self.assertEqual(heights.lookup("cone"), 700.0)
        self.assertEqual(heights.lookup("person"), 1650.5)
        self.assertIsNone(heights.lookup("car"))

    def test_bad_payloads(self) -> None:
        for payload in ({"heights": {}}, {"heights_mm": [1, 2]}, {"heights_mm": {"cone": -1}}):
            path = self._write_json(payload)
            with self.assertRaises(ValueError):
                load_reference_heights(path)


if __name__ == "__main__":
    unittest.main()
