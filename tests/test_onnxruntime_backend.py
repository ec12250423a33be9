import unittest

from obstacle_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, _static_shape


def _backend_with_shapes(input_shape, output_shape) -> OnnxRuntimeBackend:
    # Skip session creation; only the shape helpers are under test.
    backend = OnnxRuntimeBackend.__new__(OnnxRuntimeBackend)
    backend.input_shape = tuple(input_shape)
    backend.output_shape = tuple(output_shape)
    return backend


class TestOnnxRuntimeBackendShapes(unittest.TestCase):
    def test_static_shape(self) -> None:
        self.assertEqual(_static_shape([1, 84, 8400]), (1, 84, 8400))
        with self.assertRaises(ValueError):
            _static_shape(["batch", 84, 8400])

    def test_nchw_input(self) -> None:
        backend = _backend_with_shapes((1, 3, 480, 640), (1, 6, 6300))
        self.assertTrue(backend.channels_first)
        self.assertEqual(backend.input_size, (640, 480))

    def test_nhwc_input(self) -> None:
        backend = _backend_with_shapes((1, 320, 256, 3), (1, 6, 2100))
        self.assertFalse(backend.channels_first)
        self.assertEqual(backend.input_size, (256, 320))

    def test_non_image_input_rejected(self) -> None:
        backend = _backend_with_shapes((1, 1000), (1, 6, 2100))
        with self.assertRaises(ValueError):
            _ = backend.input_size


if __name__ == "__main__":
    unittest.main()
