from __future__ import annotations

import argparse
import logging
from pathlib import Path

import cv2

from obstacle_kit import (
    EmptyDetection,
    LoggingSink,
    PipelineConfig,
    draw_obstacles,
    load_camera_geometry,
    load_detector,
    load_reference_heights,
)


logger = logging.getLogger("run_obstacle_detection")


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect obstacles and estimate their distance from the camera.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--model", default="Models/best_float32.onnx", help="Path to an ONNX detector.")
    parser.add_argument("--labels", default="Models/best_labels.txt", help="Label file (.txt or metadata .yaml).")
    parser.add_argument("--camera", default=None, help="Camera geometry JSON; omit to skip distance estimation.")
    parser.add_argument("--heights", default=None, help="Reference heights JSON; defaults to the built-in table.")
    parser.add_argument("--conf", type=float, default=0.35, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.3, help="IoU threshold for NMS.")
    parser.add_argument("--threads", type=int, default=None, help="ONNX Runtime intra-op threads.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the visualization.")
    parser.add_argument("--every", type=int, default=1, help="Process every Nth frame for video/webcam.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--verbose", action="store_true", help="Log per-frame stage timings.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.every < 1:
        raise ValueError("--every must be >= 1")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    camera = load_camera_geometry(Path(args.camera)) if args.camera else None
    if camera is None or not camera.has_distance_support:
        logger.warning("camera geometry unavailable, distances will not be estimated")

    kwargs = {}
    if args.heights:
        kwargs["reference_heights"] = load_reference_heights(Path(args.heights))

    detector = load_detector(
        args.model,
        args.labels,
        config=PipelineConfig(confidence_threshold=args.conf, iou_threshold=args.iou),
        camera=camera,
        sink=LoggingSink(),
        onnx_providers=onnx_providers,
        onnx_threads=args.threads,
        **kwargs,
    )

    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")

        outcome = detector(img)
        detections = [] if outcome is None or isinstance(outcome, EmptyDetection) else outcome
        vis = draw_obstacles(img, detections)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")

        if args.show:
            cv2.imshow("obstacles", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

        for det in detections:
            print(det.class_name, f"{det.confidence:.3f}", det.as_xyxy(), det.distance)

        return 0

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cap = cv2.VideoCapture(int(args.webcam))
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {args.webcam}")

    writer = None
    frame_idx = 0
    processed = 0

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            frame_idx += 1
            if (frame_idx - 1) % args.every != 0:
                continue

            outcome = detector(frame)
            detections = [] if outcome is None or isinstance(outcome, EmptyDetection) else outcome
            vis = draw_obstacles(frame, detections)

            if args.out and writer is None:
                fps = cap.get(cv2.CAP_PROP_FPS)
                if fps is None or fps <= 0:
                    fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("obstacles", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            processed += 1
            if args.max_frames and processed >= args.max_frames:
                break

    finally:
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
