import argparse
import json

import cv2
import numpy as np

from yolo_overlay import DecodeConfig, ScoreMode, decode_with_diagnostics, draw_detections, load_decode_config, resolve_path
from yolo_overlay.log import setup_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode a saved raw YOLO output tensor (.npy) into detections.")
    parser.add_argument("--tensor", required=True, help="Path to a .npy file holding the raw model output.")
    parser.add_argument("--config", default=None, help="Optional decode config JSON (CLI flags override it).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size, used for pixel-space boxes.")
    parser.add_argument(
        "--score-mode",
        default=None,
        choices=[m.value for m in ScoreMode],
        help="Force the score convention instead of auto-detecting it.",
    )
    parser.add_argument("--max-det", type=int, default=None, help="Max detections to keep after NMS.")
    parser.add_argument("--class-agnostic", action="store_true", help="Suppress across classes (default is per-class).")
    parser.add_argument("--image", default=None, help="Optional image to draw the detections on.")
    parser.add_argument("--out", default=None, help="Output path for the overlay image (requires --image).")
    parser.add_argument("--json", action="store_true", help="Print detections as JSON lines.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG shows decode diagnostics).")
    args = parser.parse_args()

    setup_logging(args.log_level)

    base = load_decode_config(resolve_path(args.config)) if args.config else DecodeConfig()
    cfg = DecodeConfig(
        conf_threshold=base.conf_threshold if args.conf is None else float(args.conf),
        iou_threshold=base.iou_threshold if args.iou is None else float(args.iou),
        input_size=base.input_size if args.imgsz is None else int(args.imgsz),
        score_mode=base.score_mode if args.score_mode is None else ScoreMode(args.score_mode),
        max_detections=base.max_detections if args.max_det is None else int(args.max_det),
        class_agnostic_nms=bool(args.class_agnostic) or base.class_agnostic_nms,
        labels=base.labels,
    )

    tensor_path = resolve_path(args.tensor)
    if not tensor_path.exists():
        raise FileNotFoundError(f"Tensor not found: {tensor_path}")
    preds = np.load(str(tensor_path))

    result = decode_with_diagnostics(preds, cfg=cfg)
    print(result.diagnostics.summary())
    for det in result.detections:
        if args.json:
            print(
                json.dumps(
                    {"label": det.label, "class_id": det.class_id, "score": det.score, "rect": list(det.as_xyxy())}
                )
            )
        else:
            print(det.label, f"{det.score:.3f}", tuple(round(v, 4) for v in det.as_xyxy()))

    if args.out and not args.image:
        raise ValueError("--out requires --image")
    if args.image:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        vis = draw_detections(img, result.detections)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")
        else:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
