import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from yolo_overlay.config import DecodeConfig, decode_config_from_dict, load_decode_config
from yolo_overlay.labels import COCO80_LABELS
from yolo_overlay.types import ScoreMode


class TestDecodeConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = DecodeConfig()
        self.assertEqual(cfg.conf_threshold, 0.25)
        self.assertEqual(cfg.iou_threshold, 0.45)
        self.assertEqual(cfg.input_size, 640)
        self.assertEqual(cfg.score_mode, ScoreMode.AUTO)
        self.assertEqual(cfg.max_detections, 20)
        self.assertFalse(cfg.class_agnostic_nms)
        self.assertEqual(len(cfg.labels), 80)

    def test_invalid_values_rejected(self) -> None:
        bad = [
            dict(conf_threshold=-0.1),
            dict(conf_threshold=1.5),
            dict(iou_threshold=1.01),
            dict(input_size=0),
            dict(input_size=-640),
            dict(max_detections=0),
            dict(labels=()),
            dict(score_mode="sometimes"),
        ]
        for kwargs in bad:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    DecodeConfig(**kwargs)

    def test_non_integer_sizes_rejected(self) -> None:
        bad = [
            dict(max_detections=2.0),
            dict(max_detections=True),
            dict(max_detections="20"),
            dict(input_size=640.0),
            dict(input_size=False),
        ]
        for kwargs in bad:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(ValueError):
                    DecodeConfig(**kwargs)

    def test_numpy_integer_sizes_accepted(self) -> None:
        cfg = DecodeConfig(input_size=np.int64(320), max_detections=np.int32(5))
        self.assertIs(type(cfg.input_size), int)
        self.assertIs(type(cfg.max_detections), int)
        self.assertEqual((cfg.input_size, cfg.max_detections), (320, 5))

    def test_score_mode_string_coerced(self) -> None:
        cfg = DecodeConfig(score_mode="obj_times_class")
        self.assertIs(cfg.score_mode, ScoreMode.OBJ_TIMES_CLASS)

    def test_labels_list_becomes_tuple(self) -> None:
        cfg = DecodeConfig(labels=["a", "b"])
        self.assertEqual(cfg.labels, ("a", "b"))


class TestDecodeConfigLoading(unittest.TestCase):
    def _tmpdir(self) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        return Path(tmpdir.name)

    def _write_config(self, payload) -> Path:
        path = self._tmpdir() / "decode.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_ok(self) -> None:
        path = self._write_config(
            {
                "conf_threshold": 0.4,
                "iou_threshold": 0.5,
                "input_size": 320,
                "score_mode": "class_only",
                "max_detections": 10,
                "class_agnostic_nms": True,
            }
        )
        cfg = load_decode_config(path)
        self.assertEqual(cfg.conf_threshold, 0.4)
        self.assertEqual(cfg.iou_threshold, 0.5)
        self.assertEqual(cfg.input_size, 320)
        self.assertEqual(cfg.score_mode, ScoreMode.CLASS_ONLY)
        self.assertEqual(cfg.max_detections, 10)
        self.assertTrue(cfg.class_agnostic_nms)
        self.assertEqual(cfg.labels, COCO80_LABELS)

    def test_empty_object_gives_defaults(self) -> None:
        self.assertEqual(load_decode_config(self._write_config({})), DecodeConfig())

    def test_labels_path_relative_to_config(self) -> None:
        tmp = self._tmpdir()
        (tmp / "labels.txt").write_text("hand\nface\n", encoding="utf-8")
        path = tmp / "decode.json"
        path.write_text(json.dumps({"labels_path": "labels.txt"}), encoding="utf-8")
        cfg = load_decode_config(path)
        self.assertEqual(cfg.labels, ("hand", "face"))

    def test_inline_labels(self) -> None:
        cfg = decode_config_from_dict({"labels": ["x", "y", "z"]})
        self.assertEqual(cfg.labels, ("x", "y", "z"))

    def test_unknown_keys_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_decode_config(self._write_config({"conf_threshold": 0.3, "extra": 1}))

    def test_wrong_types_rejected(self) -> None:
        bad = [
            {"conf_threshold": "0.3"},
            {"conf_threshold": True},
            {"input_size": 640.0},
            {"class_agnostic_nms": 1},
            {"score_mode": 3},
            {"labels": "person"},
            {"labels": ["a"], "labels_path": "labels.txt"},
        ]
        for payload in bad:
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    decode_config_from_dict(payload)

    def test_not_an_object(self) -> None:
        with self.assertRaises(ValueError):
            load_decode_config(self._write_config([0.25, 0.45]))

    def test_invalid_json(self) -> None:
        path = self._tmpdir() / "decode.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_decode_config(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_decode_config(self._tmpdir() / "missing.json")


if __name__ == "__main__":
    unittest.main()
