import tempfile
import unittest
from pathlib import Path

from yolo_overlay.labels import COCO80_LABELS, LabelMapper, load_class_names, load_label_table


class TestLabelMapper(unittest.TestCase):
    def test_coco_table(self) -> None:
        self.assertEqual(len(COCO80_LABELS), 80)
        self.assertEqual(len(set(COCO80_LABELS)), 80)
        self.assertEqual(COCO80_LABELS[0], "person")
        self.assertEqual(COCO80_LABELS[79], "toothbrush")

    def test_in_range(self) -> None:
        mapper = LabelMapper()
        self.assertEqual(mapper(2), "car")
        self.assertEqual(mapper.label_for(9), "traffic light")

    def test_out_of_range_synthesized(self) -> None:
        mapper = LabelMapper(["a", "b"])
        self.assertEqual(mapper(2), "cls2")
        self.assertEqual(mapper(-1), "cls-1")
        self.assertEqual(len(mapper), 2)


class TestLabelFiles(unittest.TestCase):
    def _write(self, name: str, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_plain_text_table(self) -> None:
        path = self._write("labels.txt", "# model labels\nperson\n\nbicycle\n car \n")
        self.assertEqual(load_label_table(path), ("person", "bicycle", "car"))

    def test_names_mapping(self) -> None:
        path = self._write("metadata.yaml", "task: detect\nnames:\n  0: person\n  1: 'helmet'\n  3: vest\n")
        self.assertEqual(load_class_names(path), {0: "person", 1: "helmet", 3: "vest"})
        self.assertEqual(load_label_table(path), ("person", "helmet", "cls2", "vest"))

    def test_empty_table_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_label_table(self._write("labels.txt", "\n# nothing\n"))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_label_table(Path(tempfile.gettempdir()) / "definitely-missing-labels.txt")


if __name__ == "__main__":
    unittest.main()
