from __future__ import annotations

from pathlib import Path
from typing import Dict, Sequence, Tuple, Union


PathLike = Union[str, Path]

COCO80_LABELS: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard",
    "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase",
    "scissors", "teddy bear", "hair drier", "toothbrush",
)


class LabelMapper:
    """
    Maps class indices to human-readable labels.

    Unknown indices get a synthesized "cls<index>" label so a label table
    mismatch never blocks returning a detection.
    """

    def __init__(self, labels: Sequence[str] = COCO80_LABELS):
        self.labels = tuple(labels)

    def __len__(self) -> int:
        return len(self.labels)

    def __call__(self, class_id: int) -> str:
        return self.label_for(class_id)

    def label_for(self, class_id: int) -> str:
        idx = int(class_id)
        if 0 <= idx < len(self.labels):
            return self.labels[idx]
        return f"cls{idx}"


def load_class_names(metadata_path: PathLike) -> Dict[int, str]:
    """
    Load class names from the lightweight `names:` mapping format:

        names:
          0: person
          1: bicycle
          ...

    Parsed by hand so label files do not pull in a YAML dependency.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def load_label_table(path: PathLike) -> Tuple[str, ...]:
    """
    Load an ordered label table from disk.

    Accepts either a plain text file with one label per line (the format
    bundled next to mobile models) or the `names:` mapping read by
    `load_class_names`. Gaps in a mapping are filled with "cls<index>".
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Label table not found: {p}")

    text = p.read_text(encoding="utf-8")
    if any(line.strip() == "names:" for line in text.splitlines()):
        mapping = load_class_names(p)
        if not mapping:
            raise ValueError(f"No class names found in {p}")
        size = max(mapping) + 1
        return tuple(mapping.get(i, f"cls{i}") for i in range(size))

    labels = tuple(line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith("#"))
    if not labels:
        raise ValueError(f"Label table is empty: {p}")
    return labels
