from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union


def _load_yaml_names(path: Path) -> List[str]:
    """
    Parse the `names:` block of an Ultralytics-style `metadata.yaml`:

        names:
          0: person
          1: bicycle
          ...

    Only that block is read, so PyYAML is not needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            if not raw[:1].isspace():
                # Next top-level key ends the block.
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    if not names:
        return []
    missing = sorted(set(range(max(names) + 1)) - set(names))
    if missing:
        raise ValueError(f"Class ids missing from {path}: {missing}")
    return [names[i] for i in range(len(names))]


def _load_text_labels(path: Path) -> List[str]:
    labels: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.rstrip("\r\n")
            if line == "":
                break
            labels.append(line)
    return labels


def load_labels(path: Union[str, Path]) -> List[str]:
    """
    Load the ordered class-name table for a model.

    `.yaml`/`.yml` files use the `names:` mapping; anything else is read as
    plain text, one name per line, up to the first blank line.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Label file not found: {p}")
    if p.suffix.lower() in {".yaml", ".yml"}:
        return _load_yaml_names(p)
    return _load_text_labels(p)
