"""Read and write named ROI sets (name -> node indices).

Two layouts are accepted:
  - JSON object mapping each set name to a list of node indices
  - CSV with `roi_set` and `node_index` columns, one row per membership
"""

import csv
import json
from pathlib import Path


def read_roi_sets(path: str | Path, index_base: int = 0) -> dict[str, list[int]]:
    """Read ROI sets from .json or .csv.

    Args:
        path: ROI set file.
        index_base: Index of the first node in the file (1 for MATLAB-style
            tables); indices are returned 0-based.

    Returns:
        ROI set name -> node indices, in file order.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix == ".json":
        raw = json.loads(path.read_text())
        if not isinstance(raw, dict):
            raise ValueError(f"{path} must hold a JSON object of ROI sets")
        sets = {str(name): [_as_index(v, name) for v in values]
                for name, values in raw.items()}
    elif path.suffix == ".csv":
        sets = {}
        with path.open(newline="") as f:
            reader = csv.DictReader(f)
            missing = {"roi_set", "node_index"} - set(reader.fieldnames or [])
            if missing:
                raise ValueError(
                    f"{path} is missing columns: {sorted(missing)}")
            for row in reader:
                name = row["roi_set"].strip()
                sets.setdefault(name, []).append(
                    _as_index(row["node_index"], name))
    else:
        raise ValueError(f"Unsupported ROI set format: {path.suffix}")

    return {name: [i - index_base for i in idx] for name, idx in sets.items()}


def write_roi_sets(path: str | Path, roi_sets: dict[str, list[int]]) -> None:
    """Write ROI sets as JSON (0-based indices)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {name: [int(i) for i in idx] for name, idx in roi_sets.items()}
    path.write_text(json.dumps(payload, indent=2) + "\n")


def _as_index(value, name: str) -> int:
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise ValueError(
            f"ROI set '{name}' has a non-numeric node index: {value!r}") from None
    if as_float != int(as_float):
        raise ValueError(
            f"ROI set '{name}' has a non-integer node index: {value!r}")
    return int(as_float)
