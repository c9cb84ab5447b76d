"""Load and save .mat (v5 and v7.3) and .npz files."""

from pathlib import Path

import h5py
import numpy as np
import scipy.io as sio

from pydcr.types import BASE_METRICS, FileFormat, SubjectRecord

_SUFFIXES = {
    FileFormat.MAT_V5: ".mat",
    FileFormat.MAT_V73: ".mat",
    FileFormat.NPZ: ".npz",
}


def _is_hdf5(path: Path) -> bool:
    """Check if a file is HDF5 format by reading its magic bytes."""
    with open(path, "rb") as f:
        return f.read(8) == b"\x89HDF\r\n\x1a\n"


def load_mat(path: str | Path) -> dict[str, np.ndarray]:
    """Load data from a .mat or .npz file, auto-detecting format.

    HDF5 (v7.3) datasets are transposed back to MATLAB's row/column order.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix == ".npz":
        with np.load(str(path)) as npz:
            return dict(npz)

    if _is_hdf5(path):
        result = {}
        with h5py.File(str(path), "r") as f:
            for key in f.keys():
                if key.startswith("#"):
                    continue
                result[key] = np.array(f[key]).T
        return result

    raw = sio.loadmat(str(path))
    return {k: v for k, v in raw.items() if not k.startswith("_")}


def save_mat(
    path: str | Path,
    data: dict[str, np.ndarray],
    fmt: FileFormat = FileFormat.MAT_V5,
) -> None:
    """Save data to a .mat or .npz file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == FileFormat.MAT_V5:
        sio.savemat(str(path), data)
    elif fmt == FileFormat.MAT_V73:
        with h5py.File(str(path), "w") as f:
            for key, val in data.items():
                f.create_dataset(key, data=np.asarray(val).T)
    elif fmt == FileFormat.NPZ:
        np.savez(str(path), **data)
    elif fmt == FileFormat.AUTO:
        if path.suffix == ".npz":
            np.savez(str(path), **data)
        elif path.suffix == ".mat":
            sio.savemat(str(path), data)
        else:
            raise ValueError(f"Cannot auto-detect format for extension: {path.suffix}")
    else:
        raise ValueError(f"Unsupported format: {fmt}")


def record_to_arrays(record: SubjectRecord) -> dict[str, np.ndarray]:
    """Arrays describing one subject, keyed by MATLAB-safe variable names."""
    m = record.metrics
    arrays = {
        "labels": record.labels,
        "flexibility": m.flexibility,
        "promiscuity": m.promiscuity,
        "cohesion_matrix": m.cohesion_matrix,
        "node_cohesion": m.node_cohesion,
        "node_disjointedness": m.node_disjointedness,
        "cohesion_strength": m.cohesion_strength,
    }
    if record.quality is not None:
        arrays["quality"] = np.array([record.quality])
    for metric in BASE_METRICS:
        if metric in record.whole_network:
            arrays[f"{metric}_whole_network"] = np.array(
                [float(record.whole_network[metric])])
    return arrays


def save_subject_record(
    record: SubjectRecord,
    out_dir: str | Path,
    fmt: FileFormat = FileFormat.MAT_V5,
) -> Path:
    """Write one subject's arrays to out_dir/<subject_id>.<ext>."""
    if fmt == FileFormat.AUTO:
        raise ValueError("An explicit format is required for subject records")
    path = Path(out_dir) / f"{record.subject_id}{_SUFFIXES[fmt]}"
    save_mat(path, record_to_arrays(record), fmt=fmt)
    return path
