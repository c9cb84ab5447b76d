"""Read node time series from .npy, text, .mat and NIfTI files."""

from pathlib import Path

import nibabel as nib
import numpy as np

from pydcr.io.mat_interop import load_mat
from pydcr.types import DataBundle

_TEXT_DELIMITERS = {".csv": ",", ".tsv": "\t", ".txt": None}


def read_timeseries(
    path: str | Path,
    variable: str = "timeseries",
    time_by_nodes: bool = False,
) -> DataBundle:
    """Read a subject's signal matrix, dispatching on file extension.

    Supports:
      - .npy arrays
      - .csv / .tsv / .txt delimited text (no header)
      - .mat files (v5 or v7.3) holding `variable`
      - .nii / .nii.gz NIfTI images; leading spatial axes are flattened

    Args:
        path: Input file.
        variable: Variable name to read from .mat files.
        time_by_nodes: True when the stored array is (T, N) rather than
            (N, T).

    Returns a DataBundle with series shaped (num_nodes, num_timepoints).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    name = path.name
    if name.endswith(".npy"):
        data = np.load(str(path))
    elif name.endswith(".mat"):
        data = _read_mat(path, variable)
    elif name.endswith(".nii.gz") or name.endswith(".nii"):
        data = _read_nifti(path)
    elif path.suffix in _TEXT_DELIMITERS:
        data = np.loadtxt(str(path), delimiter=_TEXT_DELIMITERS[path.suffix],
                          ndmin=2)
    else:
        raise ValueError(f"Unsupported file extension: {name}")

    data = np.asarray(data, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError(
            f"Expected a 2-D signal matrix in {path}, got shape {data.shape}")
    if time_by_nodes:
        data = data.T
    return DataBundle(series=data)


def read_seed_labels(path: str | Path) -> np.ndarray:
    """Read a length-N seed label vector from .npy or one-per-line text."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix == ".npy":
        labels = np.load(str(path))
    else:
        labels = np.loadtxt(str(path), delimiter=",", ndmin=1)
    labels = np.asarray(labels).ravel()
    if labels.size == 0:
        raise ValueError(f"No seed labels found in {path}")
    if not np.all(labels == np.round(labels)):
        raise ValueError(f"Seed labels in {path} must be integers")
    return labels.astype(np.int64)


def _read_mat(path: Path, variable: str) -> np.ndarray:
    raw = load_mat(path)
    if variable not in raw:
        raise KeyError(
            f"Variable '{variable}' not found in {path.name}. "
            f"Found: {sorted(raw)}")
    return raw[variable]


def _read_nifti(path: Path) -> np.ndarray:
    """Read NIfTI file and reshape to (num_voxels, num_timepoints)."""
    img = nib.load(str(path))
    data = np.asarray(img.dataobj, dtype=np.float64)
    vol_size = data.shape
    spatial = int(np.prod(vol_size[:3]))
    rest = int(np.prod(vol_size)) // spatial
    return data.reshape(spatial, rest)
