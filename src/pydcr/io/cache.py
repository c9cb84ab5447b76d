"""Zarr-backed artifact cache keyed by subject id.

Each subject gets a group ``<cache_dir>/<subject_id>.zarr`` holding the
label matrix and the node-level metric vectors. The analysis parameters
are stored as group attributes together with the seed assignment; an
entry written with different parameters or a different seed is treated as
missing.
"""

import logging
import shutil
from pathlib import Path

import numpy as np
import zarr

from pydcr.types import AnalysisParams, ReconfigurationMetrics

logger = logging.getLogger(__name__)

_METRIC_FIELDS = (
    "flexibility",
    "promiscuity",
    "cohesion_matrix",
    "node_cohesion",
    "node_disjointedness",
    "node_flexibility",
    "cohesion_strength",
)


def cache_path(cache_dir: str | Path, subject_id: str) -> Path:
    """Return the Zarr group path for a subject."""
    return Path(cache_dir) / f"{subject_id}.zarr"


def save_artifacts(
    cache_dir: str | Path,
    subject_id: str,
    labels: np.ndarray,
    params: AnalysisParams,
    metrics: ReconfigurationMetrics | None = None,
    quality: float | None = None,
    seed_assignment: np.ndarray | None = None,
) -> Path:
    """Persist a subject's label matrix and, optionally, its metrics."""
    path = cache_path(cache_dir, subject_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        shutil.rmtree(path)

    arrays = {"labels": np.asarray(labels, dtype=np.int64)}
    if metrics is not None:
        for name in _METRIC_FIELDS:
            arrays[name] = np.asarray(getattr(metrics, name))
    zarr.save_group(str(path), **arrays)

    group = zarr.open_group(str(path), mode="r+")
    group.attrs.update({
        "subject_id": subject_id,
        "params": params.as_attrs(),
        "quality": quality,
        "seed_assignment": _seed_attr(seed_assignment),
    })
    return path


def load_artifacts(
    cache_dir: str | Path,
    subject_id: str,
    params: AnalysisParams,
    seed_assignment: np.ndarray | None = None,
) -> tuple[np.ndarray, ReconfigurationMetrics | None, float | None] | None:
    """Load cached artifacts, or None when absent or stale.

    An entry is stale when its parameters or seed assignment differ from
    the ones given.

    Returns:
        (labels, metrics, quality); metrics is None when only the label
        matrix was cached.
    """
    path = cache_path(cache_dir, subject_id)
    if not path.exists():
        return None

    group = zarr.open_group(str(path), mode="r")
    attrs = dict(group.attrs)
    if attrs.get("params") != params.as_attrs():
        logger.warning("  %s: cached artifacts were computed with different "
                       "parameters; recomputing", subject_id)
        return None
    if attrs.get("seed_assignment") != _seed_attr(seed_assignment):
        logger.warning("  %s: cached artifacts were computed with a different "
                       "seed assignment; recomputing", subject_id)
        return None
    if "labels" not in group:
        return None

    labels = np.asarray(group["labels"][:], dtype=np.int64)
    metrics = None
    if all(name in group for name in _METRIC_FIELDS):
        metrics = ReconfigurationMetrics(
            **{name: np.asarray(group[name][:]) for name in _METRIC_FIELDS})
    return labels, metrics, attrs.get("quality")


def clear_artifacts(cache_dir: str | Path, subject_id: str) -> None:
    """Remove a subject's cache entry if present."""
    path = cache_path(cache_dir, subject_id)
    if path.exists():
        shutil.rmtree(path)


def _seed_attr(seed_assignment: np.ndarray | None) -> list[int] | None:
    if seed_assignment is None:
        return None
    return [int(v) for v in np.asarray(seed_assignment).ravel()]
