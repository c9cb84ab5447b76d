"""Aggregate node-level metrics over named ROI sets."""

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from pydcr.errors import IndexOutOfBoundsError
from pydcr.types import (
    BASE_METRICS,
    MetricValue,
    NotComputable,
    ReconfigurationMetrics,
    RoiSummary,
)

logger = logging.getLogger(__name__)


def validate_roi_sets(
    roi_sets: Mapping[str, Sequence[int]],
    num_nodes: int,
) -> dict[str, np.ndarray]:
    """Check every ROI set against [0, num_nodes) and return index arrays.

    Raises:
        IndexOutOfBoundsError: An index is negative or >= num_nodes.
        ValueError: A set is empty or holds non-integer entries.
    """
    checked = {}
    for name, indices in roi_sets.items():
        idx = np.asarray(list(indices))
        if idx.size == 0:
            raise ValueError(f"ROI set '{name}' is empty")
        if not np.issubdtype(idx.dtype, np.integer):
            raise ValueError(
                f"ROI set '{name}' must contain integer node indices")
        bad = (idx < 0) | (idx >= num_nodes)
        if bad.any():
            raise IndexOutOfBoundsError(int(idx[bad][0]), name, num_nodes)
        checked[name] = idx.astype(np.int64)
    return checked


def aggregate(
    metric_vector: np.ndarray,
    roi_sets: Mapping[str, Sequence[int]],
) -> dict[str, float]:
    """Mean of the metric vector restricted to each ROI set.

    Args:
        metric_vector: (N,) node-level metric.
        roi_sets: ROI set name -> node indices in [0, N). Sets may overlap.

    Returns:
        ROI set name -> arithmetic mean.
    """
    metric_vector = np.asarray(metric_vector, dtype=np.float64).ravel()
    checked = validate_roi_sets(roi_sets, metric_vector.shape[0])
    return {name: float(metric_vector[idx].mean())
            for name, idx in checked.items()}


def whole_network_mean(metric_vector: np.ndarray) -> float:
    """Mean of the metric over all N nodes."""
    metric_vector = np.asarray(metric_vector, dtype=np.float64).ravel()
    if metric_vector.size == 0:
        raise ValueError("Metric vector is empty")
    return float(metric_vector.mean())


def normalize(
    raw_means: Mapping[str, MetricValue],
    whole_network: MetricValue,
) -> dict[str, MetricValue]:
    """Divide each ROI mean by the whole-network mean of the same metric.

    A whole-network mean of 0 makes every ratio NotComputable.
    """
    if isinstance(whole_network, NotComputable):
        return {name: whole_network for name in raw_means}
    if whole_network == 0:
        reason = "whole-network mean is zero"
        return {name: NotComputable(reason) for name in raw_means}

    ratios: dict[str, MetricValue] = {}
    for name, mean in raw_means.items():
        if isinstance(mean, NotComputable):
            ratios[name] = mean
        else:
            ratios[name] = float(mean) / float(whole_network)
    return ratios


def summarize_rois(
    metrics: ReconfigurationMetrics,
    roi_sets: Mapping[str, Sequence[int]],
) -> tuple[dict[str, float], dict[str, dict[str, RoiSummary]]]:
    """Raw and corrected ROI means for every base metric.

    Returns:
        whole_network: metric -> whole-network mean.
        summaries: metric -> ROI set name -> RoiSummary(mean, ratio).
    """
    whole: dict[str, float] = {}
    summaries: dict[str, dict[str, RoiSummary]] = {}
    for metric in BASE_METRICS:
        vector = metrics.base_metric(metric)
        whole[metric] = whole_network_mean(vector)
        raw = aggregate(vector, roi_sets)
        ratios = normalize(raw, whole[metric])
        if raw and whole[metric] == 0:
            logger.warning("Whole-network %s is zero; corrected ROI values "
                           "are not computable", metric)
        summaries[metric] = {name: RoiSummary(mean=raw[name],
                                              ratio=ratios[name])
                             for name in raw}
    return whole, summaries
