"""Data types for the dynamic community reconfiguration pipeline."""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

BASE_METRICS = ("flexibility", "promiscuity", "cohesion", "disjointedness")


class FileFormat(Enum):
    """Supported file formats for saving/loading data."""

    MAT_V5 = "mat_v5"
    MAT_V73 = "mat_v73"
    NPZ = "npz"
    AUTO = "auto"


@dataclass(frozen=True)
class NotComputable:
    """Marker for a metric value that is undefined for this subject."""

    reason: str

    def __str__(self) -> str:
        return "NA"


MetricValue = float | NotComputable


@dataclass(frozen=True)
class AnalysisParams:
    """Parameters shared by every subject in an analysis run.

    Attributes:
        window_length: Number of timepoints per window.
        step: Offset between window starts; None gives discrete windows.
        resolution: Modularity resolution (gamma).
        coupling: Inter-layer coupling between adjacent windows (omega).
        cohesion_rule: Name of the mutual-change rule used for cohesion.
        random_state: Seed for the Louvain node visiting order.
    """

    window_length: int
    step: int | None = None
    resolution: float = 1.0
    coupling: float = 1.0
    cohesion_rule: str = "joint"
    random_state: int = 0

    def __post_init__(self):
        if self.window_length < 2:
            raise ValueError(
                f"window_length must be at least 2, got {self.window_length}")
        if self.step is not None and self.step < 1:
            raise ValueError(f"step must be positive, got {self.step}")
        if self.resolution < 0:
            raise ValueError(
                f"resolution must be non-negative, got {self.resolution}")
        if self.coupling < 0:
            raise ValueError(
                f"coupling must be non-negative, got {self.coupling}")

    def as_attrs(self) -> dict:
        """Plain-dict form used to tag cached artifacts."""
        return {
            "window_length": self.window_length,
            "step": self.step,
            "resolution": float(self.resolution),
            "coupling": float(self.coupling),
            "cohesion_rule": self.cohesion_rule,
            "random_state": self.random_state,
        }


@dataclass
class DataBundle:
    """Container for a subject's node time series.

    Attributes:
        series: The signal array (N x T) where N=nodes, T=timepoints.
    """

    series: NDArray[np.floating]

    @property
    def num_nodes(self) -> int:
        return self.series.shape[0]

    @property
    def num_timepoints(self) -> int:
        return self.series.shape[1]


@dataclass
class DetectionResult:
    """Output of multilayer community detection.

    Attributes:
        labels: (N, W) community labels, consecutive integers from 1.
        windows: (start, stop) timepoint range of each window.
        quality: Multilayer modularity of the returned partition.
    """

    labels: NDArray[np.integer]
    windows: list[tuple[int, int]]
    quality: float

    @property
    def num_windows(self) -> int:
        return self.labels.shape[1]


@dataclass
class ReconfigurationMetrics:
    """Node-level reconfiguration metrics derived from a label matrix.

    Attributes:
        flexibility: (N,) fraction of transitions with a label change.
        promiscuity: (N,) normalized count of distinct communities visited.
        cohesion_matrix: (N, N) count of mutual changes per node pair.
        node_cohesion: (N,) fraction of transitions with a mutual change.
        node_disjointedness: (N,) fraction of transitions with an
            independent change.
        node_flexibility: (N,) flexibility recounted alongside cohesion.
        cohesion_strength: (N,) row sums of the cohesion matrix.
    """

    flexibility: NDArray[np.floating]
    promiscuity: NDArray[np.floating]
    cohesion_matrix: NDArray[np.integer]
    node_cohesion: NDArray[np.floating]
    node_disjointedness: NDArray[np.floating]
    node_flexibility: NDArray[np.floating]
    cohesion_strength: NDArray[np.integer]

    @property
    def num_nodes(self) -> int:
        return self.flexibility.shape[0]

    def base_metric(self, name: str) -> NDArray[np.floating]:
        """Return the node vector behind one of BASE_METRICS."""
        vectors = {
            "flexibility": self.flexibility,
            "promiscuity": self.promiscuity,
            "cohesion": self.node_cohesion,
            "disjointedness": self.node_disjointedness,
        }
        if name not in vectors:
            raise KeyError(f"Unknown base metric: {name}")
        return vectors[name]


@dataclass
class RoiSummary:
    """Mean of a metric over one ROI set and its whole-network ratio."""

    mean: MetricValue
    ratio: MetricValue


@dataclass
class SubjectRecord:
    """Everything the pipeline produces for one subject.

    Attributes:
        subject_id: Subject identifier.
        labels: (N, W) community label matrix.
        metrics: Node-level reconfiguration metrics.
        whole_network: Whole-network mean of each base metric.
        roi: Nested mapping metric -> ROI set name -> RoiSummary.
        quality: Multilayer modularity, None when labels came from cache.
    """

    subject_id: str
    labels: NDArray[np.integer]
    metrics: ReconfigurationMetrics
    whole_network: dict[str, float] = field(default_factory=dict)
    roi: dict[str, dict[str, RoiSummary]] = field(default_factory=dict)
    quality: float | None = None

    @property
    def num_windows(self) -> int:
        return self.labels.shape[1]

    def to_row(self) -> dict[str, object]:
        """Flatten into one table row with a named column per value."""
        row: dict[str, object] = {
            "subject_id": self.subject_id,
            "num_nodes": self.metrics.num_nodes,
            "num_windows": self.num_windows,
            "num_communities": int(np.unique(self.labels).size),
            "quality": "NA" if self.quality is None else self.quality,
        }
        for metric in BASE_METRICS:
            if metric in self.whole_network:
                row[f"{metric}_whole_network"] = float(
                    self.whole_network[metric])
            for roi_name, summary in self.roi.get(metric, {}).items():
                row[f"{metric}_{roi_name}"] = _cell(summary.mean)
                row[f"{metric}_{roi_name}_corrected"] = _cell(summary.ratio)
        return row


@dataclass
class SubjectFailure:
    """A subject whose pipeline raised instead of producing a record."""

    subject_id: str
    error_type: str
    message: str


@dataclass
class BatchResult:
    """Collected outcome of a multi-subject run."""

    records: list[SubjectRecord] = field(default_factory=list)
    failures: list[SubjectFailure] = field(default_factory=list)

    @property
    def subject_ids(self) -> list[str]:
        return [r.subject_id for r in self.records]


def _cell(value: MetricValue) -> object:
    if isinstance(value, NotComputable):
        return str(value)
    return float(value)
