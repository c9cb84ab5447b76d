"""Exceptions raised by the reconfiguration pipeline.

Structured fields are passed as exception args so instances pickle cleanly
when raised inside a worker process.
"""


class DegenerateWindowError(ValueError):
    """A node is constant or non-finite within a detection window."""

    def __init__(self, node: int, window: int, reason: str = "zero variance"):
        super().__init__(node, window, reason)
        self.node = node
        self.window = window
        self.reason = reason

    def __str__(self) -> str:
        return (f"Degenerate signal for node {self.node} in window "
                f"{self.window}: {self.reason}")


class InvalidLabelMatrixError(ValueError):
    """The community label matrix is malformed."""


class UndefinedMetricError(ValueError):
    """A metric cannot be computed from the available data."""


class InsufficientWindowsError(InvalidLabelMatrixError, UndefinedMetricError):
    """Transition metrics need at least two windows."""

    def __init__(self, num_windows: int):
        super().__init__(num_windows)
        self.num_windows = num_windows

    def __str__(self) -> str:
        return (f"Transition metrics are not computable from "
                f"{self.num_windows} window(s); at least 2 are required")


class IndexOutOfBoundsError(IndexError):
    """An ROI set references a node outside [0, N)."""

    def __init__(self, index: int, roi_set: str, num_nodes: int):
        super().__init__(index, roi_set, num_nodes)
        self.index = index
        self.roi_set = roi_set
        self.num_nodes = num_nodes

    def __str__(self) -> str:
        return (f"ROI set '{self.roi_set}' references node {self.index}, "
                f"outside [0, {self.num_nodes})")
