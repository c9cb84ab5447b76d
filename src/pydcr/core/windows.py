"""Time-window policies and per-window signal checks."""

import numpy as np

from pydcr.errors import DegenerateWindowError


def sliding_windows(
    num_timepoints: int,
    window_length: int,
    step: int | None = None,
) -> list[tuple[int, int]]:
    """Fixed-length windows over the time axis.

    Args:
        num_timepoints: Length T of the signal.
        window_length: Timepoints per window.
        step: Offset between consecutive window starts. None (or equal to
            window_length) gives discrete, non-overlapping windows.

    Returns:
        List of half-open (start, stop) ranges. A trailing partial window
        is dropped.
    """
    if window_length < 2:
        raise ValueError(
            f"window_length must be at least 2, got {window_length}")
    if window_length > num_timepoints:
        raise ValueError(
            f"window_length {window_length} exceeds the number of "
            f"timepoints {num_timepoints}")
    if step is None:
        step = window_length
    if step < 1:
        raise ValueError(f"step must be positive, got {step}")
    return [(start, start + window_length)
            for start in range(0, num_timepoints - window_length + 1, step)]


def validate_windows(
    windows: list[tuple[int, int]],
    num_timepoints: int,
) -> list[tuple[int, int]]:
    """Check externally supplied windows and normalise them to int tuples."""
    if len(windows) == 0:
        raise ValueError("At least one window is required")
    checked = []
    for w, (start, stop) in enumerate(windows):
        start, stop = int(start), int(stop)
        if start < 0 or stop > num_timepoints or stop - start < 2:
            raise ValueError(
                f"Window {w} ({start}, {stop}) is not a range of at least "
                f"2 timepoints within [0, {num_timepoints})")
        checked.append((start, stop))
    return checked


def check_window_segment(segment: np.ndarray, window: int) -> None:
    """Raise DegenerateWindowError for non-finite or constant nodes."""
    finite = np.isfinite(segment).all(axis=1)
    if not finite.all():
        node = int(np.flatnonzero(~finite)[0])
        raise DegenerateWindowError(node, window, "missing or non-finite samples")
    flat = np.ptp(segment, axis=1) == 0
    if flat.any():
        node = int(np.flatnonzero(flat)[0])
        raise DegenerateWindowError(node, window, "zero variance")
