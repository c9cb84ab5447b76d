"""Write the per-subject metrics table and the failure log."""

import csv
from pathlib import Path

from pydcr.types import SubjectFailure, SubjectRecord


def write_metrics_table(
    path: str | Path,
    records: list[SubjectRecord],
) -> Path:
    """Write one row per subject, one column per named value.

    Columns are the union over all records, in first-seen order, so
    subjects with different ROI coverage still share one table; missing
    cells are written as "NA".
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [r.to_row() for r in records]
    fieldnames: list[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, restval="NA")
        writer.writeheader()
        writer.writerows(rows)
    return path


def write_failures(
    path: str | Path,
    failures: list[SubjectFailure],
) -> Path:
    """Write subject_id, error_type, message for every failed subject."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["subject_id", "error_type", "message"])
        for failure in failures:
            writer.writerow(
                [failure.subject_id, failure.error_type, failure.message])
    return path
