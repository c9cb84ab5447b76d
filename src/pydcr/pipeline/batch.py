"""Multi-subject batch driver.

Reads the subject list, runs the single-subject pipeline for every subject
(serially or across worker processes), records per-subject failures and
writes the metrics table.
"""

import csv
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

import numpy as np

from pydcr.io.mat_interop import save_subject_record
from pydcr.io.readers import read_timeseries
from pydcr.io.roi_sets import write_roi_sets
from pydcr.io.writers import write_failures, write_metrics_table
from pydcr.pipeline.single_subject import process_subject
from pydcr.types import (
    AnalysisParams,
    BatchResult,
    FileFormat,
    SubjectFailure,
    SubjectRecord,
)

logger = logging.getLogger(__name__)

# Per-subject errors; anything else is a bug and propagates
_SUBJECT_ERRORS = (ValueError, IndexError, KeyError, OSError)


def parse_sub_list(csv_path: str | Path) -> list[tuple[str, Path]]:
    """Parse subject list CSV, returning (subject_id, timeseries_path) pairs.

    Relative paths are resolved against the CSV file's directory.
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Subject list not found: {csv_path}")
    result = []
    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        missing = {"subject_id", "timeseries"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(
                f"Subject list {csv_path} is missing columns: {sorted(missing)}")
        for row in reader:
            ts_path = Path(row["timeseries"].strip())
            if not ts_path.is_absolute():
                ts_path = csv_path.parent / ts_path
            result.append((row["subject_id"].strip(), ts_path))
    ids = [sid for sid, _ in result]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Subject list {csv_path} has duplicate subject ids")
    return result


def run_subject(
    subject_id: str,
    timeseries_path: str | Path,
    params: AnalysisParams,
    seed_assignment: np.ndarray | None = None,
    roi_sets: dict[str, list[int]] | None = None,
    cache_dir: str | Path | None = None,
    overwrite: bool = False,
    variable: str = "timeseries",
    time_by_nodes: bool = False,
) -> SubjectRecord | SubjectFailure:
    """Load one subject's signal and run its pipeline.

    Returns a SubjectFailure instead of raising for per-subject errors so
    one subject's bad data never aborts the batch.
    """
    try:
        bundle = read_timeseries(timeseries_path, variable=variable,
                                 time_by_nodes=time_by_nodes)
        return process_subject(
            subject_id, bundle.series, params,
            seed_assignment=seed_assignment,
            roi_sets=roi_sets,
            cache_dir=cache_dir,
            overwrite=overwrite,
        )
    except _SUBJECT_ERRORS as exc:
        return SubjectFailure(subject_id=subject_id,
                              error_type=type(exc).__name__,
                              message=str(exc))


def run_batch(
    subjects: list[tuple[str, Path]],
    params: AnalysisParams,
    seed_assignment: np.ndarray | None = None,
    roi_sets: dict[str, list[int]] | None = None,
    cache_dir: str | Path | None = None,
    overwrite: bool = False,
    n_jobs: int = 1,
    variable: str = "timeseries",
    time_by_nodes: bool = False,
) -> BatchResult:
    """Run every subject and collect records and failures.

    Records are returned in subject-list order regardless of completion
    order.
    """
    if n_jobs < 1:
        raise ValueError(f"n_jobs must be positive, got {n_jobs}")

    kwargs = dict(
        params=params,
        seed_assignment=seed_assignment,
        roi_sets=roi_sets,
        cache_dir=cache_dir,
        overwrite=overwrite,
        variable=variable,
        time_by_nodes=time_by_nodes,
    )

    outcomes: dict[str, SubjectRecord | SubjectFailure] = {}
    if n_jobs == 1 or len(subjects) <= 1:
        for subject_id, ts_path in subjects:
            logger.info("  %s", subject_id)
            outcomes[subject_id] = run_subject(subject_id, ts_path, **kwargs)
    else:
        logger.info("  Running %d subjects on %d worker processes",
                    len(subjects), n_jobs)
        with ProcessPoolExecutor(max_workers=n_jobs) as executor:
            futures = {
                executor.submit(run_subject, subject_id, ts_path, **kwargs):
                    subject_id
                for subject_id, ts_path in subjects
            }
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()

    result = BatchResult()
    for subject_id, _ in subjects:
        outcome = outcomes[subject_id]
        if isinstance(outcome, SubjectFailure):
            logger.warning("  %s failed (%s): %s", subject_id,
                           outcome.error_type, outcome.message)
            result.failures.append(outcome)
        else:
            result.records.append(outcome)
    return result


def run_pipeline(
    sub_list: str | Path,
    output_dir: str | Path,
    params: AnalysisParams,
    seed_assignment: np.ndarray | None = None,
    roi_sets: dict[str, list[int]] | None = None,
    n_jobs: int = 1,
    overwrite: bool = False,
    record_format: FileFormat | None = FileFormat.MAT_V5,
    variable: str = "timeseries",
    time_by_nodes: bool = False,
) -> BatchResult:
    """Run the full batch pipeline and write its outputs.

    Writes under output_dir:
      - cache/<subject>.zarr    label matrix and metric vectors
      - records/<subject>.<ext> per-subject arrays (unless record_format is None)
      - metrics_table.csv       one row per successful subject
      - failures.csv            one row per failed subject
      - roi_sets.json           the ROI sets used, 0-based (when given)
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    total_steps = 4

    logger.info("Step 1/%d: Reading subject list", total_steps)
    subjects = parse_sub_list(sub_list)
    if not subjects:
        raise ValueError(f"No subjects listed in {sub_list}")
    logger.info("Loaded %d subjects from %s", len(subjects), sub_list)
    if roi_sets:
        write_roi_sets(output_dir / "roi_sets.json", roi_sets)
        logger.info("Using %d ROI sets: %s", len(roi_sets),
                    ", ".join(roi_sets))

    logger.info("Step 2/%d: Detecting communities and computing metrics "
                "(gamma=%.3f, omega=%.3f, window=%d, step=%s)",
                total_steps, params.resolution, params.coupling,
                params.window_length, params.step)
    result = run_batch(
        subjects, params,
        seed_assignment=seed_assignment,
        roi_sets=roi_sets,
        cache_dir=output_dir / "cache",
        overwrite=overwrite,
        n_jobs=n_jobs,
        variable=variable,
        time_by_nodes=time_by_nodes,
    )

    logger.info("Step 3/%d: Writing per-subject records", total_steps)
    if record_format is not None:
        for record in result.records:
            save_subject_record(record, output_dir / "records", record_format)

    logger.info("Step 4/%d: Writing metrics table", total_steps)
    write_metrics_table(output_dir / "metrics_table.csv", result.records)
    write_failures(output_dir / "failures.csv", result.failures)

    logger.info("Pipeline complete: %d succeeded, %d failed",
                len(result.records), len(result.failures))
    return result
