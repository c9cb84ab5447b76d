"""Tests for the pydcr-run CLI entrypoint."""

import csv
import json
import subprocess
import sys

import numpy as np


def _setup_run_data(tmp_path, n_subs=2, n_nodes=8, n_timepoints=80, seed=42):
    """Create synthetic subjects with two planted modules each."""
    rng = np.random.default_rng(seed)
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    membership = np.repeat([0, 1], n_nodes // 2)

    sub_ids = [f"sub{i:03d}" for i in range(1, n_subs + 1)]
    lines = ["subject_id,timeseries\n"]
    for sub_id in sub_ids:
        sources = rng.standard_normal((2, n_timepoints))
        signal = sources[membership] + 0.3 * rng.standard_normal(
            (n_nodes, n_timepoints))
        np.save(str(data_dir / f"{sub_id}.npy"), signal)
        lines.append(f"{sub_id},{data_dir / (sub_id + '.npy')}\n")

    csv_file = tmp_path / "subs.csv"
    csv_file.write_text("".join(lines))

    seed_npy = tmp_path / "seed_labels.npy"
    np.save(str(seed_npy), membership + 1)

    rois = tmp_path / "rois.json"
    rois.write_text(json.dumps({"left": [0, 1, 2], "right": [4, 5]}))
    return csv_file, seed_npy, rois


def _run(*args):
    return subprocess.run(
        [sys.executable, "-m", "pydcr.cli.run", *map(str, args)],
        capture_output=True, text=True,
    )


def test_cli_runs_successfully(tmp_path):
    """CLI should complete and write the metrics table."""
    csv_file, seed_npy, rois = _setup_run_data(tmp_path)
    output_dir = tmp_path / "output"

    result = _run(csv_file, output_dir, "--window-length", 20,
                  "--seed-labels", seed_npy, "--roi-sets", rois)
    assert result.returncode == 0, f"stderr: {result.stderr}"
    assert "2 subjects succeeded, 0 failed" in result.stdout

    with open(output_dir / "metrics_table.csv", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["subject_id"] for r in rows] == ["sub001", "sub002"]
    assert "flexibility_left_corrected" in rows[0]
    assert (output_dir / "records" / "sub001.mat").exists()


def test_cli_overlapping_windows_npz_records(tmp_path):
    csv_file, _, _ = _setup_run_data(tmp_path, n_subs=1)
    output_dir = tmp_path / "output"
    result = _run(csv_file, output_dir, "--window-length", 20, "--step", 10,
                  "--record-format", "npz", "--cohesion-rule", "strict")
    assert result.returncode == 0, f"stderr: {result.stderr}"
    with np.load(str(output_dir / "records" / "sub001.npz")) as npz:
        assert npz["labels"].shape == (8, 7)


def test_cli_missing_sub_list(tmp_path):
    """CLI should fail when sub_list file doesn't exist."""
    result = _run(tmp_path / "nonexistent.csv", tmp_path / "output",
                  "--window-length", 20)
    assert result.returncode == 1
    assert "Error:" in result.stderr


def test_cli_invalid_window_length(tmp_path):
    csv_file, _, _ = _setup_run_data(tmp_path, n_subs=1)
    result = _run(csv_file, tmp_path / "output", "--window-length", 1)
    assert result.returncode == 1
    assert "window_length" in result.stderr


def test_cli_requires_window_length(tmp_path):
    csv_file, _, _ = _setup_run_data(tmp_path, n_subs=1)
    result = _run(csv_file, tmp_path / "output")
    assert result.returncode != 0


def test_cli_reports_failed_subjects(tmp_path):
    """A subject with a missing file is reported, not fatal."""
    csv_file, _, _ = _setup_run_data(tmp_path, n_subs=1)
    with open(csv_file, "a") as f:
        f.write(f"sub999,{tmp_path / 'missing.npy'}\n")
    output_dir = tmp_path / "output"
    result = _run(csv_file, output_dir, "--window-length", 20)
    assert result.returncode == 0, f"stderr: {result.stderr}"
    assert "1 subjects succeeded, 1 failed" in result.stdout
    assert "sub999" in (output_dir / "failures.csv").read_text()
