"""Tests for mat_interop module."""

import numpy as np
import pytest
import scipy.io as sio

from pydcr.core.metrics import compute_reconfiguration
from pydcr.io.mat_interop import (
    load_mat,
    record_to_arrays,
    save_mat,
    save_subject_record,
)
from pydcr.types import FileFormat, SubjectRecord


@pytest.fixture
def record(example_labels):
    metrics = compute_reconfiguration(example_labels)
    return SubjectRecord(
        subject_id="sub01",
        labels=example_labels,
        metrics=metrics,
        whole_network={"flexibility": 0.25, "cohesion": 0.0},
        quality=0.42,
    )


def test_save_load_mat_v5_roundtrip(tmp_path):
    """Save and load a dict of arrays in MATLAB v5 format."""
    data = {"x": np.array([1.0, 2.0, 3.0]), "y": np.eye(3)}
    path = tmp_path / "test.mat"
    save_mat(path, data, fmt=FileFormat.MAT_V5)
    loaded = load_mat(path)
    np.testing.assert_array_equal(loaded["x"].ravel(), data["x"])
    np.testing.assert_array_equal(loaded["y"], data["y"])


def test_save_load_mat_v73_keeps_orientation(tmp_path):
    """A non-square matrix survives the HDF5 transpose in both directions."""
    data = {"labels": np.arange(6).reshape(2, 3)}
    path = tmp_path / "test.mat"
    save_mat(path, data, fmt=FileFormat.MAT_V73)
    loaded = load_mat(path)
    np.testing.assert_array_equal(loaded["labels"], data["labels"])


def test_save_load_npz(tmp_path):
    data = {"x": np.array([1.0, 2.0, 3.0])}
    path = tmp_path / "test.npz"
    save_mat(path, data, fmt=FileFormat.NPZ)
    np.testing.assert_array_equal(load_mat(path)["x"], data["x"])


def test_load_mat_auto_detect_v5(tmp_path):
    """Auto-detect v5 format from file contents."""
    path = tmp_path / "test.mat"
    sio.savemat(str(path), {"val": np.array([42.0])})
    assert load_mat(path)["val"].ravel()[0] == pytest.approx(42.0)


def test_save_mat_auto_unknown_suffix(tmp_path):
    with pytest.raises(ValueError):
        save_mat(tmp_path / "test.bin", {"x": np.zeros(2)}, fmt=FileFormat.AUTO)


def test_load_mat_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_mat(tmp_path / "missing.mat")


def test_record_to_arrays(record):
    arrays = record_to_arrays(record)
    np.testing.assert_array_equal(arrays["labels"], record.labels)
    np.testing.assert_allclose(arrays["flexibility"], [0.5, 0.5, 0.0, 0.0])
    assert arrays["quality"][0] == pytest.approx(0.42)
    assert arrays["flexibility_whole_network"][0] == pytest.approx(0.25)
    assert arrays["cohesion_whole_network"][0] == 0.0
    assert all(np.isfinite(v).all() for v in arrays.values())
    assert "promiscuity_whole_network" not in arrays


@pytest.mark.parametrize("fmt, suffix", [
    (FileFormat.MAT_V5, ".mat"),
    (FileFormat.MAT_V73, ".mat"),
    (FileFormat.NPZ, ".npz"),
])
def test_save_subject_record(tmp_path, record, fmt, suffix):
    path = save_subject_record(record, tmp_path / "records", fmt)
    assert path == tmp_path / "records" / f"sub01{suffix}"
    loaded = load_mat(path)
    np.testing.assert_array_equal(loaded["labels"], record.labels)
    np.testing.assert_array_equal(loaded["cohesion_matrix"],
                                  record.metrics.cohesion_matrix)


def test_save_subject_record_requires_explicit_format(tmp_path, record):
    with pytest.raises(ValueError):
        save_subject_record(record, tmp_path, FileFormat.AUTO)
