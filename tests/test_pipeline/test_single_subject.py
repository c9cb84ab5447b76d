"""Tests for the single-subject pipeline."""

import numpy as np
import pytest

from pydcr.errors import (
    DegenerateWindowError,
    IndexOutOfBoundsError,
    InsufficientWindowsError,
)
from pydcr.io.cache import cache_path, load_artifacts, save_artifacts
from pydcr.pipeline.single_subject import process_subject
from pydcr.types import BASE_METRICS, AnalysisParams, SubjectRecord


@pytest.fixture
def params():
    return AnalysisParams(window_length=30)


def test_process_subject(modular_signal, planted_membership, params, roi_sets):
    record = process_subject("sub01", modular_signal, params,
                             seed_assignment=planted_membership,
                             roi_sets=roi_sets)
    assert isinstance(record, SubjectRecord)
    assert record.labels.shape == (12, 4)
    assert record.quality > 0
    assert set(record.whole_network) == set(BASE_METRICS)
    assert set(record.roi["flexibility"]) == {"dopamine", "serotonin"}
    np.testing.assert_allclose(record.metrics.flexibility, np.zeros(12))


def test_process_subject_without_rois(modular_signal, params):
    record = process_subject("sub01", modular_signal, params)
    assert record.roi == {m: {} for m in BASE_METRICS}
    assert record.to_row()["num_windows"] == 4


def test_process_subject_invalid_roi_before_detection(modular_signal, params):
    with pytest.raises(IndexOutOfBoundsError):
        process_subject("sub01", modular_signal, params,
                        roi_sets={"A": [0, 40]})


def test_process_subject_degenerate(modular_signal, params):
    signal = modular_signal.copy()
    signal[0, :30] = 0.0
    with pytest.raises(DegenerateWindowError):
        process_subject("sub01", signal, params)


def test_process_subject_writes_cache(tmp_path, modular_signal, params):
    record = process_subject("sub01", modular_signal, params,
                             cache_dir=tmp_path)
    assert cache_path(tmp_path, "sub01").exists()
    labels, metrics, quality = load_artifacts(tmp_path, "sub01", params)
    np.testing.assert_array_equal(labels, record.labels)
    np.testing.assert_allclose(metrics.promiscuity, record.metrics.promiscuity)
    assert quality == pytest.approx(record.quality)


def test_process_subject_reuses_cache(tmp_path, modular_signal, params,
                                      example_labels):
    """Cached labels are used as-is, even if the signal would disagree."""
    padded = np.vstack([example_labels] * 3)
    save_artifacts(tmp_path, "sub01", padded, params, quality=0.1)
    record = process_subject("sub01", modular_signal, params,
                             cache_dir=tmp_path)
    np.testing.assert_array_equal(record.labels, padded)
    assert record.quality == pytest.approx(0.1)
    np.testing.assert_allclose(record.metrics.flexibility[:4],
                               [0.5, 0.5, 0.0, 0.0])


def test_process_subject_overwrite_ignores_cache(tmp_path, modular_signal,
                                                 params, example_labels):
    padded = np.vstack([example_labels] * 3)
    save_artifacts(tmp_path, "sub01", padded, params)
    record = process_subject("sub01", modular_signal, params,
                             cache_dir=tmp_path, overwrite=True)
    assert record.labels.shape == (12, 4)
    labels, _, _ = load_artifacts(tmp_path, "sub01", params)
    np.testing.assert_array_equal(labels, record.labels)


def test_process_subject_too_few_windows(tmp_path, modular_signal):
    params = AnalysisParams(window_length=100)
    with pytest.raises(InsufficientWindowsError):
        process_subject("sub01", modular_signal, params, cache_dir=tmp_path)
    assert not cache_path(tmp_path, "sub01").exists()


def test_process_subject_cache_keyed_on_seed(tmp_path, modular_signal,
                                             planted_membership, params,
                                             example_labels):
    """An entry cached under one seed is not reused for another."""
    padded = np.vstack([example_labels] * 3)
    save_artifacts(tmp_path, "sub01", padded, params,
                   seed_assignment=planted_membership)

    record = process_subject("sub01", modular_signal, params,
                             seed_assignment=planted_membership,
                             cache_dir=tmp_path)
    np.testing.assert_array_equal(record.labels, padded)

    record = process_subject("sub01", modular_signal, params,
                             seed_assignment=np.ones(12, dtype=int),
                             cache_dir=tmp_path)
    assert record.labels.shape == (12, 4)
    labels, _, _ = load_artifacts(tmp_path, "sub01", params,
                                  np.ones(12, dtype=int))
    np.testing.assert_array_equal(labels, record.labels)


def test_process_subject_seed_length_checked_before_cache(
        tmp_path, modular_signal, params, example_labels):
    padded = np.vstack([example_labels] * 3)
    save_artifacts(tmp_path, "sub01", padded, params)
    with pytest.raises(ValueError, match="seed assignment"):
        process_subject("sub01", modular_signal, params,
                        seed_assignment=np.ones(5, dtype=int),
                        cache_dir=tmp_path)
