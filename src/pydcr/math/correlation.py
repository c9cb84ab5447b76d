"""Correlation and Fisher-z association utilities."""

import numpy as np


def pearson_corr(X: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """Compute Pearson correlation between columns of X and Y.

    Args:
        X: (T, M) array.
        Y: (T, N) array.

    Returns:
        (M, N) correlation matrix. Zero-variance columns correlate as 0.
    """
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64)
    X_centered = X - X.mean(axis=0, keepdims=True)
    Y_centered = Y - Y.mean(axis=0, keepdims=True)
    X_std = np.sqrt((X_centered**2).sum(axis=0, keepdims=True))
    Y_std = np.sqrt((Y_centered**2).sum(axis=0, keepdims=True))
    X_std[X_std == 0] = 1.0
    Y_std[Y_std == 0] = 1.0
    return (X_centered / X_std).T @ (Y_centered / Y_std)


def stable_atanh(r: np.ndarray) -> np.ndarray:
    """Fisher Z-transform with clipping to avoid infinities at +/- 1."""
    eps = np.finfo(np.float64).eps
    r = np.asarray(r, dtype=np.float64)
    return np.arctanh(np.clip(r, -1 + eps, 1 - eps))


def fisher_association(segment: np.ndarray) -> np.ndarray:
    """Absolute Fisher-z correlation between the rows of a signal segment.

    Args:
        segment: (N, L) node-by-time signal for one window.

    Returns:
        (N, N) symmetric non-negative association matrix, zero diagonal.
    """
    segment = np.asarray(segment, dtype=np.float64)
    r = pearson_corr(segment.T, segment.T)
    assoc = np.abs(stable_atanh(r))
    # Round-off can leave r slightly asymmetric
    assoc = (assoc + assoc.T) / 2.0
    np.fill_diagonal(assoc, 0.0)
    return assoc
