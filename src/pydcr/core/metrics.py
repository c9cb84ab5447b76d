"""Node-level reconfiguration metrics from a node x window label matrix.

Flexibility and promiscuity are teneto's community measures (Bassett et al.
2011; Papadopoulos et al. 2016); cohesion and disjointedness follow
Telesford et al. (2017).
All transition metrics share the (W - 1) denominator, so for every node
cohesion + disjointedness == flexibility.
"""

from collections.abc import Callable

import numpy as np
from teneto import communitymeasures

from pydcr.errors import InsufficientWindowsError, InvalidLabelMatrixError
from pydcr.types import ReconfigurationMetrics

MutualChangeRule = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _joint_rule(before: np.ndarray, after: np.ndarray) -> np.ndarray:
    """Pairs that shared a community before or after the transition."""
    return ((before[:, None] == before[None, :])
            | (after[:, None] == after[None, :]))


def _strict_rule(before: np.ndarray, after: np.ndarray) -> np.ndarray:
    """Pairs that moved as a unit: shared a community before and after."""
    return ((before[:, None] == before[None, :])
            & (after[:, None] == after[None, :]))


def _simultaneous_rule(before: np.ndarray, after: np.ndarray) -> np.ndarray:
    """Any two nodes that changed in the same transition."""
    n = before.shape[0]
    return np.ones((n, n), dtype=bool)


MUTUAL_CHANGE_RULES: dict[str, MutualChangeRule] = {
    "joint": _joint_rule,
    "strict": _strict_rule,
    "simultaneous": _simultaneous_rule,
}


def validate_label_matrix(S) -> np.ndarray:
    """Return S as an (N, W) int64 array or raise InvalidLabelMatrixError.

    Raises:
        InvalidLabelMatrixError: Ragged rows, wrong rank, non-integer or
            non-finite labels.
        InsufficientWindowsError: Fewer than two windows.
    """
    if not isinstance(S, np.ndarray):
        rows = list(S)
        try:
            lengths = {len(row) for row in rows}
        except TypeError:
            raise InvalidLabelMatrixError(
                "Label matrix must be 2-D (nodes x windows)") from None
        if len(lengths) > 1:
            raise InvalidLabelMatrixError(
                f"Label matrix rows have unequal lengths: {sorted(lengths)}")
        S = np.array(rows)

    if S.ndim != 2:
        raise InvalidLabelMatrixError(
            f"Label matrix must be 2-D (nodes x windows), got {S.ndim}-D")
    if S.shape[0] == 0:
        raise InvalidLabelMatrixError("Label matrix has no nodes")

    if not np.issubdtype(S.dtype, np.integer):
        if not np.issubdtype(S.dtype, np.floating):
            raise InvalidLabelMatrixError(
                f"Labels must be integers, got dtype {S.dtype}")
        if not np.isfinite(S).all():
            raise InvalidLabelMatrixError("Label matrix contains NaN or inf")
        if not np.all(S == np.round(S)):
            raise InvalidLabelMatrixError("Labels must be integer-valued")

    if S.shape[1] < 2:
        raise InsufficientWindowsError(S.shape[1])
    return S.astype(np.int64)


def compute_flexibility(S) -> np.ndarray:
    """Fraction of adjacent-window transitions in which each node changed.

    Args:
        S: (N, W) label matrix, W >= 2.

    Returns:
        (N,) flexibility in [0, 1].
    """
    S = validate_label_matrix(S)
    return np.asarray(communitymeasures.flexibility(S), dtype=np.float64)


def compute_promiscuity(S) -> np.ndarray:
    """Distinct communities visited per node, relative to the network.

    P[n] = (k_n - 1) / (K - 1), with k_n the distinct labels of node n and
    K the distinct labels in the whole matrix; 0 when K == 1.
    """
    S = validate_label_matrix(S)
    if np.unique(S).size <= 1:
        return np.zeros(S.shape[0], dtype=np.float64)
    return np.asarray(communitymeasures.promiscuity(S), dtype=np.float64)


def resolve_rule(rule: str | MutualChangeRule) -> MutualChangeRule:
    """Look up a named mutual-change rule or pass a callable through."""
    if callable(rule):
        return rule
    try:
        return MUTUAL_CHANGE_RULES[rule]
    except KeyError:
        raise ValueError(
            f"Unknown cohesion rule '{rule}'. "
            f"Choose from {sorted(MUTUAL_CHANGE_RULES)}") from None


def compute_cohesion(
    S,
    rule: str | MutualChangeRule = "joint",
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Pairwise mutual changes and the node cohesion/disjointedness split.

    At each transition a pair (i, j) counts as a mutual change when both
    nodes changed community and ``rule(before, after)[i, j]`` holds. A
    node's change is cohesive if it has at least one mutual partner in
    that transition and disjoint otherwise.

    Args:
        S: (N, W) label matrix, W >= 2.
        rule: Name in MUTUAL_CHANGE_RULES or a callable mapping the (N,)
            labels before and after a transition to an (N, N) bool matrix.
            Callable output is made symmetric with a logical AND.

    Returns:
        cohesion_matrix: (N, N) int mutual-change counts, zero diagonal.
        node_cohesion: (N,) cohesive changes / (W - 1).
        node_disjointedness: (N,) disjoint changes / (W - 1).
        node_flexibility: (N,) all changes / (W - 1).
    """
    S = validate_label_matrix(S)
    predicate = resolve_rule(rule)
    N, W = S.shape

    cohesion_matrix = np.zeros((N, N), dtype=np.int64)
    cohesive = np.zeros(N, dtype=np.int64)
    disjoint = np.zeros(N, dtype=np.int64)
    changed_total = np.zeros(N, dtype=np.int64)

    for t in range(W - 1):
        before, after = S[:, t], S[:, t + 1]
        changed = before != after
        changed_total += changed
        if not changed.any():
            continue

        joint = np.asarray(predicate(before, after), dtype=bool)
        if joint.shape != (N, N):
            raise ValueError(
                f"Cohesion rule returned shape {joint.shape}, expected {(N, N)}")
        mutual = joint & joint.T & changed[:, None] & changed[None, :]
        np.fill_diagonal(mutual, False)

        cohesion_matrix += mutual
        has_partner = mutual.any(axis=1)
        cohesive += changed & has_partner
        disjoint += changed & ~has_partner

    denom = W - 1
    return (cohesion_matrix, cohesive / denom, disjoint / denom,
            changed_total / denom)


def compute_reconfiguration(
    S,
    rule: str | MutualChangeRule = "joint",
) -> ReconfigurationMetrics:
    """Compute every node-level metric for one label matrix."""
    S = validate_label_matrix(S)
    cohesion_matrix, node_cohesion, node_disjointedness, node_flexibility = (
        compute_cohesion(S, rule))
    return ReconfigurationMetrics(
        flexibility=compute_flexibility(S),
        promiscuity=compute_promiscuity(S),
        cohesion_matrix=cohesion_matrix,
        node_cohesion=node_cohesion,
        node_disjointedness=node_disjointedness,
        node_flexibility=node_flexibility,
        cohesion_strength=cohesion_matrix.sum(axis=1),
    )
