"""Accumulate weighted transitions into a derivative vector.

For each transition i, in table order:

    out[index_a[i]] += weight[i] * multiplier_a[i]
    out[index_b[i]] += weight[i] * multiplier_b[i]

starting from an exact copy of the baseline vector. Contributions are added
one at a time in table order (slot a before slot b within a transition), so
the result is bit-identical to a scalar loop over the table.

Two validation policies are available:

| Mode    | Bounds checks | Out-of-range index           |
|---------|---------------|------------------------------|
| FAST    | none          | caller contract violation    |
| CHECKED | before writes | OutOfRangeIndex, no mutation |
"""

from collections.abc import Sequence
from enum import Enum

import numpy as np

from transition_kernel.errors import OutOfRangeIndex
from transition_kernel.transitions import TransitionTable


class ValidationMode(Enum):
    """Bounds-checking policy for target indices."""

    FAST = "fast"  # Trust upstream index generation
    CHECKED = "checked"  # Validate all indices before accumulating


def validate_indices(table: TransitionTable, n_states: int) -> None:
    """Check that every resolved index lies in [0, n_states).

    Args:
        table: Transition table (0-based indices)
        n_states: Length N of the state vector

    Raises:
        OutOfRangeIndex: For the first offending transition in table order,
            checking target_a before target_b.
    """
    if table.max_index() < n_states:
        return
    bad_a = table.index_a >= n_states
    bad_b = table.index_b >= n_states
    i = int(np.flatnonzero(bad_a | bad_b)[0])
    if bad_a[i]:
        raise OutOfRangeIndex(i, "target_a", int(table.index_a[i]) + 1, n_states)
    raise OutOfRangeIndex(i, "target_b", int(table.index_b[i]) + 1, n_states)


def interleave(table: TransitionTable, weight: np.ndarray | None = None):
    """Flatten the table into one index sequence and one contribution sequence.

    The result alternates slot a and slot b of each transition, which is the
    order contributions are summed in.

    Returns:
        indices: (2L,) int64
        contributions: (2L,) float64
    """
    w = table.weight if weight is None else weight
    indices = np.column_stack((table.index_a, table.index_b)).ravel()
    contributions = np.column_stack(
        (w * table.multiplier_a, w * table.multiplier_b)
    ).ravel()
    return indices, contributions


def _resolve_weight(table: TransitionTable, weight) -> np.ndarray | None:
    if weight is None:
        return None
    w = np.asarray(weight, dtype=np.float64)
    if w.shape != table.weight.shape:
        raise ValueError(
            f"weight must have shape {table.weight.shape} to match the table, got {w.shape}"
        )
    return w


def _check_vector(vector: np.ndarray, name: str) -> None:
    if vector.ndim != 1:
        raise ValueError(f"{name} must be a 1-D state vector, got shape {vector.shape}")


def apply_in_place(
    vector: np.ndarray,
    table: TransitionTable,
    *,
    mode: ValidationMode | str = ValidationMode.FAST,
    weight: Sequence[float] | np.ndarray | None = None,
) -> np.ndarray:
    """Accumulate the table's contributions into `vector` and return it.

    Args:
        vector: Writable 1-D float array; overwritten with the result
        table: Transition table
        mode: Validation policy, `ValidationMode` or its string value
        weight: Optional per-call weights replacing `table.weight`

    Returns:
        `vector`, after accumulation
    """
    if not isinstance(vector, np.ndarray):
        raise TypeError(f"apply_in_place needs a numpy array, got {type(vector).__name__}")
    mode = ValidationMode(mode)
    _check_vector(vector, "vector")
    w = _resolve_weight(table, weight)
    if mode == ValidationMode.CHECKED:
        validate_indices(table, vector.shape[0])
    if len(table) == 0:
        return vector
    indices, contributions = interleave(table, w)
    # Unbuffered: repeated indices accumulate in sequence order
    np.add.at(vector, indices, contributions)
    return vector


def apply(
    baseline: Sequence[float] | np.ndarray,
    table: TransitionTable,
    *,
    mode: ValidationMode | str = ValidationMode.FAST,
    weight: Sequence[float] | np.ndarray | None = None,
) -> np.ndarray:
    """Return baseline plus all transition contributions as a new float64 vector.

    The baseline is left untouched.
    """
    mode = ValidationMode(mode)
    out = np.array(baseline, dtype=np.float64, copy=True)
    _check_vector(out, "baseline")
    return apply_in_place(out, table, mode=mode, weight=weight)


def accumulate(
    n_states: int,
    n_transitions: int,
    baseline: Sequence[float] | np.ndarray,
    weight: Sequence[float] | np.ndarray,
    target_a: Sequence[int] | np.ndarray,
    target_b: Sequence[int] | np.ndarray,
    multiplier_a: Sequence[int] | np.ndarray,
    multiplier_b: Sequence[int] | np.ndarray,
    out: np.ndarray | None = None,
    *,
    mode: ValidationMode | str = ValidationMode.FAST,
) -> np.ndarray:
    """Flat-array entry point for host code that marshals plain arrays.

    Targets are 1-based. `out` may be `baseline` itself (in-place update) or a
    separate buffer of length `n_states`; when omitted a fresh vector is
    returned.

    Raises:
        ValueError: If declared sizes disagree with the array lengths.
    """
    mode = ValidationMode(mode)
    baseline_arr = np.asarray(baseline, dtype=np.float64)
    if baseline_arr.shape != (n_states,):
        raise ValueError(
            f"baseline must have length n_states={n_states}, got shape {baseline_arr.shape}"
        )
    columns = {
        "weight": weight,
        "target_a": target_a,
        "target_b": target_b,
        "multiplier_a": multiplier_a,
        "multiplier_b": multiplier_b,
    }
    for name, values in columns.items():
        if len(values) != n_transitions:
            raise ValueError(
                f"{name} must have length n_transitions={n_transitions}, got {len(values)}"
            )

    table = TransitionTable.from_one_based(
        target_a=target_a,
        target_b=target_b,
        weight=weight,
        multiplier_a=multiplier_a,
        multiplier_b=multiplier_b,
    )

    if out is None:
        return apply(baseline_arr, table, mode=mode)

    if out.shape != (n_states,):
        raise ValueError(f"out must have length n_states={n_states}, got shape {out.shape}")
    if mode == ValidationMode.CHECKED:
        validate_indices(table, n_states)
    if out is not baseline:
        np.copyto(out, baseline_arr)
    return apply_in_place(out, table)
