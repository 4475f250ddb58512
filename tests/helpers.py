"""Shared test helpers (non-fixtures).

These are utilities that can be imported directly into test modules.
For fixtures, see conftest.py.
"""

import numpy as np


def reference_loop(baseline, target_a, target_b, weight, multiplier_a, multiplier_b):
    """Scalar accumulation over 1-based targets, one transition at a time."""
    out = [float(v) for v in baseline]
    for a, b, w, ma, mb in zip(target_a, target_b, weight, multiplier_a, multiplier_b):
        out[a - 1] = out[a - 1] + w * ma
        out[b - 1] = out[b - 1] + w * mb
    return np.array(out, dtype=np.float64)


def random_columns(n_states: int, n_transitions: int, seed: int = 0) -> dict:
    """Random 1-based transition columns with duplicate targets and self-loops."""
    rng = np.random.default_rng(seed)
    return {
        "target_a": rng.integers(1, n_states + 1, size=n_transitions),
        "target_b": rng.integers(1, n_states + 1, size=n_transitions),
        "weight": rng.uniform(-3.0, 3.0, size=n_transitions),
        "multiplier_a": rng.integers(-2, 3, size=n_transitions),
        "multiplier_b": rng.integers(-2, 3, size=n_transitions),
    }
