"""Shared fixtures for transition kernel tests.

- Factory fixtures for building transition tables from 1-based columns
- Random tables with repeated targets for property-style checks
- Config cache isolation

For non-fixture helpers (reference_loop, random_columns), see helpers.py.
"""

import numpy as np
import pytest

from tests.helpers import random_columns
from transition_kernel import TransitionTable
from transition_kernel.utils.config import CONFIG_ENV_VAR, load_config


@pytest.fixture
def table_factory():
    """Factory for TransitionTable objects from 1-based rows.

    Usage:
        def test_something(table_factory):
            table = table_factory([(1, 2, 5.0, 1, -1)])
    """

    def _make(rows: list[tuple[int, int, float, int, int]]) -> TransitionTable:
        if not rows:
            return TransitionTable.empty()
        target_a, target_b, weight, multiplier_a, multiplier_b = zip(*rows)
        return TransitionTable.from_one_based(
            target_a=list(target_a),
            target_b=list(target_b),
            weight=list(weight),
            multiplier_a=list(multiplier_a),
            multiplier_b=list(multiplier_b),
        )

    return _make


@pytest.fixture
def random_case():
    """N=7 baseline with a 40-transition random table (1-based columns included)."""
    n_states = 7
    columns = random_columns(n_states, 40, seed=1)
    baseline = np.random.default_rng(2).normal(size=n_states)
    return baseline, columns, TransitionTable.from_one_based(**columns)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Keep tests independent of any config file or env var on the host."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()
