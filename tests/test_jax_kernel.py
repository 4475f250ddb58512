"""Tests for the JAX accumulator backend."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from transition_kernel import TransitionTable, apply
from transition_kernel.jax_kernel import (
    accumulate_ordered,
    accumulate_scatter,
    apply_batch,
    make_jax_accumulator,
)


def _columns(table: TransitionTable):
    return (
        jnp.asarray(table.index_a),
        jnp.asarray(table.index_b),
        jnp.asarray(table.weight),
        jnp.asarray(table.multiplier_a),
        jnp.asarray(table.multiplier_b),
    )


class TestKernels:
    """accumulate_ordered / accumulate_scatter on small exact cases."""

    @pytest.mark.parametrize("kernel", [accumulate_ordered, accumulate_scatter])
    def test_single_transition(self, kernel, table_factory):
        table = table_factory([(1, 2, 5.0, 1, -1)])
        out = kernel(jnp.zeros(3), *_columns(table))
        assert jnp.allclose(out, jnp.array([5.0, -5.0, 0.0]))

    @pytest.mark.parametrize("kernel", [accumulate_ordered, accumulate_scatter])
    def test_duplicates_and_self_transition(self, kernel, table_factory):
        table = table_factory([(1, 2, 2.0, 1, 1), (1, 2, 2.0, 1, 1), (2, 2, 0.5, 2, 2)])
        out = kernel(jnp.ones(2), *_columns(table))
        assert jnp.allclose(out, jnp.array([5.0, 7.0]))

    @pytest.mark.parametrize("kernel", [accumulate_ordered, accumulate_scatter])
    def test_empty_table(self, kernel):
        baseline = jnp.array([1.0, 2.0, 3.0])
        out = kernel(baseline, *_columns(TransitionTable.empty()))
        assert jnp.array_equal(out, baseline)

    @pytest.mark.parametrize("kernel", [accumulate_ordered, accumulate_scatter])
    def test_integer_baseline_promoted_to_float(self, kernel, table_factory):
        table = table_factory([(1, 2, 2.5, 1, -1)])
        out = kernel(jnp.zeros(3, dtype=jnp.int32), *_columns(table))
        assert jnp.issubdtype(out.dtype, jnp.floating)
        assert jnp.allclose(out, jnp.array([2.5, -2.5, 0.0]))

    def test_matches_numpy_backend(self, random_case):
        baseline, _, table = random_case
        expected = apply(baseline, table)
        ordered = accumulate_ordered(jnp.asarray(baseline), *_columns(table))
        scatter = accumulate_scatter(jnp.asarray(baseline), *_columns(table))
        np.testing.assert_allclose(np.asarray(ordered), expected, rtol=1e-5, atol=1e-5)
        np.testing.assert_allclose(np.asarray(scatter), expected, rtol=1e-5, atol=1e-5)

    def test_differentiable_in_weight(self, table_factory):
        """d out[k] / d weight[i] is multiplier_a where a==k plus multiplier_b where b==k."""
        table = table_factory([(1, 2, 1.0, 1, -1), (2, 2, 1.0, 3, 1)])
        index_a, index_b, weight, multiplier_a, multiplier_b = _columns(table)

        def slot_two(w):
            out = accumulate_ordered(jnp.zeros(2), index_a, index_b, w, multiplier_a, multiplier_b)
            return out[1]

        grad = jax.grad(slot_two)(weight)
        assert jnp.allclose(grad, jnp.array([-1.0, 4.0]))


class TestCompiledAccumulator:
    @pytest.mark.parametrize("ordered", [True, False])
    def test_weights_are_an_argument(self, ordered, table_factory):
        table = table_factory([(1, 2, 1.0, 1, -1)])
        fn = make_jax_accumulator(table, ordered=ordered)
        out_one = fn(jnp.zeros(2), jnp.array([1.0]))
        out_two = fn(jnp.zeros(2), jnp.array([3.0]))
        assert jnp.allclose(out_one, jnp.array([1.0, -1.0]))
        assert jnp.allclose(out_two, jnp.array([3.0, -3.0]))


class TestBatch:
    def test_shared_weights(self, table_factory):
        table = table_factory([(1, 2, 2.0, 1, -1)])
        baselines = jnp.array([[0.0, 0.0], [1.0, 1.0]])
        out = apply_batch(baselines, table)
        assert out.shape == (2, 2)
        assert jnp.allclose(out, jnp.array([[2.0, -2.0], [3.0, -1.0]]))

    def test_per_point_weights(self, table_factory):
        table = table_factory([(1, 2, 1.0, 1, -1)])
        baselines = jnp.zeros((3, 2))
        weights = jnp.array([[1.0], [2.0], [3.0]])
        out = apply_batch(baselines, table, weights, ordered=False)
        assert jnp.allclose(out[:, 0], jnp.array([1.0, 2.0, 3.0]))
        assert jnp.allclose(out[:, 1], jnp.array([-1.0, -2.0, -3.0]))

    def test_rejects_1d_baselines(self, table_factory):
        with pytest.raises(ValueError, match=r"\(B, N\)"):
            apply_batch(jnp.zeros(3), table_factory([(1, 2, 1.0, 1, 1)]))

    def test_rejects_wrong_weight_length(self, table_factory):
        with pytest.raises(ValueError, match="weight must be"):
            apply_batch(jnp.zeros((2, 3)), table_factory([(1, 2, 1.0, 1, 1)]), jnp.ones(4))
