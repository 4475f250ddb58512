"""Reusable accumulator bound to one transition structure.

A simulation loop evaluates the derivative many times with the same
transition structure and, usually, fresh weights at each evaluation point.
`TransitionAccumulator` binds the table and the policy choices once:

    acc = TransitionAccumulator(table, mode="checked")
    for t in times:
        dydt = acc(baseline(t), weight=rates(t))

It keeps no per-call state.
"""

import logging
from collections.abc import Sequence

import numpy as np

from transition_kernel.accumulator import (
    ValidationMode,
    apply,
    apply_in_place,
    validate_indices,
)
from transition_kernel.transitions import TransitionTable
from transition_kernel.utils.config import BACKENDS, KernelConfig, get_config

logger = logging.getLogger(__name__)


class TransitionAccumulator:
    """Apply a fixed transition table to baseline vectors.

    Args:
        table: Transition structure (0-based indices)
        mode: Validation policy, `ValidationMode` or its string value
        backend: "numpy" (default) or "jax"
        ordered: JAX backend only; table-order summation vs scatter-add
        preserve_baseline: When False, `__call__` on a writable float64 numpy
            baseline writes into that buffer instead of allocating a new one;
            other baselines are still copied to a fresh float64 vector
    """

    def __init__(
        self,
        table: TransitionTable,
        mode: ValidationMode | str = ValidationMode.FAST,
        backend: str = "numpy",
        ordered: bool = True,
        preserve_baseline: bool = True,
    ):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend: '{backend}' (expected one of {BACKENDS})")
        self.table = table
        self.mode = ValidationMode(mode)
        self.backend = backend
        self.ordered = ordered
        self.preserve_baseline = preserve_baseline
        self._jax_fn = None

        if backend == "jax":
            from transition_kernel.jax_kernel import make_jax_accumulator, reduced_precision

            if reduced_precision():
                logger.warning(
                    "jax_enable_x64 is off; the JAX backend accumulates in float32 "
                    "(enable x64 for float64 parity with the numpy backend)"
                )
            self._jax_fn = make_jax_accumulator(table, ordered=ordered)

        logger.debug(
            "TransitionAccumulator: %d transitions, mode=%s, backend=%s",
            len(table),
            self.mode.value,
            backend,
        )

    @classmethod
    def from_config(
        cls, table: TransitionTable, config: KernelConfig | None = None
    ) -> "TransitionAccumulator":
        """Build an accumulator from a KernelConfig (defaults to the loaded config)."""
        config = config or get_config()
        return cls(
            table,
            mode=config.validation,
            backend=config.backend,
            ordered=config.ordered,
            preserve_baseline=config.preserve_baseline,
        )

    def __len__(self) -> int:
        return len(self.table)

    def __call__(self, baseline, weight: Sequence[float] | np.ndarray | None = None):
        return self.apply(baseline, weight)

    def apply(self, baseline, weight: Sequence[float] | np.ndarray | None = None):
        """Evaluate the derivative at one point.

        Args:
            baseline: (N,) baseline vector
            weight: Optional (L,) weights for this call; defaults to the table's

        Returns:
            (N,) updated vector (numpy array, or jax array for the JAX backend)
        """
        if self.backend == "jax":
            return self._apply_jax(baseline, weight)
        if (
            not self.preserve_baseline
            and isinstance(baseline, np.ndarray)
            and baseline.dtype == np.float64
            and baseline.flags.writeable
        ):
            return apply_in_place(baseline, self.table, mode=self.mode, weight=weight)
        return apply(baseline, self.table, mode=self.mode, weight=weight)

    def apply_in_place(
        self, vector: np.ndarray, weight: Sequence[float] | np.ndarray | None = None
    ) -> np.ndarray:
        """Overwrite `vector` with the updated derivative and return it."""
        if self.backend == "jax":
            result = self._apply_jax(vector, weight)
            np.copyto(vector, np.asarray(result))
            return vector
        return apply_in_place(vector, self.table, mode=self.mode, weight=weight)

    def _apply_jax(self, baseline, weight):
        import jax.numpy as jnp

        baseline = jnp.asarray(baseline)
        if baseline.ndim != 1:
            raise ValueError(f"baseline must be a 1-D state vector, got shape {baseline.shape}")
        w = jnp.asarray(self.table.weight if weight is None else weight)
        if w.shape != self.table.weight.shape:
            raise ValueError(
                f"weight must have shape {self.table.weight.shape} to match the table, "
                f"got {w.shape}"
            )
        if self.mode == ValidationMode.CHECKED:
            validate_indices(self.table, baseline.shape[0])
        return self._jax_fn(baseline, w)
