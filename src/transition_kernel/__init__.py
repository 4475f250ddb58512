"""Transition accumulation kernel for discrete-state rate equations.

Applies a fixed table of weighted transitions to a baseline derivative vector:
each transition adds `weight * multiplier_a` to one slot and
`weight * multiplier_b` to another.
"""

from transition_kernel.accumulator import (
    ValidationMode,
    accumulate,
    apply,
    apply_in_place,
    validate_indices,
)
from transition_kernel.errors import OutOfRangeIndex, TransitionKernelError
from transition_kernel.transition_accumulator import TransitionAccumulator
from transition_kernel.transitions import Transition, TransitionTable

__all__ = [
    # Data model
    "Transition",
    "TransitionTable",
    # Kernel
    "ValidationMode",
    "apply",
    "apply_in_place",
    "accumulate",
    "validate_indices",
    "TransitionAccumulator",
    # Errors
    "TransitionKernelError",
    "OutOfRangeIndex",
]
