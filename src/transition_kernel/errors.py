"""Exceptions raised by the transition kernel."""


class TransitionKernelError(Exception):
    """Base class for transition kernel errors."""


class OutOfRangeIndex(TransitionKernelError, IndexError):
    """A transition targets a slot outside the state vector.

    Attributes:
        transition: 0-based position of the offending transition in the table
        slot: Which target was out of range ("target_a" or "target_b")
        target: The offending target as supplied by the caller (1-based)
        n_states: Length of the state vector the table was applied to
    """

    def __init__(self, transition: int, slot: str, target: int, n_states: int):
        self.transition = transition
        self.slot = slot
        self.target = target
        self.n_states = n_states
        super().__init__(
            f"Transition {transition}: {slot}={target} is outside the state vector "
            f"(valid 1-based targets are 1..{n_states})"
        )
