"""Transition records and the columnar transition table.

Callers describe transitions with 1-based target indices (the convention of
the host simulation code). The conversion to 0-based indices happens here,
once, when a table is built; every kernel downstream works on 0-based
`index_a` / `index_b` only.

Multipliers are signed scaling factors applied to a transition's weight. They
are never indices, and the field names keep the two apart.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace

import numpy as np
import polars as pl
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ("target_a", "target_b", "weight", "multiplier_a", "multiplier_b")


class Transition(BaseModel):
    """A single weighted transition between two state-vector slots."""

    model_config = ConfigDict(frozen=True)

    target_a: int = Field(ge=1, description="1-based slot receiving weight * multiplier_a")
    target_b: int = Field(ge=1, description="1-based slot receiving weight * multiplier_b")
    weight: float = Field(allow_inf_nan=False, description="Magnitude of the transition")
    multiplier_a: int = Field(description="Signed multiplier applied at target_a")
    multiplier_b: int = Field(description="Signed multiplier applied at target_b")


def _as_vector(values, name: str, dtype=None) -> np.ndarray:
    arr = np.asarray(values, dtype=dtype)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be 1-D, got shape {arr.shape}")
    return arr


def _as_integral(values, name: str) -> np.ndarray:
    """Coerce to int64, rejecting floats with a fractional part."""
    arr = _as_vector(values, name)
    if arr.size == 0:
        return arr.astype(np.int64)
    if arr.dtype.kind in "biu":
        return arr.astype(np.int64)
    if arr.dtype.kind == "f" and np.all(np.isfinite(arr)) and np.all(arr == np.trunc(arr)):
        return arr.astype(np.int64)
    raise ValueError(f"{name} must hold integer values, got dtype {arr.dtype}")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class TransitionTable:
    """Fixed set of L transitions stored as five parallel arrays.

    Indices are 0-based. Build tables with `from_one_based`, `from_records`
    or `from_dataframe` when the caller speaks 1-based targets.

    Attributes:
        index_a: (L,) int64 0-based slot for the first contribution
        index_b: (L,) int64 0-based slot for the second contribution
        weight: (L,) float64 transition magnitudes
        multiplier_a: (L,) int64 signed multipliers applied at index_a
        multiplier_b: (L,) int64 signed multipliers applied at index_b
    """

    index_a: np.ndarray
    index_b: np.ndarray
    weight: np.ndarray
    multiplier_a: np.ndarray
    multiplier_b: np.ndarray

    def __post_init__(self):
        columns = {
            "index_a": _as_integral(self.index_a, "index_a"),
            "index_b": _as_integral(self.index_b, "index_b"),
            "weight": _as_vector(self.weight, "weight", dtype=np.float64),
            "multiplier_a": _as_integral(self.multiplier_a, "multiplier_a"),
            "multiplier_b": _as_integral(self.multiplier_b, "multiplier_b"),
        }
        lengths = {name: arr.shape[0] for name, arr in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"Transition columns must have equal length, got {lengths}")
        for name in ("index_a", "index_b"):
            if np.any(columns[name] < 0):
                raise ValueError(f"{name} must be non-negative (0-based)")
        for name, arr in columns.items():
            object.__setattr__(self, name, _frozen(arr))

    def __len__(self) -> int:
        return self.weight.shape[0]

    def __repr__(self) -> str:
        return f"TransitionTable(n_transitions={len(self)})"

    @classmethod
    def empty(cls) -> "TransitionTable":
        return cls(
            index_a=np.zeros(0, dtype=np.int64),
            index_b=np.zeros(0, dtype=np.int64),
            weight=np.zeros(0, dtype=np.float64),
            multiplier_a=np.zeros(0, dtype=np.int64),
            multiplier_b=np.zeros(0, dtype=np.int64),
        )

    @classmethod
    def from_one_based(
        cls,
        target_a: Sequence[int] | np.ndarray,
        target_b: Sequence[int] | np.ndarray,
        weight: Sequence[float] | np.ndarray,
        multiplier_a: Sequence[int] | np.ndarray,
        multiplier_b: Sequence[int] | np.ndarray,
    ) -> "TransitionTable":
        """Build a table from 1-based target arrays.

        This is the single place where caller indices are shifted to 0-based.

        Raises:
            ValueError: If a target is below 1, a column is not 1-D,
                multipliers are non-integral, or lengths differ.
        """
        a = _as_integral(target_a, "target_a")
        b = _as_integral(target_b, "target_b")
        for name, arr in (("target_a", a), ("target_b", b)):
            if np.any(arr < 1):
                bad = int(np.flatnonzero(arr < 1)[0])
                raise ValueError(
                    f"{name} is 1-based; transition {bad} has {name}={int(arr[bad])}"
                )
        table = cls(
            index_a=a - 1,
            index_b=b - 1,
            weight=weight,
            multiplier_a=multiplier_a,
            multiplier_b=multiplier_b,
        )
        logger.debug("Built transition table with %d transitions", len(table))
        return table

    @classmethod
    def from_records(
        cls, records: Iterable[Transition | Mapping[str, object]]
    ) -> "TransitionTable":
        """Build a table from `Transition` records (or dicts with the same keys)."""
        parsed = [
            r if isinstance(r, Transition) else Transition.model_validate(r) for r in records
        ]
        if not parsed:
            return cls.empty()
        return cls.from_one_based(
            target_a=[t.target_a for t in parsed],
            target_b=[t.target_b for t in parsed],
            weight=[t.weight for t in parsed],
            multiplier_a=[t.multiplier_a for t in parsed],
            multiplier_b=[t.multiplier_b for t in parsed],
        )

    @classmethod
    def from_dataframe(cls, df: pl.DataFrame) -> "TransitionTable":
        """Build a table from a Polars frame with 1-based target columns.

        Expected columns: target_a, target_b, weight, multiplier_a, multiplier_b.
        Extra columns are ignored.
        """
        missing = [c for c in TABLE_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Transition frame is missing columns: {missing}")
        return cls.from_one_based(**{c: df.get_column(c).to_numpy() for c in TABLE_COLUMNS})

    def to_records(self) -> list[Transition]:
        """Inverse of `from_records` (targets reported 1-based)."""
        return [
            Transition(
                target_a=int(a) + 1,
                target_b=int(b) + 1,
                weight=float(w),
                multiplier_a=int(ma),
                multiplier_b=int(mb),
            )
            for a, b, w, ma, mb in zip(
                self.index_a,
                self.index_b,
                self.weight,
                self.multiplier_a,
                self.multiplier_b,
                strict=True,
            )
        ]

    def to_dataframe(self) -> pl.DataFrame:
        """Columnar view with 1-based targets, matching `from_dataframe`."""
        return pl.DataFrame(
            {
                "target_a": self.index_a + 1,
                "target_b": self.index_b + 1,
                "weight": self.weight,
                "multiplier_a": self.multiplier_a,
                "multiplier_b": self.multiplier_b,
            }
        )

    def with_weight(self, weight: Sequence[float] | np.ndarray) -> "TransitionTable":
        """Same index/multiplier structure, new weights."""
        return replace(self, weight=weight)

    def max_index(self) -> int:
        """Largest 0-based slot referenced, or -1 for an empty table."""
        if len(self) == 0:
            return -1
        return int(max(self.index_a.max(), self.index_b.max()))
