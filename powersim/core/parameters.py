"""
Design parameters for PowerSim.

``DesignParameters`` is an immutable record of named numeric fields
describing one experimental configuration (``n``, ``mu``, ``sd``,
``delta``, ``alpha``, ...). A fresh instance is built for every grid point;
nothing downstream mutates it.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional, Sequence

import numpy as np

from ..utils.validators import _validate_design_fields


def _as_python_number(value: Any) -> Any:
    """Unwrap numpy scalars so equality, hashing and repr stay stable."""
    if isinstance(value, np.generic):
        return value.item()
    return value


class DesignParameters(Mapping):
    """Immutable set of named numeric design fields.

    Fields are readable both as attributes (``params.n``) and as mapping
    keys (``params["n"]``). Construction validates the generic invariants:
    every value is a real number, ``n`` (when present) is a positive
    integer and ``alpha`` (when present) lies in (0, 1).

    Example:
        >>> base = DesignParameters(n=100, mu=50, sd=10, delta=5, alpha=0.05)
        >>> base.replace(n=200).n
        200
    """

    __slots__ = ("_fields", "_hash")

    def __init__(self, fields: Optional[Mapping[str, Any]] = None, /, **kwargs: Any):
        merged: Dict[str, Any] = dict(fields or {})
        merged.update(kwargs)
        merged = {str(name): _as_python_number(value) for name, value in merged.items()}

        _validate_design_fields(merged).raise_if_invalid()

        object.__setattr__(self, "_fields", merged)
        object.__setattr__(self, "_hash", None)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(f"DesignParameters has no field '{name}'") from None

    def __setattr__(self, name: str, value: Any):
        raise AttributeError("DesignParameters is immutable; use replace()")

    def __delattr__(self, name: str):
        raise AttributeError("DesignParameters is immutable")

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DesignParameters):
            return self._fields == other._fields
        return NotImplemented

    def __hash__(self) -> int:
        if self._hash is None:
            object.__setattr__(self, "_hash", hash(frozenset(self._fields.items())))
        return self._hash

    def __reduce__(self):
        return (self.__class__, (dict(self._fields),))

    def __repr__(self) -> str:
        body = ", ".join(f"{name}={value!r}" for name, value in self._fields.items())
        return f"DesignParameters({body})"

    def replace(self, **changes: Any) -> "DesignParameters":
        """Return a new instance with *changes* applied (existing or new fields)."""
        merged = dict(self._fields)
        merged.update(changes)
        return DesignParameters(merged)

    def subset(self, names: Sequence[str]) -> Dict[str, Any]:
        """Return a plain dict with only *names* (in the given order)."""
        return {name: self._fields[name] for name in names}

    def as_dict(self) -> Dict[str, Any]:
        """Return a plain, mutable copy of all fields."""
        return dict(self._fields)

    def validate_for(self, n_groups: Optional[int] = None, required_fields: Sequence[str] = ()):
        """Check procedure-specific invariants.

        Args:
            n_groups: Number of balanced groups the trial procedure needs;
                ``n`` must be divisible by it.
            required_fields: Field names the trial procedure reads.

        Raises:
            ConfigurationError: If any invariant is violated.
        """
        _validate_design_fields(self._fields, n_groups=n_groups, required_fields=required_fields).raise_if_invalid()
