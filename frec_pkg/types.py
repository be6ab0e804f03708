"""Shared types and the exception hierarchy for frec.

Structural problems (malformed codes, arity mismatches, ordering individuals
that were never evaluated) are programmer errors and raise immediately.
Numeric domain problems never raise: they surface as NaN during evaluation.
"""

from __future__ import annotations

# A Read's linear code: one child count per node, in prefix order.
Code = tuple[int, ...]


class FrecError(Exception):
    """Base class for all errors raised by frec."""


class CodeError(FrecError, ValueError):
    """Raised when a sequence does not encode exactly one rooted tree."""


class ArityMismatchError(FrecError, ValueError):
    """Raised when a symbol's arity disagrees with the code digit at its position."""

    def __init__(self, position: int, digit: int, arity: int, name: str = ""):
        self.position = position
        self.digit = digit
        self.arity = arity
        label = f" '{name}'" if name else ""
        super().__init__(
            f"symbol{label} at position {position} has arity {arity}, "
            f"code digit is {digit}"
        )


class FitnessNotAssignedError(FrecError, RuntimeError):
    """Raised when individuals are ordered before their fitness was computed."""


class ConfigurationError(FrecError, ValueError):
    """Raised for invalid bounds, operator registries or engine settings."""
