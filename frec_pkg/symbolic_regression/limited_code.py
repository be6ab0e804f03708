"""Random linear codes whose internal digits lie inside an arity window.

When every operator of a registry takes one or two arguments, a digit of 3 can
never be given a symbol. ``ArityBounds`` restricts the generator so every
internal node gets a digit from ``[min_arity, max_arity]`` while leaves stay 0.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable
from typing import Iterable

from ..types import Code
from ..types import CodeError
from ..types import ConfigurationError
from .random_source import asc_random_int


@dataclass(frozen=True)
class ArityBounds:
    """Inclusive window of child counts allowed for internal nodes.

    A ``min_arity`` of 0 means no lower limit; internal nodes still need at
    least one child, so the effective lower bound is 1.

    Attributes:
        min_arity: Smallest internal digit (0 = no limit)
        max_arity: Largest internal digit
    """

    min_arity: int = 0
    max_arity: int = 2

    def __post_init__(self):
        if self.min_arity < 0:
            raise ConfigurationError(f"min_arity must be >= 0, got {self.min_arity}")
        if self.max_arity < max(1, self.min_arity):
            raise ConfigurationError(
                f"max_arity must be >= max(1, min_arity), got "
                f"[{self.min_arity}, {self.max_arity}]"
            )

    @classmethod
    def from_arities(cls, arities: Iterable[int]) -> ArityBounds:
        """Derive bounds from the arities of the available operators.

        Leaf arities (0) are ignored. A smallest arity of 1 is the same as
        having no lower limit and is stored as 0.
        """
        internal = [a for a in arities if a > 0]
        if not internal:
            raise ConfigurationError("no operator with at least one argument")
        low = min(internal)
        return cls(0 if low == 1 else low, max(internal))

    @property
    def lower(self) -> int:
        """Effective smallest internal digit."""
        return max(1, self.min_arity)

    def allowed_digits(self) -> tuple[int, ...]:
        """All digits a bounded code may contain, leaf first."""
        return (0,) + tuple(range(self.lower, self.max_arity + 1))

    def admits(self, code: Iterable[int]) -> bool:
        """Whether every digit of ``code`` is allowed."""
        allowed = set(self.allowed_digits())
        return all(d in allowed for d in code)

    def _forest_fits(self, slots: int, nodes: int) -> bool:
        # Can ``slots`` subtrees be filled with exactly ``nodes`` nodes?
        if nodes == 0:
            return slots == 0
        if slots < 1:
            return False
        children = nodes - slots
        if children < 0:
            return False
        if children == 0:
            return True
        return math.ceil(children / self.max_arity) <= children // self.lower

    def is_constructible(self, length: int) -> bool:
        """Whether a single tree of ``length`` nodes exists within the bounds."""
        return length >= 1 and self._forest_fits(1, length)

    def fit_length(self, length: int) -> int:
        """Nearest constructible length, preferring shorter ones on ties."""
        length = max(1, length)
        for delta in range(length):
            if self.is_constructible(length - delta):
                return length - delta
            if self.is_constructible(length + delta):
                return length + delta
        return 1

    def random_code(self, length: int, rng: random.Random | None = None) -> Code:
        """Generate a random code of exactly ``length`` nodes.

        Each digit is drawn uniformly from the allowed digits that leave a
        remainder which can still be completed with allowed digits.

        Raises:
            CodeError: If no tree of that length fits the bounds
        """
        if not self.is_constructible(length):
            raise CodeError(
                f"no tree of length {length} with arities in "
                f"[{self.lower}, {self.max_arity}]"
            )
        rng = rng or random
        digits = []
        open_slots = 1
        for i in range(length):
            left = length - i - 1
            choices = [
                d
                for d in self.allowed_digits()
                if self._forest_fits(open_slots - 1 + d, left)
            ]
            digit = rng.choice(choices)
            digits.append(digit)
            open_slots += digit - 1
        return tuple(digits)

    def random_code_between(
        self,
        min_length: int,
        max_length: int,
        rng: random.Random | None = None,
        prefer_shorter: bool = False,
    ) -> Code:
        """Generate a random code whose length lies in [min_length, max_length].

        Args:
            min_length: Shortest accepted length
            max_length: Longest accepted length
            rng: Random source
            prefer_shorter: Bias the length towards ``min_length``

        Raises:
            CodeError: If no length in the range is constructible
        """
        rng = rng or random
        lengths = [
            n
            for n in range(max(1, min_length), max_length + 1)
            if self.is_constructible(n)
        ]
        if not lengths:
            raise CodeError(
                f"no constructible length in [{min_length}, {max_length}]"
            )
        if prefer_shorter:
            length = lengths[asc_random_int(rng, len(lengths))]
        else:
            length = rng.choice(lengths)
        return self.random_code(length, rng)

    def generator(self) -> Callable[[int, random.Random], Code]:
        """Return a ``(length, rng) -> code`` callable usable by ``mutate``.

        Requested lengths that cannot be built are moved to the nearest
        constructible one.
        """

        def generate(length: int, rng: random.Random) -> Code:
            return self.random_code(self.fit_length(length), rng)

        return generate
