"""Interfaces between the search engine and the outside world.

The engine knows nothing about files or widgets. It hands generation
snapshots to a ``GenerationSink`` and exposes its best formulas as
``BestResult`` values that a presentation layer can format and plot.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Protocol
from typing import runtime_checkable

import numpy as np

from .expression_tree import ExpressionTree
from .individual import Individual


@runtime_checkable
class GenerationSink(Protocol):
    """Receives one immutable snapshot per finished generation."""

    def save(self, label: str, generation: tuple[Individual, ...]) -> None: ...


class MemoryGenerationSink:
    """Keeps every saved generation in memory, in arrival order."""

    def __init__(self):
        self._lock = threading.Lock()
        self.saved: list[tuple[str, tuple[Individual, ...]]] = []

    def save(self, label: str, generation: tuple[Individual, ...]) -> None:
        with self._lock:
            self.saved.append((label, tuple(generation)))

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.saved]

    def __len__(self) -> int:
        return len(self.saved)


@dataclass(frozen=True)
class BestResult:
    """One of the best formulas found.

    Attributes:
        formula: Formatted expression
        fitness: Error on the training data
        length: Number of nodes in the expression tree
        tree: The underlying expression tree
    """

    formula: str
    fitness: float
    length: int
    tree: ExpressionTree = field(compare=False, repr=False)

    @classmethod
    def from_individual(cls, individual: Individual) -> BestResult:
        return cls(
            formula=individual.formula,
            fitness=individual.fitness,
            length=len(individual),
            tree=individual.tree,
        )

    def evaluate(self, x: float) -> float:
        return self.tree.evaluate(x)

    def evaluate_many(self, xs) -> np.ndarray:
        return self.tree.evaluate_many(xs)

    def __call__(self, x: float) -> float:
        return self.tree.evaluate(x)

    @property
    def sympy_expr(self) -> Any:
        """SymPy form of the formula."""
        return self.tree.to_sympy()

    def pretty(self) -> str:
        return self.tree.pretty()

    def __lt__(self, other: BestResult) -> bool:
        """Compare by fitness first, then length."""
        if self.fitness != other.fitness:
            return self.fitness < other.fitness
        return self.length < other.length
