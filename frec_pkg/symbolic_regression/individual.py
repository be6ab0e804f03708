"""Individuals of the evolving population: an expression tree plus fitness."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from dataclasses import replace
from enum import Enum
from enum import auto
from typing import Callable

import numpy as np

from ..config import FITNESS_CEILING
from ..types import FitnessNotAssignedError
from .expression_tree import ExpressionTree


class FitnessState(Enum):
    """Lifecycle of an individual's fitness."""

    UNINITIALIZED = auto()  # Never evaluated
    INVALID = auto()  # NaN, infinite, negative or above the ceiling
    VALID = auto()


def is_valid_fitness(value: float | None) -> bool:
    """Whether a fitness value is usable for selection."""
    return value is not None and math.isfinite(value) and 0.0 <= value < FITNESS_CEILING


@dataclass(frozen=True, eq=False)
class Individual:
    """One candidate formula of the search.

    Individuals never change: assigning a fitness, mutating or crossing all
    return new individuals. Two individuals are equal when their formulas
    print the same, whatever their fitness.

    Attributes:
        tree: The candidate expression
        fitness: Error on the training data (lower is better), None until
                 evaluated
    """

    tree: ExpressionTree
    fitness: float | None = None

    @property
    def state(self) -> FitnessState:
        if self.fitness is None:
            return FitnessState.UNINITIALIZED
        if is_valid_fitness(self.fitness):
            return FitnessState.VALID
        return FitnessState.INVALID

    def is_valid(self) -> bool:
        return self.state == FitnessState.VALID

    @property
    def formula(self) -> str:
        return self.tree.format()

    def with_fitness(self, fitness: float) -> Individual:
        """Copy of this individual carrying ``fitness``."""
        return replace(self, fitness=float(fitness))

    def evaluate_fitness(
        self,
        xs: np.ndarray,
        ys: np.ndarray,
        metric: Callable[[np.ndarray, np.ndarray], float],
    ) -> Individual:
        """Copy carrying the error of this formula on ``(xs, ys)``."""
        return self.with_fitness(metric(ys, self.tree.evaluate_many(xs)))

    def evaluate(self, x: float) -> float:
        return self.tree.evaluate(x)

    def sort_key(self) -> tuple[int, float]:
        """Ascending sort key; every invalid individual ranks after valid ones.

        Raises:
            FitnessNotAssignedError: If the fitness was never computed
        """
        if self.fitness is None:
            raise FitnessNotAssignedError(
                f"individual {self.formula} has no fitness assigned"
            )
        if is_valid_fitness(self.fitness):
            return (0, self.fitness)
        return (1, 0.0)

    def __lt__(self, other: Individual) -> bool:
        if not isinstance(other, Individual):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def mutate(self, rng: random.Random | None = None, **kwargs) -> Individual:
        """New unevaluated individual with one subtree regenerated.

        Keyword arguments are passed to ``ExpressionTree.mutate``.
        """
        return Individual(self.tree.mutate(rng, **kwargs))

    def cross(
        self, other: Individual, rng: random.Random | None = None, **kwargs
    ) -> tuple[Individual, Individual]:
        """Two new unevaluated individuals exchanging one subtree."""
        child_a, child_b = self.tree.cross(other.tree, rng, **kwargs)
        return Individual(child_a), Individual(child_b)

    def canonicalize(self) -> Individual:
        """Canonical form; the fitness is dropped when the tree changes."""
        tree = self.tree.canonicalize()
        if tree is self.tree:
            return self
        return Individual(tree)

    def __len__(self) -> int:
        return len(self.tree)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Individual):
            return NotImplemented
        return self.formula == other.formula

    def __hash__(self) -> int:
        return hash(self.formula)

    def __repr__(self) -> str:
        return f"Individual({self.formula}, fitness={self.fitness})"
