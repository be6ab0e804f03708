"""Genetic Programming engine evolving expression trees over Read's code.

A ``GenerationController`` owns the current generation (an immutable tuple of
individuals), the training data and one random source. It offers a small set
of primitives (initialize, evaluate, filter, select, mutate, cross, ...) that
each return a new tuple, and concrete strategies sequence these primitives
into an initialization step and a per-generation step.

Key Classes:
    - GeneticConfig: Search settings (defaults from ``frec_pkg.config``)
    - GenerationController: Base class holding data, state and primitives
    - StandardStrategy: Classic GA, children replace weak parents
    - OscillatingStrategy: GP pool with an oscillating code-length window
    - SeededStrategy: GP pool seeded from many small sub-populations
    - ExhaustiveCrossStrategy: Seeded GP trying every crossing position pair
"""

from __future__ import annotations

import math
import random
import threading
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import auto
from typing import Callable
from typing import Iterable

import numpy as np

from ..config import ARBITRARY_CROSSINGS
from ..config import ARBITRARY_MUTATIONS
from ..config import CONSTANT_MAX
from ..config import CONSTANT_MIN
from ..config import CONSTANT_PROBABILITY
from ..config import CROSSING_PROBABILITY
from ..config import DEFAULT_OPERATORS
from ..config import ERROR_METRIC
from ..config import GENERATION_SIZE
from ..config import GENERATIONS
from ..config import MAX_CODE_LENGTH
from ..config import MAX_REFILL_ROUNDS
from ..config import MIN_CODE_LENGTH
from ..config import MUTATION_PROBABILITY
from ..config import REPRODUCTION_PROBABILITY
from ..config import SAVING_ENABLED
from ..config import SELECTION_PROBABILITY
from ..config import STRATEGY
from ..config import USE_CONSTANTS
from ..logging_config import get_logger
from ..logging_config import setup_logging
from ..types import ConfigurationError
from .collaborators import BestResult
from .collaborators import GenerationSink
from .collaborators import MemoryGenerationSink
from .error_metrics import ERROR_METRICS
from .error_metrics import get_error_metric
from .expression_tree import ExpressionTree
from .expression_tree import TreeConfig
from .functions import OperatorRegistry
from .individual import Individual
from .random_source import asc_random_int
from .random_source import create_rng
from .random_source import random_boolean

logger = get_logger("engine")

Generation = tuple[Individual, ...]


@dataclass
class GeneticConfig:
    """Configuration for the evolutionary search."""

    generation_size: int = GENERATION_SIZE
    generations: int = GENERATIONS
    mutation_probability: float = MUTATION_PROBABILITY
    crossing_probability: float = CROSSING_PROBABILITY
    reproduction_probability: float = REPRODUCTION_PROBABILITY
    selection_probability: float = SELECTION_PROBABILITY
    arbitrary_mutations: bool = ARBITRARY_MUTATIONS  # Ignore the length window
    arbitrary_crossings: bool = ARBITRARY_CROSSINGS
    min_code_length: int = MIN_CODE_LENGTH
    max_code_length: int = MAX_CODE_LENGTH
    operators: list[str] = field(default_factory=lambda: list(DEFAULT_OPERATORS))
    use_constants: bool = USE_CONSTANTS
    constant_probability: float = CONSTANT_PROBABILITY
    constant_range: tuple[float, float] = (CONSTANT_MIN, CONSTANT_MAX)
    error_metric: str | Callable = ERROR_METRIC
    saving_enabled: bool = SAVING_ENABLED
    max_refill_rounds: int = MAX_REFILL_ROUNDS
    seed: int | None = None

    def __post_init__(self):
        if self.generation_size < 1:
            raise ConfigurationError(
                f"generation_size must be positive, got {self.generation_size}"
            )
        if self.generations < 0:
            raise ConfigurationError(
                f"generations must be >= 0, got {self.generations}"
            )
        for name in (
            "mutation_probability",
            "crossing_probability",
            "reproduction_probability",
            "selection_probability",
            "constant_probability",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if not 1 <= self.min_code_length <= self.max_code_length:
            raise ConfigurationError(
                f"code length window must satisfy 1 <= min <= max, got "
                f"[{self.min_code_length}, {self.max_code_length}]"
            )
        if self.max_refill_rounds < 1:
            raise ConfigurationError(
                f"max_refill_rounds must be positive, got {self.max_refill_rounds}"
            )
        if isinstance(self.error_metric, str) and self.error_metric not in ERROR_METRICS:
            raise ConfigurationError(
                f"unknown error metric '{self.error_metric}', "
                f"expected one of {sorted(ERROR_METRICS)}"
            )

    def build_tree_config(self) -> TreeConfig:
        """Tree settings (operator registry, constants) for this search."""
        return TreeConfig(
            registry=OperatorRegistry.from_names(self.operators),
            use_constants=self.use_constants,
            constant_probability=self.constant_probability,
            constant_range=tuple(self.constant_range),
        )


class ControllerState(Enum):
    """Lifecycle of a controller run."""

    UNINITIALIZED = auto()
    INITIALIZING = auto()
    EVALUATING = auto()
    EVOLVING = auto()
    FINISHED = auto()


class GenerationController(ABC):
    """Base class of the search strategies.

    Subclasses implement ``compute_init`` (build the first generation) and
    ``compute_next`` (derive the next generation from ``self.generation``).
    Both are sequences of the primitives below. Every primitive holds the
    controller lock and returns a new tuple; previously published generations
    are never modified.

    Example::

        xs = np.linspace(0, 3, 20)
        controller = StandardStrategy(xs, xs * xs, seed=1)
        controller.run()
        print(controller.best_results(1)[0].formula)
    """

    name = "abstract"

    def __init__(
        self,
        data_x: Iterable[float],
        data_y: Iterable[float],
        config: GeneticConfig | None = None,
        *,
        tree_config: TreeConfig | None = None,
        rng: random.Random | None = None,
        seed: int | None = None,
        sink: GenerationSink | None = None,
    ):
        """Initialize the controller.

        Args:
            data_x: Training inputs
            data_y: Training outputs, same length as ``data_x``
            config: Search settings (defaults if None)
            tree_config: Operator registry and constants (derived from
                         ``config`` if None)
            rng: Random source to use as is
            seed: Seed for a new random source (``config.seed`` if None)
            sink: Receives every generation snapshot
        """
        self.config = config or GeneticConfig()
        self.tree_config = tree_config or self.config.build_tree_config()

        xs = np.array(data_x, dtype=float)
        ys = np.array(data_y, dtype=float)
        if xs.ndim != 1 or ys.ndim != 1:
            raise ValueError("training data must be one-dimensional")
        if len(xs) != len(ys):
            raise ValueError(
                f"training data length mismatch: {len(xs)} x values, {len(ys)} y values"
            )
        if len(xs) == 0:
            raise ValueError("training data is empty")
        xs.setflags(write=False)
        ys.setflags(write=False)
        self.data_x = xs
        self.data_y = ys
        self.error_metric = get_error_metric(self.config.error_metric)

        if rng is None:
            rng = create_rng(seed if seed is not None else self.config.seed)
        self.rng = rng
        if sink is None and self.config.saving_enabled:
            sink = MemoryGenerationSink()
        self.sink = sink

        self.min_length = self.config.min_code_length
        self.max_length = self.config.max_code_length
        if not self._window_constructible(self.min_length, self.max_length):
            raise ConfigurationError(
                f"no expression of length {self.min_length}..{self.max_length} "
                f"can be built from operators {list(self.tree_config.registry.names)}"
            )

        self.state = ControllerState.UNINITIALIZED
        self.generation: Generation = ()
        self.generation_counter = 0
        self.best_fitness = math.nan
        self.individuals_created = 0

        self._lock = threading.RLock()
        self._stop_requested = threading.Event()
        self._finished = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    @abstractmethod
    def compute_init(self) -> Generation:
        """Build the initial generation."""

    @abstractmethod
    def compute_next(self) -> Generation:
        """Derive the next generation from ``self.generation``."""

    def run(self) -> Generation:
        """Run the whole search synchronously.

        Stops after ``config.generations`` generations, or at the next
        generation boundary once ``stop()`` was called. Running again starts
        a fresh search; a stop request left over from a finished run is
        discarded.

        Returns:
            The final generation
        """
        with self._lock:
            self._reset_run()
            self.state = ControllerState.INITIALIZING
            logger.info(
                "%s: initializing %d individuals from %d samples",
                self.name,
                self.config.generation_size,
                len(self.data_x),
            )
            generation = self.compute_init()
            self.state = ControllerState.EVALUATING
            generation = self._ensure_populated(self.validate_fitness(generation))
            self._publish(generation)
            self.state = ControllerState.EVOLVING

        while self.generation_counter < self.config.generations:
            if self._stop_requested.is_set():
                logger.info(
                    "%s: stopped at generation %d", self.name, self.generation_counter
                )
                break
            with self._lock:
                if self.sink is not None:
                    self.sink.save(f"GENERATION{self.generation_counter}", self.generation)
                generation = self._ensure_populated(self.compute_next())
                self._publish(generation)
                self.generation_counter += 1
                logger.debug(
                    "%s: generation %d, size %d, best fitness %.6g",
                    self.name,
                    self.generation_counter,
                    len(self.generation),
                    self.best_fitness,
                )

        with self._lock:
            self.state = ControllerState.FINISHED
            logger.info(
                "%s: finished after %d generations, best fitness %.6g",
                self.name,
                self.generation_counter,
                self.best_fitness,
            )
        self._finished.set()
        return self.generation

    def start(self) -> threading.Thread:
        """Run the search on a background thread."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("search is already running")
            self._reset_run()
            # Keeps the worker from discarding a stop() issued before it runs
            self.state = ControllerState.INITIALIZING
            self._thread = threading.Thread(
                target=self.run, name=f"frec-{self.name}", daemon=True
            )
            self._thread.start()
            return self._thread

    def _reset_run(self) -> None:
        if self.state == ControllerState.FINISHED:
            self._stop_requested.clear()
        self._finished.clear()
        self.generation_counter = 0
        self.best_fitness = math.nan
        self.min_length = self.config.min_code_length
        self.max_length = self.config.max_code_length

    def stop(self) -> None:
        """Ask the search to stop at the next generation boundary."""
        self._stop_requested.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for a background run; returns True once it has finished."""
        return self._finished.wait(timeout)

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    @property
    def stopped(self) -> bool:
        return self._stop_requested.is_set()

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def best_results(self, k: int = 5) -> list[BestResult]:
        """The ``k`` best evaluated individuals of the current generation."""
        with self._lock:
            evaluated = [ind for ind in self.generation if ind.fitness is not None]
            ranked = sorted(evaluated, key=Individual.sort_key)
            return [BestResult.from_individual(ind) for ind in ranked[: max(0, k)]]

    def best_formulas(self, k: int = 5) -> list[str]:
        return [result.formula for result in self.best_results(k)]

    def best_evaluators(self, k: int = 5) -> list[Callable[[float], float]]:
        """``x -> y`` callables of the ``k`` best formulas."""
        return [result.evaluate for result in self.best_results(k)]

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def random_individual(
        self, length: int | None = None, prefer_shorter: bool = False
    ) -> Individual:
        """New unevaluated random individual.

        Args:
            length: Exact code length (moved to the nearest buildable length);
                    a random length inside the current window if None
            prefer_shorter: Bias random lengths towards the window minimum
        """
        with self._lock:
            self.individuals_created += 1
            if length is None:
                tree = ExpressionTree.random_between(
                    self.tree_config,
                    self.min_length,
                    self.max_length,
                    self.rng,
                    prefer_shorter=prefer_shorter,
                )
            else:
                length = self.tree_config.bounds.fit_length(length)
                tree = ExpressionTree.random(self.tree_config, length, self.rng)
            return Individual(tree)

    def initialize(self, size: int, fixed_length: int | None = None) -> Generation:
        """``size`` new random individuals, evaluated."""
        with self._lock:
            fresh = [self.random_individual(fixed_length) for _ in range(size)]
            return self.validate_fitness(fresh)

    def validate_fitness(self, individuals: Iterable[Individual]) -> Generation:
        """Compute the fitness of every individual that has none yet."""
        with self._lock:
            return tuple(
                ind
                if ind.fitness is not None
                else ind.evaluate_fitness(self.data_x, self.data_y, self.error_metric)
                for ind in individuals
            )

    def drop_invalid(self, individuals: Iterable[Individual]) -> Generation:
        """Keep valid individuals, in order."""
        with self._lock:
            return tuple(ind for ind in individuals if ind.is_valid())

    def drop_duplicates(self, individuals: Iterable[Individual]) -> Generation:
        """Canonicalize and keep the first individual of every formula.

        Individuals whose tree changed during canonicalization are evaluated
        again.
        """
        with self._lock:
            canonical = self.validate_fitness(ind.canonicalize() for ind in individuals)
            seen: set[str] = set()
            unique = []
            for ind in canonical:
                if ind.formula not in seen:
                    seen.add(ind.formula)
                    unique.append(ind)
            return tuple(unique)

    def clean(self, individuals: Iterable[Individual]) -> Generation:
        """Evaluate, then drop duplicate and invalid individuals.

        Validity is checked after canonicalization; canonical trees are scored
        again.
        """
        with self._lock:
            unique = self.drop_duplicates(self.validate_fitness(individuals))
            return self.drop_invalid(unique)

    def select_best(self, individuals: Iterable[Individual], k: int) -> Generation:
        """The ``k`` fittest individuals in ascending fitness order.

        Invalid individuals rank after every valid one; ``k`` is clamped to
        the number of individuals.

        Raises:
            FitnessNotAssignedError: If an individual was never evaluated
        """
        with self._lock:
            ranked = sorted(individuals, key=Individual.sort_key)
            selected = tuple(ranked[: max(0, k)])
            if selected and selected[0].is_valid():
                self.best_fitness = selected[0].fitness
            return selected

    def mutate_all(self, individuals: Iterable[Individual], probability: float) -> Generation:
        """Append a mutated copy of each individual with ``probability``."""
        with self._lock:
            individuals = tuple(individuals)
            mutants = [
                ind.mutate(self.rng, **self._mutation_bounds())
                for ind in individuals
                if random_boolean(self.rng, probability)
            ]
            return individuals + tuple(mutants)

    def mutate_weak(
        self, individuals: Iterable[Individual], probability: float, factor: float = 3.0
    ) -> Generation:
        """Mutate in place individuals worse than ``factor`` times the best.

        A mutation is kept only when the mutant has a valid fitness;
        otherwise the original stays.
        """
        with self._lock:
            result = []
            threshold = factor * self.best_fitness
            for ind in individuals:
                if (
                    random_boolean(self.rng, probability)
                    and ind.fitness is not None
                    and ind.fitness > threshold
                ):
                    mutant = ind.mutate(self.rng, **self._mutation_bounds())
                    mutant = mutant.evaluate_fitness(
                        self.data_x, self.data_y, self.error_metric
                    )
                    if mutant.is_valid():
                        ind = mutant
                result.append(ind)
            return tuple(result)

    def cross_all(
        self,
        individuals: Iterable[Individual],
        probability: float,
        *,
        ranked_parents: bool = False,
    ) -> Generation:
        """Append the children of randomly paired individuals.

        With ``ranked_parents`` one pair is drawn per individual with
        ``probability``, both parents biased towards the front of the
        (sorted) generation. Otherwise individual i is crossed with
        probability ``probability * (1 - i / n)`` with a partner biased
        towards the front.
        """
        with self._lock:
            individuals = tuple(individuals)
            n = len(individuals)
            if n < 2:
                return individuals
            children: list[Individual] = []
            for i in range(n):
                if ranked_parents:
                    if not random_boolean(self.rng, probability):
                        continue
                    a, b = self._ranked_pair(n)
                else:
                    if not random_boolean(self.rng, probability * (1 - i / n)):
                        continue
                    a, b = i, self._pick_partner(n, i)
                children.extend(
                    individuals[a].cross(
                        individuals[b], self.rng, **self._crossing_bounds()
                    )
                )
            return individuals + tuple(children)

    def reproduce(self, individuals: Iterable[Individual], probability: float) -> Generation:
        """Append copies of individuals with a probability decaying along the list."""
        with self._lock:
            individuals = tuple(individuals)
            n = len(individuals)
            copies = []
            current = probability
            for i, ind in enumerate(individuals):
                if random_boolean(self.rng, current):
                    current = probability - probability * (i + 1) / (n + 1)
                    copies.append(ind)
            return individuals + tuple(copies)

    def add_random(
        self,
        individuals: Iterable[Individual],
        count: int,
        prefer_shorter: bool = False,
    ) -> Generation:
        """Append ``count`` new evaluated random individuals."""
        with self._lock:
            fresh = [
                self.random_individual(prefer_shorter=prefer_shorter)
                for _ in range(max(0, count))
            ]
            return tuple(individuals) + self.validate_fitness(fresh)

    def refill(
        self,
        individuals: Iterable[Individual],
        size: int,
        prefer_shorter: bool = False,
    ) -> Generation:
        """Top up with valid random individuals until ``size`` is reached.

        Gives up after ``config.max_refill_rounds`` rounds and logs the
        shortfall.
        """
        with self._lock:
            generation = tuple(individuals)
            rounds = 0
            while len(generation) < size and rounds < self.config.max_refill_rounds:
                rounds += 1
                generation = self.drop_invalid(
                    self.add_random(generation, size - len(generation), prefer_shorter)
                )
            if len(generation) < size:
                logger.warning(
                    "%s: only %d of %d valid individuals after %d refill rounds",
                    self.name,
                    len(generation),
                    size,
                    rounds,
                )
            return generation

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(self, generation: Generation) -> None:
        self.generation = generation
        evaluated = [ind for ind in generation if ind.is_valid()]
        if evaluated:
            self.best_fitness = min(ind.fitness for ind in evaluated)

    def _ensure_populated(self, generation: Generation) -> Generation:
        if generation:
            return generation
        logger.warning(
            "%s: generation %d is empty, re-seeding",
            self.name,
            self.generation_counter,
        )
        return self.initialize(self.config.generation_size)

    def _window_constructible(self, low: int, high: int) -> bool:
        bounds = self.tree_config.bounds
        return any(bounds.is_constructible(n) for n in range(max(1, low), high + 1))

    def _shift_window(self, delta: int) -> None:
        low = max(1, self.min_length + delta)
        high = max(low, self.max_length + delta)
        if self._window_constructible(low, high):
            self.min_length, self.max_length = low, high

    def _mutation_bounds(self) -> dict:
        if self.config.arbitrary_mutations:
            return {}
        return {"min_length": self.min_length, "max_length": self.max_length}

    def _crossing_bounds(self) -> dict:
        if self.config.arbitrary_crossings:
            return {}
        return {"min_length": self.min_length, "max_length": self.max_length}

    def _ranked_pair(self, n: int) -> tuple[int, int]:
        # Two distinct indices, both biased towards the best ranked
        first = 1 + asc_random_int(self.rng, n - 1)
        first = max(first, asc_random_int(self.rng, n))
        return first, self.rng.randrange(first)

    def _pick_partner(self, n: int, i: int) -> int:
        partner = asc_random_int(self.rng, n)
        while partner == i:
            partner = asc_random_int(self.rng, n)
        return partner

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(state={self.state.name}, "
            f"generation={self.generation_counter}/{self.config.generations}, "
            f"best_fitness={self.best_fitness:.6g})"
        )


class StandardStrategy(GenerationController):
    """Classic genetic algorithm.

    Initialization draws twice the generation size of valid individuals and
    keeps the best half. Each generation mutates weak individuals, keeps the
    best three quarters, appends children of rank-biased parent pairs, drops
    invalid and duplicate formulas, keeps the best and refills with random
    newcomers.
    """

    name = "standard"

    def compute_init(self) -> Generation:
        size = self.config.generation_size
        generation = self.drop_invalid(self.initialize(2 * size))
        generation = self.refill(generation, 2 * size, prefer_shorter=True)
        return self.select_best(generation, size)

    def compute_next(self) -> Generation:
        size = self.config.generation_size
        generation = self.mutate_weak(self.generation, self.config.mutation_probability)
        generation = self.select_best(generation, 3 * size // 4)
        generation = self.cross_all(
            generation, self.config.crossing_probability, ranked_parents=True
        )
        generation = self.clean(generation)
        generation = self.select_best(generation, size)
        return self.refill(generation, size, prefer_shorter=True)


class OscillatingStrategy(GenerationController):
    """Genetic programming with an offspring pool.

    Parents survive as long as they stay among the best. Each generation the
    selected parents are joined by their children, mutants, reproduced copies
    and ten percent random newcomers; the pool is then evaluated, cleaned and
    cut back to the generation size. The code-length window moves up by one
    after initialization and then alternates down and up every generation.
    """

    name = "oscillating"

    def _initial_length(self) -> int:
        return 1 + (self.min_length + self.max_length) // 2

    def compute_init(self) -> Generation:
        size = self.config.generation_size
        length = self._initial_length()
        generation = self.drop_invalid(self.initialize(size, length))
        rounds = 1
        while len(generation) < size // 2 and rounds < self.config.max_refill_rounds:
            rounds += 1
            generation = self.drop_invalid(self.initialize(size, length))
        generation = self.refill(generation, size)
        generation = self.clean(generation)
        if len(generation) < size:
            generation = self.add_random(generation, size - len(generation))
        self._shift_window(+1)
        return generation

    def _vary(self, parents: Generation) -> Generation:
        config = self.config
        pool = self.cross_all(parents, config.crossing_probability)
        pool = self.mutate_all(pool, config.mutation_probability)
        pool = self.reproduce(pool, config.reproduction_probability)
        return self.add_random(pool, config.generation_size // 10)

    def compute_next(self) -> Generation:
        size = self.config.generation_size
        parents = self.select_best(
            self.generation, round(size * self.config.selection_probability)
        )
        pool = self._vary(parents)
        pool = self.clean(pool)
        if len(pool) < size:
            pool = self.add_random(pool, size - len(pool))
        generation = self.select_best(pool, size)
        self._shift_window(-1 if self.generation_counter % 2 == 0 else +1)
        return generation


class SeededStrategy(OscillatingStrategy):
    """Offspring-pool search seeded from many small random sub-populations.

    The first generation is assembled from the best 1 to 10 members of many
    random batches. During variation the length window is widened to
    ``(min + 1, 2 * max)``; crossing tries random position pairs until one
    of the children fits the window with a valid fitness.
    """

    name = "seeded"

    def compute_init(self) -> Generation:
        size = self.config.generation_size
        batch_floor = max(1, size // 10)
        pool: list[Individual] = []
        select_size = 0
        retries = 0
        barren = 0
        while len(pool) < size:
            if random_boolean(self.rng):
                batch = self.initialize(size, self._initial_length())
            else:
                batch = self.initialize(size, 4 + select_size % 3)
            select_size = 1 + self.rng.randrange(10)
            batch = self.drop_invalid(batch)
            if len(batch) < batch_floor and retries < self.config.max_refill_rounds:
                retries += 1
                continue
            retries = 0
            if not batch:
                barren += 1
                if barren >= self.config.max_refill_rounds:
                    logger.warning(
                        "%s: seeding stalled with %d of %d individuals",
                        self.name,
                        len(pool),
                        size,
                    )
                    break
                continue
            pool.extend(self.select_best(batch, select_size))

        while len(pool) > size:
            pool.pop(self.rng.randrange(len(pool)))
        return tuple(pool)

    def _vary(self, parents: Generation) -> Generation:
        config = self.config
        saved = (self.min_length, self.max_length)
        self.min_length, self.max_length = saved[0] + 1, saved[1] * 2
        try:
            pool = self.mutate_all(parents, config.mutation_probability)
            pool = self.reproduce(pool, config.reproduction_probability)
            return self.cross_generation(pool, config.crossing_probability)
        finally:
            self.min_length, self.max_length = saved

    def compute_next(self) -> Generation:
        size = self.config.generation_size
        parents = self.select_best(
            self.generation, round(size * self.config.selection_probability)
        )
        pool = self._vary(parents)
        pool = self.clean(pool)
        pool = self.refill(pool, size)
        return self.select_best(pool, size)

    def cross_generation(self, individuals: Generation, probability: float) -> Generation:
        """Append valid children of front-biased parent pairs."""
        with self._lock:
            n = len(individuals)
            if n < 2:
                return individuals
            children: list[Individual] = []
            for i in range(n):
                if not random_boolean(self.rng, probability * (1 - i / n)):
                    continue
                first = individuals[i]
                second = individuals[self._pick_partner(n, i)]
                if len(first) < 2 or len(second) < 2:
                    continue
                children.extend(self.cross_pair(first, second))
            return individuals + tuple(children)

    def cross_pair(self, first: Individual, second: Individual) -> list[Individual]:
        """Cross at random position pairs until some child is acceptable."""
        attempts = 2 * (len(first) - 1) * (len(second) - 1)
        for _ in range(attempts):
            positions = (
                1 + self.rng.randrange(len(first) - 1),
                1 + self.rng.randrange(len(second) - 1),
            )
            accepted = self._acceptable(first.cross(second, self.rng, positions=positions))
            if accepted:
                return accepted
        return []

    def _acceptable(self, children: Iterable[Individual]) -> list[Individual]:
        # Evaluated children with a valid fitness and, unless crossings are
        # arbitrary, a length inside the current window
        accepted = []
        for child in self.validate_fitness(children):
            fits = self.config.arbitrary_crossings or (
                self.min_length <= len(child) <= self.max_length
            )
            if fits and child.is_valid():
                accepted.append(child)
        return accepted


class ExhaustiveCrossStrategy(SeededStrategy):
    """Seeded strategy whose crossing tries every non-root position pair."""

    name = "exhaustive"

    def cross_pair(self, first: Individual, second: Individual) -> list[Individual]:
        accepted = []
        for pos_a in range(1, len(first)):
            for pos_b in range(1, len(second)):
                children = first.cross(second, self.rng, positions=(pos_a, pos_b))
                accepted.extend(self._acceptable(children))
        return accepted


STRATEGIES: dict[str, type[GenerationController]] = {
    StandardStrategy.name: StandardStrategy,
    OscillatingStrategy.name: OscillatingStrategy,
    SeededStrategy.name: SeededStrategy,
    ExhaustiveCrossStrategy.name: ExhaustiveCrossStrategy,
}


def create_controller(
    name: str,
    data_x: Iterable[float],
    data_y: Iterable[float],
    config: GeneticConfig | None = None,
    **kwargs,
) -> GenerationController:
    """Instantiate a strategy by name (see ``STRATEGIES``).

    Raises:
        ConfigurationError: For unknown strategy names
    """
    try:
        strategy = STRATEGIES[name]
    except KeyError:
        raise ConfigurationError(
            f"unknown strategy '{name}', expected one of {sorted(STRATEGIES)}"
        ) from None
    return strategy(data_x, data_y, config, **kwargs)


def discover_equation(
    x: Iterable[float],
    y: Iterable[float],
    strategy: str = STRATEGY,
    generations: int | None = None,
    generation_size: int | None = None,
    operators: list[str] | None = None,
    seed: int | None = None,
    n_results: int = 5,
    verbose: bool = False,
) -> tuple[str, float, list[BestResult]]:
    """Convenience function to discover an equation from data.

    Args:
        x: Input values
        y: Target values
        strategy: Strategy name
        generations: Number of generations (config default if None)
        generation_size: Individuals per generation (config default if None)
        operators: Operator names (config default if None)
        seed: Seed for a reproducible run
        n_results: Number of best results returned
        verbose: Log progress to stderr

    Returns:
        Tuple of (best formula, its fitness, best results)
    """
    if verbose:
        setup_logging("INFO")
    overrides = {}
    if generations is not None:
        overrides["generations"] = generations
    if generation_size is not None:
        overrides["generation_size"] = generation_size
    if operators is not None:
        overrides["operators"] = list(operators)
    config = GeneticConfig(seed=seed, **overrides)

    controller = create_controller(strategy, x, y, config)
    controller.run()

    results = controller.best_results(n_results)
    if results:
        return results[0].formula, results[0].fitness, results
    return "", float("inf"), results
