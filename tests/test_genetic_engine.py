"""Tests for the generation controller primitives and the search strategies."""

import math

import numpy as np
import pytest

from frec_pkg.symbolic_regression.collaborators import GenerationSink
from frec_pkg.symbolic_regression.collaborators import MemoryGenerationSink
from frec_pkg.symbolic_regression.expression_tree import ExpressionTree
from frec_pkg.symbolic_regression.genetic_engine import STRATEGIES
from frec_pkg.symbolic_regression.genetic_engine import ControllerState
from frec_pkg.symbolic_regression.genetic_engine import ExhaustiveCrossStrategy
from frec_pkg.symbolic_regression.genetic_engine import GeneticConfig
from frec_pkg.symbolic_regression.genetic_engine import OscillatingStrategy
from frec_pkg.symbolic_regression.genetic_engine import SeededStrategy
from frec_pkg.symbolic_regression.genetic_engine import StandardStrategy
from frec_pkg.symbolic_regression.genetic_engine import create_controller
from frec_pkg.symbolic_regression.genetic_engine import discover_equation
from frec_pkg.symbolic_regression.individual import Individual
from frec_pkg.types import ConfigurationError

XS = np.linspace(0.5, 3.0, 12)
YS = XS**2 + XS


def make_config(**overrides):
    settings = dict(
        generation_size=20,
        generations=3,
        operators=["add", "sub", "mul", "sin", "asin"],
        min_code_length=2,
        max_code_length=6,
        saving_enabled=False,
    )
    settings.update(overrides)
    return GeneticConfig(**settings)


@pytest.fixture
def controller():
    return StandardStrategy(XS, YS, make_config(), seed=11)


def individual(controller, code, tokens, fitness=None):
    tree = ExpressionTree.from_tokens(code, tokens, controller.tree_config)
    return Individual(tree, fitness)


# ----------------------------------------------------------------------
# Construction
# ----------------------------------------------------------------------


@pytest.mark.parametrize(
    "xs, ys",
    [
        ([1.0, 2.0], [1.0]),
        ([], []),
        (np.ones((2, 2)), np.ones((2, 2))),
    ],
)
def test_invalid_training_data(xs, ys):
    with pytest.raises(ValueError):
        StandardStrategy(xs, ys, make_config())


def test_training_data_is_read_only(controller):
    assert not controller.data_x.flags.writeable
    assert not controller.data_y.flags.writeable


@pytest.mark.parametrize(
    "overrides",
    [
        {"generation_size": 0},
        {"generations": -1},
        {"mutation_probability": 1.5},
        {"min_code_length": 5, "max_code_length": 4},
        {"min_code_length": 0},
        {"error_metric": "r2"},
        {"max_refill_rounds": 0},
    ],
)
def test_config_validation(overrides):
    with pytest.raises(ConfigurationError):
        make_config(**overrides)


def test_unconstructible_window_is_rejected():
    config = make_config(operators=["add"], min_code_length=2, max_code_length=2)
    with pytest.raises(ConfigurationError):
        StandardStrategy(XS, YS, config)


def test_unknown_strategy():
    with pytest.raises(ConfigurationError):
        create_controller("annealing", XS, YS, make_config())


def test_initial_state(controller):
    assert controller.state == ControllerState.UNINITIALIZED
    assert controller.generation == ()
    assert controller.generation_counter == 0
    assert math.isnan(controller.best_fitness)
    assert repr(controller).startswith("StandardStrategy(state=UNINITIALIZED")


# ----------------------------------------------------------------------
# Primitives
# ----------------------------------------------------------------------


def test_validate_fitness_uses_absolute_error(controller):
    square = individual(controller, (2, 0, 0), ("mul", "x", "x"))
    (scored,) = controller.validate_fitness([square])
    # |x^2 - (x^2 + x)| summed over the samples
    assert scored.fitness == pytest.approx(float(np.sum(XS)))
    assert square.fitness is None


def test_validate_fitness_keeps_existing_scores(controller):
    scored = individual(controller, (0,), ("x",), fitness=42.0)
    assert controller.validate_fitness([scored])[0] is scored


def test_select_best_orders_and_clamps(controller):
    population = [
        individual(controller, (0,), ("x",), 5.0),
        individual(controller, (0,), ("x",), math.nan),
        individual(controller, (0,), ("x",), 1.0),
    ]
    ranked = controller.select_best(population, 10)
    assert len(ranked) == 3
    assert [ind.fitness for ind in ranked[:2]] == [1.0, 5.0]
    assert math.isnan(ranked[2].fitness)
    assert controller.best_fitness == 1.0
    assert len(controller.select_best(population, 1)) == 1
    assert controller.select_best(population, 0) == ()


def test_drop_invalid_keeps_order(controller):
    population = [
        individual(controller, (0,), ("x",), 3.0),
        individual(controller, (0,), ("x",), math.inf),
        individual(controller, (1, 0), ("sin", "x"), 1.0),
    ]
    kept = controller.drop_invalid(population)
    assert [ind.fitness for ind in kept] == [3.0, 1.0]


def test_drop_duplicates_keeps_first(controller):
    first = individual(controller, (2, 0, 0), ("add", "x", "x"), 2.0)
    second = individual(controller, (2, 0, 0), ("add", "x", "x"), 7.0)
    other = individual(controller, (2, 0, 0), ("mul", "x", "x"), 1.0)
    unique = controller.drop_duplicates([first, second, other])
    assert len(unique) == 2
    assert unique[0].fitness == 2.0


def test_drop_duplicates_compares_canonical_forms(controller):
    redundant = individual(controller, (1, 1, 0), ("sin", "asin", "x"), 99.0)
    plain = individual(controller, (0,), ("x",), 10.0)
    unique = controller.drop_duplicates([redundant, plain])
    assert len(unique) == 1
    assert unique[0].formula == "x"
    # Canonicalized trees are evaluated again
    assert unique[0].fitness == pytest.approx(float(np.sum(XS**2)))


def test_clean_drops_individuals_invalidated_by_canonicalization():
    xs = np.linspace(100.0, 200.0, 20000)
    controller = StandardStrategy(xs, np.arcsin(np.sin(xs)), make_config(), seed=1)
    folded = individual(controller, (1, 1, 0), ("asin", "sin", "x"))
    (scored,) = controller.validate_fitness([folded])
    assert scored.is_valid()
    # asin(sin(x)) collapses to x, which is far from the folded targets
    (canonical,) = controller.drop_duplicates([scored])
    assert canonical.formula == "x"
    assert not canonical.is_valid()
    assert controller.clean([scored]) == ()


def test_clean_keeps_valid_unique_individuals(controller):
    a = individual(controller, (2, 0, 0), ("add", "x", "x"))
    b = individual(controller, (2, 0, 0), ("add", "x", "x"))
    c = individual(controller, (2, 0, 0), ("mul", "x", "x"))
    kept = controller.clean([a, b, c])
    assert [ind.formula for ind in kept] == ["(x + x)", "(x * x)"]
    assert all(ind.is_valid() for ind in kept)


def test_operators_with_zero_probability_change_nothing(controller):
    population = controller.initialize(8)
    assert controller.cross_all(population, 0.0) == population
    assert controller.mutate_all(population, 0.0) == population
    assert controller.reproduce(population, 0.0) == population


def test_primitives_do_not_modify_their_input(controller):
    population = controller.initialize(8)
    snapshot = list(population)
    mutated = controller.mutate_all(population, 1.0)
    crossed = controller.cross_all(population, 1.0)
    assert list(population) == snapshot
    assert len(mutated) == 16
    assert all(a is b for a, b in zip(mutated, population))
    assert len(crossed) > len(population)
    assert all(ind.fitness is None for ind in mutated[8:])


def test_reproduce_copies_from_the_front(controller):
    population = controller.initialize(6)
    copies = controller.reproduce(population, 1.0)
    assert len(copies) > len(population)
    assert copies[6] is population[0]


def test_add_random_and_initialize(controller):
    grown = controller.add_random((), 5)
    assert len(grown) == 5
    assert controller.individuals_created == 5
    assert all(ind.fitness is not None for ind in grown)
    assert all(2 <= len(ind) <= 6 for ind in grown)

    fixed = controller.initialize(6, fixed_length=5)
    assert all(len(ind) == 5 for ind in fixed)
    assert controller.individuals_created == 11


def test_refill_tops_up_with_valid_individuals(controller):
    filled = controller.refill((), 10)
    assert len(filled) == 10
    assert all(ind.is_valid() for ind in filled)


def test_mutate_weak_keeps_size(controller):
    population = controller.select_best(controller.initialize(10), 10)
    assert len(controller.mutate_weak(population, 1.0)) == 10


# ----------------------------------------------------------------------
# Strategies
# ----------------------------------------------------------------------


@pytest.mark.parametrize("name", sorted(STRATEGIES))
def test_every_strategy_runs_to_completion(name):
    controller = create_controller(name, XS, YS, make_config(), seed=3)
    final = controller.run()
    assert controller.state == ControllerState.FINISHED
    assert controller.finished
    assert controller.generation_counter == 3
    assert final == controller.generation
    assert final

    results = controller.best_results(3)
    assert results
    fitnesses = [r.fitness for r in results if math.isfinite(r.fitness)]
    assert fitnesses == sorted(fitnesses)
    assert results[0].fitness == controller.best_fitness
    assert isinstance(results[0].evaluate(1.0), float)
    assert controller.best_formulas(1) == [results[0].formula]


@pytest.mark.parametrize("name", ["standard", "seeded"])
def test_same_seed_gives_same_search(name):
    first = create_controller(name, XS, YS, make_config(), seed=21)
    second = create_controller(name, XS, YS, make_config(), seed=21)
    first.run()
    second.run()
    assert first.best_formulas(5) == second.best_formulas(5)


def test_oscillating_window_moves():
    controller = OscillatingStrategy(XS, YS, make_config(), seed=5)
    controller.generation = controller.compute_init()
    assert (controller.min_length, controller.max_length) == (3, 7)
    controller.generation = controller.compute_next()
    assert (controller.min_length, controller.max_length) == (2, 6)


def test_seeded_variation_restores_window():
    controller = SeededStrategy(XS, YS, make_config(), seed=8)
    controller.generation = controller.validate_fitness(controller.compute_init())
    assert len(controller.generation) == 20
    controller.generation = controller.compute_next()
    assert (controller.min_length, controller.max_length) == (2, 6)
    assert len(controller.generation) <= 20


def test_exhaustive_cross_pair_keeps_acceptable_children():
    controller = ExhaustiveCrossStrategy(XS, YS, make_config(), seed=2)
    a = individual(controller, (2, 1, 0, 0), ("add", "sin", "x", "x"))
    b = individual(controller, (2, 0, 0), ("mul", "x", "x"))
    children = controller.cross_pair(a, b)
    assert children
    for child in children:
        assert child.is_valid()
        assert 2 <= len(child) <= 6


def test_sink_receives_every_generation():
    sink = MemoryGenerationSink()
    assert isinstance(sink, GenerationSink)
    controller = StandardStrategy(XS, YS, make_config(), seed=4, sink=sink)
    controller.run()
    assert sink.labels == ["GENERATION0", "GENERATION1", "GENERATION2"]
    assert all(isinstance(generation, tuple) for _, generation in sink.saved)


def test_saving_enabled_creates_memory_sink():
    controller = StandardStrategy(XS, YS, make_config(saving_enabled=True), seed=4)
    assert isinstance(controller.sink, MemoryGenerationSink)
    controller.run()
    assert len(controller.sink) == 3


def test_stop_before_run_keeps_initial_generation(controller):
    controller.stop()
    controller.run()
    assert controller.stopped
    assert controller.generation_counter == 0
    assert controller.state == ControllerState.FINISHED
    assert controller.generation


def test_run_again_after_stop_starts_fresh(controller):
    controller.stop()
    controller.run()
    assert controller.generation_counter == 0
    controller.run()
    assert not controller.stopped
    assert controller.generation_counter == 3
    assert controller.state == ControllerState.FINISHED


def test_background_run_after_finished_run(controller):
    controller.run()
    thread = controller.start()
    assert controller.join(timeout=120)
    thread.join()
    assert controller.finished
    assert controller.generation_counter == 3


def test_best_results_leave_statistics_alone(controller):
    controller.run()
    controller.best_fitness = 123.0
    results = controller.best_results(3)
    assert results
    assert controller.best_fitness == 123.0


def test_long_unary_trees_run():
    xs = np.linspace(0.0, 1.0, 12)
    config = make_config(
        operators=["sin", "cos"],
        min_code_length=1100,
        max_code_length=1200,
        generation_size=6,
        generations=2,
    )
    controller = StandardStrategy(xs, np.sin(xs), config, seed=1)
    controller.run()
    assert controller.generation_counter == 2
    results = controller.best_results(1)
    assert results and math.isfinite(results[0].fitness)


def test_background_run(controller):
    thread = controller.start()
    assert controller.join(timeout=120)
    thread.join()
    assert controller.finished
    assert controller.generation_counter == 3


def test_discover_equation():
    formula, fitness, results = discover_equation(
        XS,
        YS,
        strategy="standard",
        generations=3,
        generation_size=20,
        operators=["add", "mul"],
        seed=5,
    )
    assert formula == results[0].formula
    assert fitness == results[0].fitness
    assert math.isfinite(fitness)
    assert 1 <= len(results) <= 5
