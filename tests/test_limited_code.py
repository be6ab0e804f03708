import random

import pytest

from frec_pkg.symbolic_regression.limited_code import ArityBounds
from frec_pkg.symbolic_regression.linear_code import mutate
from frec_pkg.symbolic_regression.linear_code import validate_code
from frec_pkg.types import CodeError
from frec_pkg.types import ConfigurationError


def test_invalid_bounds_are_rejected():
    with pytest.raises(ConfigurationError):
        ArityBounds(-1, 2)
    with pytest.raises(ConfigurationError):
        ArityBounds(3, 2)
    with pytest.raises(ConfigurationError):
        ArityBounds(0, 0)


def test_from_arities_widens_unary_minimum():
    assert ArityBounds.from_arities([1, 2]) == ArityBounds(0, 2)
    assert ArityBounds.from_arities([2]) == ArityBounds(2, 2)
    assert ArityBounds.from_arities([1]) == ArityBounds(0, 1)
    with pytest.raises(ConfigurationError):
        ArityBounds.from_arities([0])


def test_allowed_digits():
    assert ArityBounds(0, 2).allowed_digits() == (0, 1, 2)
    assert ArityBounds(2, 3).allowed_digits() == (0, 2, 3)


def test_binary_only_trees_have_odd_length():
    bounds = ArityBounds(2, 2)
    assert [n for n in range(1, 10) if bounds.is_constructible(n)] == [1, 3, 5, 7, 9]
    assert not bounds.is_constructible(0)


def test_fit_length_prefers_shorter():
    bounds = ArityBounds(2, 2)
    assert bounds.fit_length(4) == 3
    assert bounds.fit_length(5) == 5
    assert bounds.fit_length(0) == 1


def test_random_code_respects_window():
    rng = random.Random(13)
    for bounds in (ArityBounds(0, 2), ArityBounds(2, 2), ArityBounds(2, 3)):
        for length in range(1, 30):
            if not bounds.is_constructible(length):
                continue
            code = bounds.random_code(length, rng)
            assert validate_code(code) == code
            assert len(code) == length
            assert bounds.admits(code)


def test_random_code_rejects_unbuildable_length():
    with pytest.raises(CodeError):
        ArityBounds(2, 2).random_code(4, random.Random(1))


def test_unary_only_codes_are_chains():
    assert ArityBounds(0, 1).random_code(5, random.Random(2)) == (1, 1, 1, 1, 0)


def test_random_code_between():
    rng = random.Random(4)
    bounds = ArityBounds(0, 2)
    for prefer_shorter in (False, True):
        for _ in range(50):
            code = bounds.random_code_between(3, 7, rng, prefer_shorter=prefer_shorter)
            assert 3 <= len(code) <= 7
    with pytest.raises(CodeError):
        ArityBounds(2, 2).random_code_between(2, 2, rng)


def test_generator_feeds_bounded_mutation():
    rng = random.Random(8)
    bounds = ArityBounds(2, 2)
    code = bounds.random_code(7, rng)
    for _ in range(50):
        result = mutate(code, rng, generate=bounds.generator())
        assert bounds.admits(result.code)
        assert validate_code(result.code) == result.code
