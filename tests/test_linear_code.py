"""Tests for Read's linear code: decoding, generation, mutation and crossover."""

import random

import pytest

from frec_pkg.symbolic_regression import linear_code
from frec_pkg.symbolic_regression.linear_code import child_positions
from frec_pkg.symbolic_regression.linear_code import cross
from frec_pkg.symbolic_regression.linear_code import mutate
from frec_pkg.symbolic_regression.linear_code import random_code
from frec_pkg.symbolic_regression.linear_code import subtree_length
from frec_pkg.symbolic_regression.linear_code import validate_code
from frec_pkg.types import CodeError


def _random_codes(count=200, max_length=25, seed=11):
    rng = random.Random(seed)
    return [random_code(rng.randint(1, max_length), rng) for _ in range(count)]


def test_validate_accepts_single_tree():
    assert validate_code([2, 1, 0, 0]) == (2, 1, 0, 0)
    assert validate_code((0,)) == (0,)


@pytest.mark.parametrize(
    "code",
    [(), (1,), (2, 0), (0, 0), (2, 0, 0, 0), (1, -1), (1.0, 0), (True, 0)],
)
def test_validate_rejects_malformed(code):
    with pytest.raises(CodeError):
        validate_code(code)


def test_is_valid_code():
    assert linear_code.is_valid_code((1, 0))
    assert not linear_code.is_valid_code((1, 1))


def test_subtree_length_and_children():
    code = (2, 1, 0, 0)
    assert subtree_length(code, 0) == 4
    assert subtree_length(code, 1) == 2
    assert subtree_length(code, 3) == 1
    assert child_positions(code, 0) == [1, 3]
    assert child_positions(code, 1) == [2]
    assert child_positions(code, 2) == []


def test_subtree_length_out_of_range():
    with pytest.raises(CodeError):
        subtree_length((0,), 1)


def test_subtree_and_splice():
    code = (2, 1, 0, 0)
    assert linear_code.subtree(code, 1) == (1, 0)
    assert linear_code.splice(code, 1, (0,)) == (2, 0, 0)
    assert linear_code.format_code((2, 1, 0, 0)) == "2100"


def test_random_code_is_valid_with_exact_length():
    rng = random.Random(5)
    for length in range(1, 40):
        code = random_code(length, rng)
        assert len(code) == length
        assert validate_code(code) == code
        assert code[-1] == 0
        assert max(code) <= linear_code.DEFAULT_MAX_ARITY


def test_random_code_rejects_empty_length():
    with pytest.raises(CodeError):
        random_code(0, random.Random(1))


def test_children_lengths_sum_to_parent():
    for code in _random_codes():
        for pos in range(len(code)):
            children = child_positions(code, pos)
            assert 1 + sum(subtree_length(code, c) for c in children) == subtree_length(
                code, pos
            )


def test_mutation_keeps_code_outside_replaced_span():
    rng = random.Random(3)
    for code in _random_codes(seed=4):
        result = mutate(code, rng)
        new = result.code
        pos = result.position
        assert validate_code(new) == new
        assert new[:pos] == code[:pos]
        assert new[pos + result.span_length :] == code[pos + result.replaced_length :]
        assert subtree_length(new, pos) == result.span_length
        if len(code) > 1:
            assert pos >= 1


def test_mutation_of_single_node_uses_root():
    result = mutate((0,), random.Random(1))
    assert result.position == 0
    assert validate_code(result.code) == result.code


def test_mutation_with_exact_span():
    result = mutate((2, 1, 0, 0), random.Random(9), span_length=3)
    assert result.span_length == 3
    assert len(result.code) == 4 - result.replaced_length + 3


def test_bounded_mutation_fits_window():
    rng = random.Random(21)
    for code in _random_codes(count=100, max_length=8, seed=8):
        result = mutate(code, rng, min_length=3, max_length=9)
        assert 3 <= len(result.code) <= 9


def test_crossover_preserves_total_length():
    rng = random.Random(17)
    codes = _random_codes(seed=2)
    for code_a, code_b in zip(codes, reversed(codes)):
        result = cross(code_a, code_b, rng)
        assert validate_code(result.child_a) == result.child_a
        assert validate_code(result.child_b) == result.child_b
        assert len(result.child_a) + len(result.child_b) == len(code_a) + len(code_b)


def test_crossover_with_single_node_exchanges_whole_trees():
    for seed in range(10):
        result = cross((2, 0, 0), (0,), random.Random(seed))
        assert (result.position_a, result.position_b) == (0, 0)
        assert result.child_a == (0,)
        assert result.child_b == (2, 0, 0)
    mirrored = cross((0,), (2, 1, 0, 0), random.Random(3))
    assert (mirrored.child_a, mirrored.child_b) == ((2, 1, 0, 0), (0,))


def test_crossover_of_two_single_nodes_exchanges_them():
    result = cross((0,), (0,), random.Random(1))
    assert (result.child_a, result.child_b) == ((0,), (0,))
    assert (result.position_a, result.position_b) == (0, 0)


def test_crossover_at_pinned_positions():
    result = cross((2, 1, 0, 0), (2, 0, 0), random.Random(1), positions=(1, 2))
    assert result.child_a == (2, 0, 0)
    assert result.child_b == (2, 0, 1, 0)


def test_crossover_pinned_position_out_of_range():
    with pytest.raises(CodeError):
        cross((2, 0, 0), (0,), random.Random(1), positions=(None, 1))


def test_bounded_crossover_falls_back_to_pinned_positions():
    result = cross(
        (2, 1, 0, 0),
        (2, 0, 0),
        random.Random(1),
        min_length=10,
        max_length=12,
        positions=(1, 2),
    )
    assert (result.position_a, result.position_b) == (1, 2)
    assert result.child_a == (2, 0, 0)


def test_bounded_crossover_fits_window():
    rng = random.Random(23)
    codes = [c for c in _random_codes(count=200, max_length=10, seed=6) if len(c) >= 3]
    for code_a, code_b in zip(codes, codes[1:]):
        result = cross(code_a, code_b, rng, min_length=1, max_length=20)
        assert len(result.child_a) <= 20
        assert len(result.child_b) <= 20
