"""Read's linear code: trees encoded as flat sequences of child counts.

A rooted ordered tree is written in prefix order, one digit per node, where the
digit is the number of children of that node. The code ``(2, 1, 0, 0)`` is a
root with two children, the first of which has one child of its own::

        2
       / \\
      1   0
      |
      0

No pointers are needed: the span of a subtree is recovered from the running
balance of open child slots (``subtree_length``). Mutation and crossover are
plain splices of such spans and always return new tuples.

Key functions:
    - validate_code / subtree_length / child_positions: decoding
    - random_code: uniform-ish random tree codes of an exact length
    - mutate: replace one subtree with a fresh random one
    - cross: exchange one subtree between two codes
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable
from typing import Iterable

from ..config import MAX_SPLIT_ATTEMPTS
from ..logging_config import get_logger
from ..types import Code
from ..types import CodeError

logger = get_logger("linear_code")

# Largest child count produced by the unbounded generator.
DEFAULT_MAX_ARITY = 9

CodeGenerator = Callable[[int, random.Random], Iterable[int]]


@dataclass(frozen=True)
class Mutation:
    """Result of ``mutate``.

    Attributes:
        code: The mutated code
        position: Position of the replaced subtree (same in old and new code)
        span_length: Length of the freshly generated subtree
        replaced_length: Length of the subtree that was removed
    """

    code: Code
    position: int
    span_length: int
    replaced_length: int


@dataclass(frozen=True)
class Crossover:
    """Result of ``cross``.

    ``child_a`` is ``code_a`` with its span at ``position_a`` replaced by the
    span of ``code_b`` at ``position_b``; ``child_b`` is the mirror image.
    """

    child_a: Code
    child_b: Code
    position_a: int
    position_b: int
    length_a: int
    length_b: int


def validate_code(code: Iterable[int]) -> Code:
    """Check that a digit sequence encodes exactly one tree.

    Args:
        code: Sequence of child counts

    Returns:
        The code as a tuple

    Raises:
        CodeError: If the code is empty, has non-integer or negative digits,
                   leaves dangling children, or has nodes after the tree ends
    """
    digits = tuple(code)
    if not digits:
        raise CodeError("code is empty")
    for pos, digit in enumerate(digits):
        if isinstance(digit, bool) or not isinstance(digit, int) or digit < 0:
            raise CodeError(f"invalid digit {digit!r} at position {pos}")
    length = subtree_length(digits, 0)
    if length != len(digits):
        raise CodeError(
            f"code {format_code(digits)} ends after {length} nodes, "
            f"{len(digits) - length} trailing nodes"
        )
    return digits


def is_valid_code(code: Iterable[int]) -> bool:
    """Return True if ``code`` encodes exactly one tree."""
    try:
        validate_code(code)
    except CodeError:
        return False
    return True


def format_code(code: Iterable[int]) -> str:
    """Render a code compactly, e.g. ``2100``; digits above 9 are bracketed."""
    return "".join(str(d) if d < 10 else f"[{d}]" for d in code)


def subtree_length(code: Code, pos: int) -> int:
    """Length of the subtree rooted at ``pos``.

    Starting with one open slot (the node at ``pos`` itself), every node fills
    one slot and opens ``digit`` new ones. The subtree ends where no slot is
    left open.

    Raises:
        CodeError: If ``pos`` is out of range or the subtree never closes
    """
    if not 0 <= pos < len(code):
        raise CodeError(f"position {pos} outside code of length {len(code)}")
    open_slots = 1
    for i in range(pos, len(code)):
        open_slots += code[i] - 1
        if open_slots == 0:
            return i - pos + 1
    raise CodeError(
        f"subtree at position {pos} of {format_code(code)} has "
        f"{open_slots} dangling children"
    )


def child_positions(code: Code, pos: int) -> list[int]:
    """Positions of the children of the node at ``pos``, left to right."""
    children = []
    cursor = pos + 1
    for _ in range(code[pos]):
        children.append(cursor)
        cursor += subtree_length(code, cursor)
    return children


def subtree(code: Code, pos: int) -> Code:
    """Return the span of the subtree rooted at ``pos`` as its own code."""
    return tuple(code[pos : pos + subtree_length(code, pos)])


def splice(code: Code, pos: int, replacement: Iterable[int]) -> Code:
    """Replace the subtree at ``pos`` with ``replacement``."""
    end = pos + subtree_length(code, pos)
    return tuple(code[:pos]) + tuple(replacement) + tuple(code[end:])


def random_code(
    length: int,
    rng: random.Random | None = None,
    max_arity: int = DEFAULT_MAX_ARITY,
) -> Code:
    """Generate a random valid code of exactly ``length`` nodes.

    At every step the digit is drawn uniformly from the range that keeps the
    rest constructible: at least one slot must stay open until the last node,
    and there must never be more open slots than nodes left to fill them.

    Args:
        length: Number of nodes
        rng: Random source (module level ``random`` if None)
        max_arity: Largest digit allowed

    Returns:
        A code whose last digit is 0

    Raises:
        CodeError: If length < 1
    """
    if length < 1:
        raise CodeError(f"code length must be positive, got {length}")
    if max_arity < 1 and length > 1:
        raise CodeError(f"cannot build {length} nodes with max arity {max_arity}")
    rng = rng or random

    digits = []
    open_slots = 1
    for i in range(length - 1):
        left = length - i
        low = max(0, 2 - open_slots)
        high = min(max_arity, left - open_slots)
        digit = rng.randint(low, high)
        digits.append(digit)
        open_slots += digit - 1
    digits.append(0)
    return tuple(digits)


def _pick_split(code: Code, rng: random.Random) -> int:
    # Non-root position; a single node can only be split at its root.
    if len(code) == 1:
        return 0
    return rng.randint(1, len(code) - 1)


def _pick_cross_pair(
    code_a: Code, code_b: Code, rng: random.Random
) -> tuple[int, int]:
    # A single-node parent can only be exchanged whole, so both roots are used.
    if len(code_a) == 1 or len(code_b) == 1:
        return 0, 0
    return _pick_split(code_a, rng), _pick_split(code_b, rng)


def mutate(
    code: Code,
    rng: random.Random | None = None,
    *,
    span_length: int | None = None,
    min_length: int | None = None,
    max_length: int | None = None,
    generate: CodeGenerator | None = None,
    max_attempts: int = MAX_SPLIT_ATTEMPTS,
) -> Mutation:
    """Replace the subtree at a random non-root position with a random one.

    Without bounds the new subtree has ``span_length`` nodes, or a random
    length from [1, len(code)]. With ``min_length``/``max_length`` the
    position and span are redrawn until the resulting code fits; after
    ``max_attempts`` draws the last attempt is kept.

    Args:
        code: Code to mutate
        rng: Random source
        span_length: Exact length of the new subtree
        min_length: Minimal accepted length of the result
        max_length: Maximal accepted length of the result
        generate: ``(length, rng) -> code`` used for the new subtree
        max_attempts: Retry cap for the bounded form

    Returns:
        Mutation with the new code and the mutated position
    """
    code = validate_code(code)
    rng = rng or random
    generate = generate or random_code
    size = len(code)

    if span_length is not None or (min_length is None and max_length is None):
        pos = _pick_split(code, rng)
        removed = subtree_length(code, pos)
        span = span_length if span_length is not None else rng.randint(1, size)
        replacement = tuple(generate(span, rng))
    else:
        low = min_length if min_length is not None else 1
        high = max_length if max_length is not None else size
        span_cap = max(1, high)
        for _attempt in range(max(1, max_attempts)):
            pos = _pick_split(code, rng)
            removed = subtree_length(code, pos)
            replacement = tuple(generate(rng.randint(1, span_cap), rng))
            if low <= size - removed + len(replacement) <= high:
                break
        else:
            logger.debug(
                "no mutation of %s fits [%d, %d] after %d attempts, keeping last",
                format_code(code),
                low,
                high,
                max_attempts,
            )

    mutated = code[:pos] + replacement + code[pos + removed :]
    return Mutation(
        code=mutated,
        position=pos,
        span_length=len(replacement),
        replaced_length=removed,
    )


def cross(
    code_a: Code,
    code_b: Code,
    rng: random.Random | None = None,
    *,
    min_length: int | None = None,
    max_length: int | None = None,
    positions: tuple[int | None, int | None] = (None, None),
    max_attempts: int = MAX_SPLIT_ATTEMPTS,
) -> Crossover:
    """Exchange one subtree between two codes.

    A non-root position is picked in each code. A single-node code only has
    its root, so when either parent is a single node the two parents are
    exchanged whole. Pinned ``positions`` are used instead of random ones.

    With length bounds the free positions are redrawn until both children
    fit. Pinned positions are held for the first half of the attempt budget
    and then released. If nothing fits within ``max_attempts``, pinned
    positions are restored and free ones keep their last draw.

    Raises:
        CodeError: If a pinned position is outside its code
    """
    code_a = validate_code(code_a)
    code_b = validate_code(code_b)
    rng = rng or random
    size_a, size_b = len(code_a), len(code_b)
    pinned_a, pinned_b = positions
    for pinned, size in ((pinned_a, size_a), (pinned_b, size_b)):
        if pinned is not None and not 0 <= pinned < size:
            raise CodeError(
                f"cross position must satisfy 0 <= pos < {size}, got {pinned}"
            )

    draw_a, draw_b = _pick_cross_pair(code_a, code_b, rng)
    pos_a = pinned_a if pinned_a is not None else draw_a
    pos_b = pinned_b if pinned_b is not None else draw_b
    len_a = subtree_length(code_a, pos_a)
    len_b = subtree_length(code_b, pos_b)

    if min_length is not None or max_length is not None:
        low = min_length if min_length is not None else 1
        high = max_length if max_length is not None else size_a + size_b

        def fits(span_a: int, span_b: int) -> bool:
            new_a = size_a - span_a + span_b
            new_b = size_b - span_b + span_a
            return low <= new_a <= high and low <= new_b <= high

        attempts = 0
        while not fits(len_a, len_b):
            attempts += 1
            if attempts >= max_attempts:
                break
            release = attempts > max_attempts // 2
            draw_a, draw_b = _pick_cross_pair(code_a, code_b, rng)
            if pinned_a is None or release:
                pos_a = draw_a
                len_a = subtree_length(code_a, pos_a)
            if pinned_b is None or release:
                pos_b = draw_b
                len_b = subtree_length(code_b, pos_b)

        if attempts >= max_attempts:
            logger.debug(
                "no crossing of %s x %s fits [%d, %d], falling back",
                format_code(code_a),
                format_code(code_b),
                low,
                high,
            )
            if pinned_a is not None:
                pos_a = pinned_a
                len_a = subtree_length(code_a, pos_a)
            if pinned_b is not None:
                pos_b = pinned_b
                len_b = subtree_length(code_b, pos_b)

    span_a = code_a[pos_a : pos_a + len_a]
    span_b = code_b[pos_b : pos_b + len_b]
    return Crossover(
        child_a=code_a[:pos_a] + span_b + code_a[pos_a + len_a :],
        child_b=code_b[:pos_b] + span_a + code_b[pos_b + len_b :],
        position_a=pos_a,
        position_b=pos_b,
        length_a=len_a,
        length_b=len_b,
    )
