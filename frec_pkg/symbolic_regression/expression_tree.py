"""Expression trees over Read's linear code.

An ``ExpressionTree`` is a linear code plus one symbol per position: an
operator whose arity equals the digit, the free variable, or an embedded
constant. Evaluation, formatting and SymPy conversion walk the code in prefix
order; structural operations (mutation, crossover) are delegated to
``linear_code`` and only the freshly generated span gets new symbols.

Key Classes:
    - NodeType: Enum for operator/terminal symbols
    - Symbol: Immutable node label
    - TreeConfig: Operator registry and constant settings shared by trees
    - ExpressionTree: Complete tree with evaluation and manipulation methods
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import auto
from typing import Iterable
from typing import Sequence

import numpy as np
import sympy as sp

from ..config import CONSTANT_MAX
from ..config import CONSTANT_MIN
from ..config import CONSTANT_PROBABILITY
from ..config import PRETTY_MAX_COMPLEXITY
from ..config import USE_CONSTANTS
from ..types import ArityMismatchError
from ..types import Code
from ..types import CodeError
from ..types import ConfigurationError
from . import linear_code
from .functions import Operator
from .functions import OperatorRegistry
from .limited_code import ArityBounds
from .random_source import random_boolean


class NodeType(Enum):
    """Types of nodes in an expression tree."""

    OPERATOR = auto()  # n-ary function, n >= 1
    VARIABLE = auto()  # The free variable x
    CONSTANT = auto()  # Embedded numeric constant


@dataclass(frozen=True)
class Symbol:
    """Label of one tree position.

    Attributes:
        node_type: Kind of symbol
        operator: The operator for OPERATOR symbols
        value: The number for CONSTANT symbols
    """

    node_type: NodeType
    operator: Operator | None = None
    value: float | None = None

    @classmethod
    def variable(cls) -> Symbol:
        return _VARIABLE

    @classmethod
    def constant(cls, value: float) -> Symbol:
        return cls(NodeType.CONSTANT, value=float(value))

    @classmethod
    def of(cls, operator: Operator) -> Symbol:
        return cls(NodeType.OPERATOR, operator=operator)

    @property
    def arity(self) -> int:
        return self.operator.arity if self.operator is not None else 0

    @property
    def name(self) -> str:
        if self.node_type == NodeType.OPERATOR:
            return self.operator.name
        if self.node_type == NodeType.VARIABLE:
            return "x"
        return f"{self.value:.6g}"


_VARIABLE = Symbol(NodeType.VARIABLE)


@dataclass(frozen=True)
class TreeConfig:
    """Settings shared by every tree of one search.

    Attributes:
        registry: Operators available for internal nodes
        use_constants: Allow leaves to be constants instead of x
        constant_probability: Chance that a leaf becomes a constant
        constant_range: Inclusive range new constants are drawn from
    """

    registry: OperatorRegistry = field(default_factory=OperatorRegistry.from_names)
    use_constants: bool = USE_CONSTANTS
    constant_probability: float = CONSTANT_PROBABILITY
    constant_range: tuple[float, float] = (CONSTANT_MIN, CONSTANT_MAX)

    def __post_init__(self):
        if not 0.0 <= self.constant_probability <= 1.0:
            raise ConfigurationError(
                f"constant_probability must be within [0, 1], "
                f"got {self.constant_probability}"
            )
        low, high = self.constant_range
        if low > high:
            raise ConfigurationError(f"empty constant range [{low}, {high}]")

    @property
    def bounds(self) -> ArityBounds:
        return self.registry.bounds


def random_symbol(digit: int, config: TreeConfig, rng: random.Random) -> Symbol:
    """Draw a symbol for a node with ``digit`` children."""
    if digit > 0:
        return Symbol.of(config.registry.choose(digit, rng))
    if config.use_constants and random_boolean(rng, config.constant_probability):
        return Symbol.constant(rng.uniform(*config.constant_range))
    return Symbol.variable()


def attach_symbols(
    code: Code,
    config: TreeConfig,
    rng: random.Random | None = None,
    *,
    start: int = 0,
    end: int | None = None,
    base: Sequence[Symbol] | None = None,
) -> tuple[Symbol, ...]:
    """Label the positions ``[start, end)`` of ``code`` with random symbols.

    Args:
        code: Code being labelled
        config: Registry and constant settings
        rng: Random source
        start: First position to label
        end: Position after the last one to label (len(code) if None)
        base: Symbols for the positions outside [start, end), in order

    Returns:
        One symbol per position of ``code``
    """
    rng = rng or random
    end = len(code) if end is None else end
    outside = len(code) - (end - start)
    base = tuple(base or ())
    if len(base) != outside:
        raise CodeError(
            f"expected {outside} base symbols around [{start}, {end}), got {len(base)}"
        )
    fresh = tuple(random_symbol(code[pos], config, rng) for pos in range(start, end))
    return base[:start] + fresh + base[start:]


class ExpressionTree:
    """A mathematical expression of one variable encoded as a linear code.

    Trees are immutable: mutation, crossover and canonicalization return new
    trees. Equality and hashing use the formatted formula, so two trees that
    print the same are the same individual for the search.

    Attributes:
        code: Read's linear code of the tree
        symbols: One symbol per code position
        config: Settings used when new symbols are drawn
    """

    __slots__ = ("code", "symbols", "config", "_formula")

    def __init__(
        self,
        code: Iterable[int],
        symbols: Iterable[Symbol],
        config: TreeConfig | None = None,
    ):
        self.code = linear_code.validate_code(code)
        self.symbols = tuple(symbols)
        self.config = config or TreeConfig()
        self._formula = None
        if len(self.symbols) != len(self.code):
            raise CodeError(
                f"{len(self.symbols)} symbols for a code of length {len(self.code)}"
            )
        for pos, (digit, symbol) in enumerate(zip(self.code, self.symbols)):
            if symbol.arity != digit:
                raise ArityMismatchError(pos, digit, symbol.arity, symbol.name)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def random(
        cls, config: TreeConfig, length: int, rng: random.Random | None = None
    ) -> ExpressionTree:
        """Random tree of exactly ``length`` nodes within the registry bounds."""
        rng = rng or random
        code = config.bounds.random_code(length, rng)
        return cls(code, attach_symbols(code, config, rng), config)

    @classmethod
    def random_between(
        cls,
        config: TreeConfig,
        min_length: int,
        max_length: int,
        rng: random.Random | None = None,
        prefer_shorter: bool = False,
    ) -> ExpressionTree:
        """Random tree whose length lies in [min_length, max_length]."""
        rng = rng or random
        code = config.bounds.random_code_between(
            min_length, max_length, rng, prefer_shorter=prefer_shorter
        )
        return cls(code, attach_symbols(code, config, rng), config)

    @classmethod
    def from_tokens(
        cls,
        code: Iterable[int],
        tokens: Iterable[str | float],
        config: TreeConfig | None = None,
    ) -> ExpressionTree:
        """Build a tree from explicit labels.

        Tokens are operator names, ``"x"`` for the variable, or numbers.

        Example:
            >>> ExpressionTree.from_tokens([2, 0, 0], ["add", "x", "x"]).format()
            '(x + x)'
        """
        config = config or TreeConfig()
        symbols = []
        for token in tokens:
            if isinstance(token, (int, float)):
                symbols.append(Symbol.constant(token))
            elif token == "x":
                symbols.append(Symbol.variable())
            else:
                symbols.append(Symbol.of(config.registry.get(token)))
        return cls(code, symbols, config)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _evaluate_stack(self, x: np.ndarray) -> np.ndarray:
        # Reversed prefix walk; operands are pushed before their operator
        stack: list[np.ndarray] = []
        for symbol in reversed(self.symbols):
            if symbol.node_type == NodeType.VARIABLE:
                stack.append(x)
            elif symbol.node_type == NodeType.CONSTANT:
                stack.append(np.full_like(x, symbol.value))
            else:
                operands = [stack.pop() for _ in range(symbol.arity)]
                stack.append(symbol.operator(*operands))
        return stack[0]

    def evaluate_many(self, xs: Iterable[float] | np.ndarray) -> np.ndarray:
        """Evaluate the expression at every point of ``xs``.

        Domain errors give NaN at the affected points; NumPy warnings are
        suppressed.

        Args:
            xs: Input values

        Returns:
            Float array with the same shape as ``xs``
        """
        xs = np.asarray(xs, dtype=float)
        with np.errstate(all="ignore"):
            values = self._evaluate_stack(xs)
        return np.array(np.broadcast_to(np.asarray(values, dtype=float), xs.shape))

    def evaluate(self, x: float) -> float:
        """Evaluate the expression at a single point."""
        return float(self.evaluate_many(np.array([x], dtype=float))[0])

    def __call__(self, x: float) -> float:
        return self.evaluate(x)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def format(self) -> str:
        """Textual formula, e.g. ``sin((x + x))``."""
        if self._formula is None:
            stack: list[str] = []
            for symbol in reversed(self.symbols):
                if symbol.node_type == NodeType.OPERATOR:
                    operands = [stack.pop() for _ in range(symbol.arity)]
                    stack.append(symbol.operator.format(*operands))
                else:
                    stack.append(symbol.name)
            self._formula = stack[0]
        return self._formula

    def to_sympy(self) -> sp.Expr:
        """Convert to a SymPy expression (no simplification)."""
        x = sp.Symbol("x")
        stack: list[sp.Expr] = []
        for symbol in reversed(self.symbols):
            if symbol.node_type == NodeType.VARIABLE:
                stack.append(x)
            elif symbol.node_type == NodeType.CONSTANT:
                stack.append(sp.Float(symbol.value))
            else:
                builder = symbol.operator.sympy_func
                if builder is None:
                    raise ValueError(f"No SymPy equivalent for: {symbol.name}")
                operands = [stack.pop() for _ in range(symbol.arity)]
                stack.append(builder(*operands))
        return stack[0]

    def pretty(self, max_complexity: int = PRETTY_MAX_COMPLEXITY) -> str:
        """Get a cleaned-up string representation via SymPy."""
        try:
            # Skip SymPy for large trees to avoid hangs
            if len(self) > max_complexity:
                return self.format()
            s = str(self.to_sympy())
            return s.replace("Max", "max").replace("Min", "min")
        except Exception:
            return self.format()

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def subtree(self, pos: int) -> ExpressionTree:
        """The subtree rooted at ``pos`` as a tree of its own."""
        length = linear_code.subtree_length(self.code, pos)
        return ExpressionTree(
            self.code[pos : pos + length],
            self.symbols[pos : pos + length],
            self.config,
        )

    def has_constants(self) -> bool:
        return any(s.node_type == NodeType.CONSTANT for s in self.symbols)

    def depth(self) -> int:
        """Number of nodes on the longest root-to-leaf path."""
        stack: list[int] = []
        for digit in reversed(self.code):
            children = [stack.pop() for _ in range(digit)]
            stack.append(1 + max(children, default=0))
        return stack[0]

    def canonicalize(self) -> ExpressionTree:
        """Remove trivially redundant node pairs in one left-to-right scan.

        Two patterns are removed:
            - a unary operator directly applied to its inverse, e.g.
              ``sin(asin(u))`` becomes ``u``
            - ``min``/``max`` of two identical leaves, e.g. ``max(x, x)``
              becomes ``x``

        Every match shortens the code by two. Patterns created by a removal
        are not revisited.
        """
        code = self.code
        symbols = self.symbols
        kept_code: list[int] = []
        kept_symbols: list[Symbol] = []
        i = 0
        while i < len(code):
            symbol = symbols[i]
            op = symbol.operator
            if (
                op is not None
                and i + 1 < len(code)
                and symbols[i + 1].operator is not None
                and op.is_inverse(symbols[i + 1].operator)
            ):
                i += 2
                continue
            if (
                op is not None
                and op.idempotent
                and op.arity == 2
                and i + 2 < len(code)
                and code[i + 1] == 0
                and code[i + 2] == 0
                and symbols[i + 1] == symbols[i + 2]
            ):
                # Drop the operator and its first leaf; the second leaf stays.
                i += 2
                continue
            kept_code.append(code[i])
            kept_symbols.append(symbol)
            i += 1
        if len(kept_code) == len(code):
            return self
        return ExpressionTree(kept_code, kept_symbols, self.config)

    # ------------------------------------------------------------------
    # Genetic operations
    # ------------------------------------------------------------------

    def mutate(
        self,
        rng: random.Random | None = None,
        *,
        span_length: int | None = None,
        min_length: int | None = None,
        max_length: int | None = None,
    ) -> ExpressionTree:
        """Replace a random subtree with a freshly generated one.

        Args:
            rng: Random source
            span_length: Exact length of the new subtree
            min_length: Minimal accepted length of the result
            max_length: Maximal accepted length of the result

        Returns:
            New tree; symbols outside the new subtree are kept
        """
        rng = rng or random
        mutation = linear_code.mutate(
            self.code,
            rng,
            span_length=span_length,
            min_length=min_length,
            max_length=max_length,
            generate=self.config.bounds.generator(),
        )
        pos = mutation.position
        base = self.symbols[:pos] + self.symbols[pos + mutation.replaced_length :]
        symbols = attach_symbols(
            mutation.code,
            self.config,
            rng,
            start=pos,
            end=pos + mutation.span_length,
            base=base,
        )
        return ExpressionTree(mutation.code, symbols, self.config)

    def cross(
        self,
        other: ExpressionTree,
        rng: random.Random | None = None,
        *,
        min_length: int | None = None,
        max_length: int | None = None,
        positions: tuple[int | None, int | None] = (None, None),
    ) -> tuple[ExpressionTree, ExpressionTree]:
        """Exchange one subtree with ``other``.

        Returns:
            ``(child_self, child_other)``: each parent with the other's span
            transplanted, symbols included
        """
        crossover = linear_code.cross(
            self.code,
            other.code,
            rng,
            min_length=min_length,
            max_length=max_length,
            positions=positions,
        )
        pos_a, len_a = crossover.position_a, crossover.length_a
        pos_b, len_b = crossover.position_b, crossover.length_b
        span_a = self.symbols[pos_a : pos_a + len_a]
        span_b = other.symbols[pos_b : pos_b + len_b]
        child_a = ExpressionTree(
            crossover.child_a,
            self.symbols[:pos_a] + span_b + self.symbols[pos_a + len_a :],
            self.config,
        )
        child_b = ExpressionTree(
            crossover.child_b,
            other.symbols[:pos_b] + span_a + other.symbols[pos_b + len_b :],
            self.config,
        )
        return child_a, child_b

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.code)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExpressionTree):
            return NotImplemented
        return self.format() == other.format()

    def __hash__(self) -> int:
        return hash(self.format())

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"ExpressionTree({self.format()})"
