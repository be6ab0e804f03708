"""Operator catalogue for expression trees.

Every operator is a plain immutable value: a name, an arity, a NumPy function
and a format template. Numeric functions are safe in the sense that domain
errors (division by zero, logarithm of a non-positive number, ...) produce NaN
instead of raising, so a bad candidate only ever gets a bad fitness.

Key Classes:
    - Operator: one n-ary function usable as an internal tree node
    - OperatorRegistry: the fixed operator set a search runs with
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from dataclasses import field
from typing import Callable
from typing import Iterable
from typing import Iterator

import numpy as np
import sympy as sp

from ..config import DEFAULT_OPERATORS
from ..types import ConfigurationError
from .limited_code import ArityBounds


@dataclass(frozen=True)
class Operator:
    """A function node of an expression tree.

    Attributes:
        name: Unique operator name (e.g., 'add', 'sin')
        arity: Number of operands
        func: Vectorized numeric implementation
        template: ``str.format`` template over the operand strings
        inverse: Name of the unary operator that undoes this one, if any
        sympy_func: Builder of the equivalent SymPy expression
        grouped: Wrap the formatted text in parentheses
        idempotent: ``op(a, a) == a`` for every a (min, max)
    """

    name: str
    arity: int
    func: Callable = field(compare=False, repr=False)
    template: str = ""
    inverse: str | None = None
    sympy_func: Callable | None = field(default=None, compare=False, repr=False)
    grouped: bool = False
    idempotent: bool = False

    def __post_init__(self):
        if self.arity < 1:
            raise ConfigurationError(
                f"operator '{self.name}' must take at least one operand"
            )
        if not self.template:
            args = ", ".join(f"{{{i}}}" for i in range(self.arity))
            object.__setattr__(self, "template", f"{self.name}({args})")

    def __call__(self, *operands):
        return self.func(*operands)

    def format(self, *operands: str) -> str:
        """Render the operator applied to already formatted operands."""
        text = self.template.format(*operands)
        return f"({text})" if self.grouped else text

    def is_inverse(self, other: Operator) -> bool:
        """Whether ``self(other(x)) == x`` for unary operators."""
        return self.arity == 1 and other.arity == 1 and self.inverse == other.name


def _nan_where(mask, values):
    return np.where(mask, np.nan, values)


def safe_div(x, y):
    y = np.asarray(y, dtype=float)
    zero = y == 0
    return _nan_where(zero, np.divide(x, np.where(zero, 1.0, y)))


def safe_mod(x, y):
    y = np.asarray(y, dtype=float)
    zero = y == 0
    return _nan_where(zero, np.fmod(x, np.where(zero, 1.0, y)))


def safe_pow(x, y):
    return np.power(np.asarray(x, dtype=float), y)


def safe_ln(x):
    x = np.asarray(x, dtype=float)
    bad = ~(x > 0)
    return _nan_where(bad, np.log(np.where(bad, 1.0, x)))


def safe_log2(x):
    return safe_ln(x) / np.log(2.0)


def safe_log10(x):
    return safe_ln(x) / np.log(10.0)


def safe_sqrt(x):
    x = np.asarray(x, dtype=float)
    bad = x < 0
    return _nan_where(bad, np.sqrt(np.where(bad, 0.0, x)))


def safe_cot(x):
    return safe_div(np.cos(x), np.sin(x))


def safe_sec(x):
    return safe_div(1.0, np.cos(x))


def safe_csc(x):
    return safe_div(1.0, np.sin(x))


def safe_asin(x):
    x = np.asarray(x, dtype=float)
    bad = np.abs(x) > 1
    return _nan_where(bad, np.arcsin(np.where(bad, 0.0, x)))


def safe_acos(x):
    x = np.asarray(x, dtype=float)
    bad = np.abs(x) > 1
    return _nan_where(bad, np.arccos(np.where(bad, 0.0, x)))


# 0! .. 170!; 171! overflows a double
_FACTORIALS = np.cumprod(np.concatenate(([1.0], np.arange(1.0, 171.0))))


def safe_fact(x):
    """Factorial of the integer part of x; NaN outside [0, 170]."""
    x = np.asarray(x, dtype=float)
    bad = ~((x > -0.5) & (x <= 170.5))
    index = np.where(bad, 0, np.trunc(np.where(bad, 0.0, x))).astype(int)
    index = np.clip(index, 0, 170)
    return _nan_where(bad, _FACTORIALS[index])


def _round_half_up(x):
    return np.floor(np.asarray(x, dtype=float) + 0.5)


def _binary(name, func, symbol, sympy_func):
    return Operator(
        name=name,
        arity=2,
        func=func,
        template=f"{{0}} {symbol} {{1}}",
        sympy_func=sympy_func,
        grouped=True,
    )


def _unary(name, func, sympy_func, inverse=None, template="", grouped=False):
    return Operator(
        name=name,
        arity=1,
        func=func,
        template=template,
        inverse=inverse,
        sympy_func=sympy_func,
        grouped=grouped,
    )


_CATALOGUE = [
    _binary("add", np.add, "+", lambda a, b: a + b),
    _binary("sub", np.subtract, "-", lambda a, b: a - b),
    _binary("mul", np.multiply, "*", lambda a, b: a * b),
    _binary("div", safe_div, "/", lambda a, b: a / b),
    _binary("mod", safe_mod, "%", sp.Mod),
    _binary("pow", safe_pow, "^", lambda a, b: a**b),
    _unary("square", np.square, lambda a: a**2, "sqrt", "{0}^2", grouped=True),
    _unary("cube", lambda x: np.power(x, 3), lambda a: a**3, "cbrt", "{0}^3", True),
    _unary("abs", np.abs, sp.Abs),
    _unary("exp", np.exp, sp.exp, inverse="ln"),
    _unary("ln", safe_ln, sp.log, inverse="exp"),
    _unary("log2", safe_log2, lambda a: sp.log(a, 2)),
    _unary("log10", safe_log10, lambda a: sp.log(a, 10)),
    _unary("sqrt", safe_sqrt, sp.sqrt, inverse="square"),
    _unary("cbrt", np.cbrt, sp.cbrt, inverse="cube"),
    _unary("sin", np.sin, sp.sin, inverse="asin"),
    _unary("cos", np.cos, sp.cos, inverse="acos"),
    _unary("tan", np.tan, sp.tan, inverse="atan"),
    _unary("cot", safe_cot, sp.cot),
    _unary("sec", safe_sec, sp.sec),
    _unary("csc", safe_csc, sp.csc),
    _unary("asin", safe_asin, sp.asin, inverse="sin"),
    _unary("acos", safe_acos, sp.acos, inverse="cos"),
    _unary("atan", np.arctan, sp.atan, inverse="tan"),
    _unary("trunc", np.trunc, lambda a: sp.sign(a) * sp.floor(sp.Abs(a))),
    _unary("round", _round_half_up, lambda a: sp.floor(a + sp.Rational(1, 2))),
    _unary("floor", np.floor, sp.floor),
    _unary("ceil", np.ceil, sp.ceiling),
    _unary("fact", safe_fact, lambda a: sp.factorial(sp.floor(a)), None, "{0}!", True),
    _unary("neg", np.negative, lambda a: -a, "neg", "-{0}", grouped=True),
    Operator("max", 2, np.maximum, sympy_func=sp.Max, idempotent=True),
    Operator("min", 2, np.minimum, sympy_func=sp.Min, idempotent=True),
]

BUILTIN_OPERATORS: dict[str, Operator] = {op.name: op for op in _CATALOGUE}

# Aliases accepted by OperatorRegistry.from_names
OPERATOR_ALIASES = {
    "+": "add",
    "-": "sub",
    "*": "mul",
    "/": "div",
    "%": "mod",
    "^": "pow",
    "log": "ln",
    "arcsin": "asin",
    "arccos": "acos",
    "arctan": "atan",
    "cubert": "cbrt",
    "ceiling": "ceil",
}


class OperatorRegistry:
    """The fixed set of operators a search runs with.

    Operators are grouped by arity. The arity window of the registry decides
    which digits random codes may contain, so every arity inside that window
    must be covered by at least one operator.

    Example:
        >>> registry = OperatorRegistry.from_names(["add", "mul", "sin"])
        >>> registry.bounds
        ArityBounds(min_arity=0, max_arity=2)
    """

    def __init__(self, operators: Iterable[Operator]):
        self._operators: dict[str, Operator] = {}
        for op in operators:
            if op.name in self._operators:
                raise ConfigurationError(f"duplicate operator '{op.name}'")
            self._operators[op.name] = op
        if not self._operators:
            raise ConfigurationError("operator registry is empty")

        grouped: dict[int, list[Operator]] = {}
        for op in self._operators.values():
            grouped.setdefault(op.arity, []).append(op)
        self._by_arity = {arity: tuple(ops) for arity, ops in grouped.items()}
        self.bounds = ArityBounds.from_arities(self._by_arity)

        missing = [
            d
            for d in range(self.bounds.lower, self.bounds.max_arity + 1)
            if d not in self._by_arity
        ]
        if missing:
            raise ConfigurationError(
                f"no operator of arity {missing} inside the window "
                f"[{self.bounds.lower}, {self.bounds.max_arity}]"
            )

    @classmethod
    def from_names(cls, names: Iterable[str] | None = None) -> OperatorRegistry:
        """Build a registry from built-in operator names.

        Args:
            names: Operator names or symbols; ``config.DEFAULT_OPERATORS`` if None

        Raises:
            ConfigurationError: For unknown names
        """
        if names is None:
            names = DEFAULT_OPERATORS
        operators = []
        seen = set()
        for raw in names:
            name = OPERATOR_ALIASES.get(raw, raw)
            if name not in BUILTIN_OPERATORS:
                raise ConfigurationError(f"unknown operator '{raw}'")
            if name not in seen:
                seen.add(name)
                operators.append(BUILTIN_OPERATORS[name])
        return cls(operators)

    def by_arity(self, arity: int) -> tuple[Operator, ...]:
        """All operators taking ``arity`` operands."""
        ops = self._by_arity.get(arity)
        if not ops:
            raise ConfigurationError(f"no operator of arity {arity}")
        return ops

    def choose(self, arity: int, rng: random.Random | None = None) -> Operator:
        """Pick an operator of the given arity uniformly at random."""
        return (rng or random).choice(self.by_arity(arity))

    def get(self, name: str) -> Operator:
        try:
            return self._operators[name]
        except KeyError:
            raise ConfigurationError(f"operator '{name}' is not registered") from None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._operators)

    def __contains__(self, name: object) -> bool:
        return name in self._operators

    def __iter__(self) -> Iterator[Operator]:
        return iter(self._operators.values())

    def __len__(self) -> int:
        return len(self._operators)

    def __repr__(self) -> str:
        return f"OperatorRegistry({list(self._operators)})"
