"""Symbolic Regression Module.

This module provides genetic programming over Read's linear tree code for
discovering a formula of one variable from sampled data.

Main Components:
    - linear_code / ArityBounds: flat tree encoding, mutation, crossover
    - ExpressionTree: encoded tree labelled with operators, x and constants
    - Individual: expression tree plus fitness
    - GenerationController and its strategies: the evolutionary search

Example:
    >>> from frec_pkg.symbolic_regression import discover_equation
    >>> import numpy as np
    >>> x = np.linspace(0, 3, 30)
    >>> formula, fitness, results = discover_equation(x, x * x + x, seed=7)
    >>> print(f"Discovered: {formula} (error {fitness:.3g})")
"""

from . import linear_code
from .collaborators import BestResult
from .collaborators import GenerationSink
from .collaborators import MemoryGenerationSink
from .error_metrics import ERROR_METRICS
from .error_metrics import absolute_error
from .error_metrics import huber_loss
from .error_metrics import mean_squared_error
from .error_metrics import root_mean_squared_error
from .expression_tree import ExpressionTree
from .expression_tree import NodeType
from .expression_tree import Symbol
from .expression_tree import TreeConfig
from .expression_tree import attach_symbols
from .functions import BUILTIN_OPERATORS
from .functions import Operator
from .functions import OperatorRegistry
from .genetic_engine import STRATEGIES
from .genetic_engine import ControllerState
from .genetic_engine import ExhaustiveCrossStrategy
from .genetic_engine import GenerationController
from .genetic_engine import GeneticConfig
from .genetic_engine import OscillatingStrategy
from .genetic_engine import SeededStrategy
from .genetic_engine import StandardStrategy
from .genetic_engine import create_controller
from .genetic_engine import discover_equation
from .individual import FITNESS_CEILING
from .individual import FitnessState
from .individual import Individual
from .limited_code import ArityBounds

__all__ = [
    # Encoding
    "linear_code",
    "ArityBounds",
    # Expression Trees
    "ExpressionTree",
    "NodeType",
    "Symbol",
    "TreeConfig",
    "attach_symbols",
    "Operator",
    "OperatorRegistry",
    "BUILTIN_OPERATORS",
    # Fitness
    "Individual",
    "FitnessState",
    "FITNESS_CEILING",
    "ERROR_METRICS",
    "absolute_error",
    "mean_squared_error",
    "root_mean_squared_error",
    "huber_loss",
    # Search
    "GeneticConfig",
    "ControllerState",
    "GenerationController",
    "StandardStrategy",
    "OscillatingStrategy",
    "SeededStrategy",
    "ExhaustiveCrossStrategy",
    "STRATEGIES",
    "create_controller",
    "discover_equation",
    # Collaborators
    "BestResult",
    "GenerationSink",
    "MemoryGenerationSink",
]
