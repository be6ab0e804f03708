"""frec package: function recovery by genetic programming over Read's tree code."""

__version__ = "1.0.0"

from . import config, logging_config, symbolic_regression, types
from .logging_config import get_logger, setup_logging
from .symbolic_regression import (
    BestResult,
    ExpressionTree,
    GeneticConfig,
    Individual,
    OperatorRegistry,
    create_controller,
    discover_equation,
)
from .types import (
    ArityMismatchError,
    CodeError,
    ConfigurationError,
    FitnessNotAssignedError,
    FrecError,
)

__all__ = [
    "config",
    "logging_config",
    "symbolic_regression",
    "types",
    "get_logger",
    "setup_logging",
    "BestResult",
    "ExpressionTree",
    "GeneticConfig",
    "Individual",
    "OperatorRegistry",
    "create_controller",
    "discover_equation",
    "FrecError",
    "CodeError",
    "ArityMismatchError",
    "FitnessNotAssignedError",
    "ConfigurationError",
]
