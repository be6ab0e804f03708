"""Centralized configuration for frec.

This module defines:
- Population and generation limits for the evolutionary search
- Genetic operator probabilities
- Code length window and constant generation settings
- The default operator set and error metric
- Logging defaults

Every value can be overridden via environment variables prefixed with FREC_.
"""

import os

VERSION = "1.0.0"

# ============================================================================
# POPULATION CONTROLLER
# ============================================================================

GENERATION_SIZE = int(
    os.getenv("FREC_GENERATION_SIZE", "100")
)  # Individuals kept after every generation
GENERATIONS = int(
    os.getenv("FREC_GENERATIONS", "100")
)  # Number of generations to run (no early exit)
STRATEGY = os.getenv(
    "FREC_STRATEGY", "standard"
)  # "standard", "oscillating", "seeded", "exhaustive"
SAVING_ENABLED = os.getenv("FREC_SAVING_ENABLED", "false").lower() == "true"

# Genetic operator probabilities
MUTATION_PROBABILITY = float(os.getenv("FREC_MUTATION_PROBABILITY", "0.03"))
CROSSING_PROBABILITY = float(os.getenv("FREC_CROSSING_PROBABILITY", "0.90"))
REPRODUCTION_PROBABILITY = float(os.getenv("FREC_REPRODUCTION_PROBABILITY", "0.95"))
SELECTION_PROBABILITY = float(
    os.getenv("FREC_SELECTION_PROBABILITY", "0.85")
)  # Share of the generation surviving selection in pool-based strategies

# Arbitrary mutation/crossing ignore the code length window
ARBITRARY_MUTATIONS = os.getenv("FREC_ARBITRARY_MUTATIONS", "false").lower() == "true"
ARBITRARY_CROSSINGS = os.getenv("FREC_ARBITRARY_CROSSINGS", "false").lower() == "true"

# ============================================================================
# TREE ENCODING
# ============================================================================

MIN_CODE_LENGTH = int(os.getenv("FREC_MIN_CODE_LENGTH", "2"))
MAX_CODE_LENGTH = int(os.getenv("FREC_MAX_CODE_LENGTH", "10"))
MAX_SPLIT_ATTEMPTS = int(
    os.getenv("FREC_MAX_SPLIT_ATTEMPTS", "100")
)  # Retries for bounded mutation/crossover before falling back
MAX_REFILL_ROUNDS = int(
    os.getenv("FREC_MAX_REFILL_ROUNDS", "100")
)  # Retries when topping a generation up with valid random individuals

# Embedded constants
USE_CONSTANTS = os.getenv("FREC_USE_CONSTANTS", "false").lower() == "true"
CONSTANT_MIN = float(os.getenv("FREC_CONSTANT_MIN", "0.0"))
CONSTANT_MAX = float(os.getenv("FREC_CONSTANT_MAX", "1.0"))
CONSTANT_PROBABILITY = float(os.getenv("FREC_CONSTANT_PROBABILITY", "0.5"))

# ============================================================================
# FITNESS
# ============================================================================

FITNESS_CEILING = float(
    os.getenv("FREC_FITNESS_CEILING", "1e6")
)  # Fitness at or above this marks an individual invalid
ERROR_METRIC = os.getenv(
    "FREC_ERROR_METRIC", "absolute"
)  # "absolute", "mse", "rmse", "huber"

# Complexity limit for SymPy rendering of results
PRETTY_MAX_COMPLEXITY = int(os.getenv("FREC_PRETTY_MAX_COMPLEXITY", "40"))

DEFAULT_OPERATORS = tuple(
    name.strip()
    for name in os.getenv(
        "FREC_OPERATORS",
        "add,sub,mul,div,square,cube,abs,exp,ln,log10,max,min,"
        "sin,cos,tan,sqrt,asin,acos,atan",
    ).split(",")
    if name.strip()
)

# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL = os.getenv("FREC_LOG_LEVEL", "WARNING")
LOG_FORMAT = os.getenv(
    "FREC_LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s"
)
