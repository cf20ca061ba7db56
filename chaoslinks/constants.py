# chaoslinks/constants.py
# Fixed constants for share codes and chaos map payloads

import string

# Short code alphabet: [A-Za-z0-9], 62 symbols
SHARE_CODE_CHARSET: str = string.ascii_uppercase + string.ascii_lowercase + string.digits
SHARE_CODE_LENGTH: int = 8

# Name of the unique constraint guarding short codes (see alembic migration)
SHORT_CODE_CONSTRAINT: str = "shared_configurations_short_code_unique"

SECONDS_PER_DAY: int = 86400

# Map types accepted by the share endpoint, with their required parameter keys
MAP_PARAMETER_KEYS: dict[str, list[str]] = {
    "lorenz": ["sigma", "rho", "beta"],
    "henon": ["a", "b", "iterations"],
    "logistic": ["r", "x0", "iterations"],
    "newton": ["xMin", "xMax", "yMin", "yMax", "maxIterations"],
    "standard": ["K", "numP", "numQ", "iterations"],
    "bifurcation-logistic": ["rMin", "rMax", "maxIterations"],
    "bifurcation-henon": ["aMin", "aMax", "b", "maxIterations"],
    "chaos-esthetique": ["a", "b", "x0", "y0", "iterations"],
}

VALID_MAP_TYPES: list[str] = list(MAP_PARAMETER_KEYS)

# Stable ranges: values outside produce warnings, not errors
STABLE_RANGES: dict[str, dict[str, tuple[float, float]]] = {
    "lorenz": {"sigma": (0, 50), "rho": (0, 100), "beta": (0, 10)},
    "henon": {"a": (0, 2), "b": (-1, 1), "iterations": (1, 50000)},
    "logistic": {"r": (0, 4), "x0": (0, 1), "iterations": (1, 1000)},
    "newton": {
        "xMin": (-10, 10), "xMax": (-10, 10),
        "yMin": (-10, 10), "yMax": (-10, 10),
        "maxIterations": (1, 200),
    },
    "standard": {"K": (0, 10), "numP": (1, 100), "numQ": (1, 100), "iterations": (1, 100000)},
    "bifurcation-logistic": {"rMin": (0, 4), "rMax": (0, 4), "maxIterations": (1, 5000)},
    "bifurcation-henon": {"aMin": (0, 2), "aMax": (0, 2), "b": (-1, 1), "maxIterations": (1, 5000)},
    "chaos-esthetique": {
        "a": (0, 2), "b": (0, 2),
        "x0": (-50, 50), "y0": (-50, 50),
        "iterations": (1, 100000),
    },
}

# Pairs that must satisfy lower < upper
ORDERED_BOUNDS: dict[str, list[tuple[str, str]]] = {
    "newton": [("xMin", "xMax"), ("yMin", "yMax")],
    "bifurcation-logistic": [("rMin", "rMax")],
    "bifurcation-henon": [("aMin", "aMax")],
}
