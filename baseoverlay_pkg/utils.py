# -*- coding: utf-8 -*-

"""
Utility functions, constants, and enums for the BaseOverlay resampler.
"""

import enum
import logging
from typing import Any, Dict, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

# --- Constants ---
NAN_CLEANUP_EPSILON: float = 1e-5
MISSING_VALUE: float = np.nan
METHOD_ALIASES: Dict[str, str] = {"spline": "cubic"}


# --- Interpolation Method Enum ---
class InterpolationMethod(enum.Enum):
    """Enum of the interpolation methods, valued by their scipy RegularGridInterpolator name."""
    NEAREST: str = "nearest"
    LINEAR: str = "linear"
    CUBIC: str = "cubic"
    QUINTIC: str = "quintic"
    PCHIP: str = "pchip"


DEFAULT_INTERPOLATION: InterpolationMethod = InterpolationMethod.CUBIC

# Grid points per axis needed by each method
MIN_POINTS_PER_AXIS: Dict[InterpolationMethod, int] = {
    InterpolationMethod.NEAREST: 2,
    InterpolationMethod.LINEAR: 2,
    InterpolationMethod.CUBIC: 4,
    InterpolationMethod.PCHIP: 4,
    InterpolationMethod.QUINTIC: 6,
}

# Tolerances for the iterative solver behind the cubic and quintic spline fits
SPLINE_SOLVER_ARGS: Dict[InterpolationMethod, Dict[str, float]] = {
    InterpolationMethod.CUBIC: {"atol": 1e-12, "rtol": 1e-12},
    InterpolationMethod.QUINTIC: {"atol": 1e-12, "rtol": 1e-12},
}


def parse_interpolation_method(
    value: Optional[Union[str, InterpolationMethod]],
) -> InterpolationMethod:
    """
    Resolves a user supplied method into an InterpolationMethod.

    Args:
        value: An InterpolationMethod, its name (case-insensitive), the alias
               'spline', or None for the default method.

    Returns:
        The matching InterpolationMethod.

    Raises:
        ValueError: If the value names no known method.
    """
    if value is None:
        return DEFAULT_INTERPOLATION
    if isinstance(value, InterpolationMethod):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        key = METHOD_ALIASES.get(key, key)
        try:
            return InterpolationMethod(key)
        except ValueError:
            pass
    choices = ", ".join(m.value for m in InterpolationMethod)
    raise ValueError(
        f"Unknown interpolation method {value!r}. Expected one of: {choices} (or 'spline')."
    )


def format_tuple(data: Any, precision: int = 2) -> str:
    """Formats a tuple of numbers into a string '(num1, num2, ...)'."""
    if isinstance(data, (list, tuple)):
        try:
            return f"({', '.join(f'{x:.{precision}f}' for x in data)})"
        except (TypeError, ValueError):
            return str(data) # Fallback
    return str(data)
