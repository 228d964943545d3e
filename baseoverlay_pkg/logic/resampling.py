# -*- coding: utf-8 -*-

"""
Resampling of a moving volume onto a target voxel grid.

Two strategies are provided:
- world space: every base voxel is carried through both affines into the
  moving volume's index space and interpolated there.
- index space: a pure geometric rescale in which the first and last samples
  of every axis line up, with no physical-space interpretation.

Points that fall outside the moving volume are filled with NaN.
"""

# ============================================================================
# Imports
# ============================================================================

import logging
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from ..utils import (
    InterpolationMethod,
    MIN_POINTS_PER_AXIS,
    MISSING_VALUE,
    NAN_CLEANUP_EPSILON,
    SPLINE_SOLVER_ARGS,
    format_tuple,
    parse_interpolation_method,
)
from .coordinates import invert_affine, voxel_grid, voxel_to_world, world_to_voxel

logger = logging.getLogger(__name__)

MethodLike = Optional[Union[str, InterpolationMethod]]


# ============================================================================
# Helpers
# ============================================================================


def clean_epsilon(values: np.ndarray, epsilon: float = NAN_CLEANUP_EPSILON) -> np.ndarray:
    """
    Replaces samples with |value| < epsilon by NaN.

    Spline interpolation leaves low-amplitude ringing next to NaN-filled
    regions; those samples are treated as missing rather than as data.

    Returns:
        A float array (the input itself when it is already floating point).
    """
    values = np.asarray(values)
    if not np.issubdtype(values.dtype, np.floating):
        values = values.astype(np.float64)
    values[np.abs(values) < epsilon] = MISSING_VALUE
    return values


def _as_moving_volume(volume: np.ndarray, label: str = "moving volume") -> np.ndarray:
    """Validates that the volume is 3D and returns it as float64."""
    volume = np.asarray(volume)
    if volume.ndim != 3:
        raise ValueError(
            f"The {label} must be a 3D volume, got {volume.ndim} dimension(s) "
            f"with shape {volume.shape}."
        )
    return volume.astype(np.float64)


def _as_shape(shape: Sequence[int], label: str) -> Tuple[int, int, int]:
    shape = tuple(int(n) for n in shape)
    if len(shape) != 3 or any(n < 1 for n in shape):
        raise ValueError(f"The {label} must be 3 positive sizes, got {shape}.")
    return shape


def _resolve_method(
    method: MethodLike, source_shape: Tuple[int, ...]
) -> InterpolationMethod:
    """
    Parses the method and checks the source grid can support it.

    Falls back to linear interpolation when an axis is too short for the
    requested spline order.
    """
    method = parse_interpolation_method(method)

    if min(source_shape) < 2:
        raise ValueError(
            f"Cannot interpolate a volume of shape {source_shape}: every axis needs "
            f"at least 2 samples."
        )

    required = MIN_POINTS_PER_AXIS[method]
    if min(source_shape) < required:
        logger.warning(
            f"'{method.value}' interpolation needs {required} samples per axis but the "
            f"moving volume has shape {source_shape}. Using 'linear' instead."
        )
        return InterpolationMethod.LINEAR
    return method


def _interpolate(
    volume: np.ndarray, query: np.ndarray, method: InterpolationMethod
) -> np.ndarray:
    """Samples `volume` at fractional zero-based indices; outside points become NaN."""
    grid = tuple(np.arange(n, dtype=np.float64) for n in volume.shape)

    # Spline fits are solved iteratively; tighten the solver so nodes are reproduced
    extra = {}
    if method in SPLINE_SOLVER_ARGS:
        extra["solver_args"] = dict(SPLINE_SOLVER_ARGS[method])

    interpolator = RegularGridInterpolator(
        grid,
        volume,
        method=method.value,
        bounds_error=False,
        fill_value=MISSING_VALUE,
        **extra,
    )
    return clean_epsilon(interpolator(query))


# ============================================================================
# Resamplers
# ============================================================================


def resample_world_space(
    base_shape: Sequence[int],
    moving_volume: np.ndarray,
    affine_base: np.ndarray,
    affine_moving: np.ndarray,
    method: MethodLike = None,
) -> np.ndarray:
    """
    Resamples the moving volume onto the base grid through world space.

    Args:
        base_shape: Shape of the base (reference) volume.
        moving_volume: 3D array to resample.
        affine_base: 4x4 voxel-to-world affine of the base volume.
        affine_moving: 4x4 voxel-to-world affine of the moving volume.
        method: Interpolation method (default: cubic).

    Returns:
        float64 array of shape base_shape, NaN where no moving data maps.

    Raises:
        ValueError: If the moving volume is not 3D or the base shape is invalid.
        np.linalg.LinAlgError: If affine_moving is singular.
    """
    base_shape = _as_shape(base_shape, "base shape")
    volume = _as_moving_volume(moving_volume)
    method = _resolve_method(method, volume.shape)
    inv_moving = invert_affine(np.asarray(affine_moving, dtype=np.float64), "moving volume")

    # Base voxel -> world -> moving voxel
    base_vox = voxel_grid(base_shape)
    world_pts = voxel_to_world(base_vox, np.asarray(affine_base, dtype=np.float64))
    moving_vox = world_to_voxel(world_pts, inv_moving)

    logger.debug(
        f"World-space resample: {volume.shape} -> {base_shape}, "
        f"{len(moving_vox)} query points, method '{method.value}'."
    )
    values = _interpolate(volume, moving_vox, method)
    return values.reshape(base_shape)


def resample_index_space(
    moving_volume: np.ndarray,
    target_shape: Sequence[int],
    method: MethodLike = None,
) -> np.ndarray:
    """
    Resamples the moving volume to target_shape using array indices only.

    The target grid spans each source axis end to end, so the first and last
    samples of every axis coincide with the source's.

    Args:
        moving_volume: 3D array to resample.
        target_shape: Desired output shape.
        method: Interpolation method (default: cubic).

    Returns:
        float64 array of shape target_shape. When the shapes already match,
        the moving values are returned unchanged.

    Raises:
        ValueError: If the moving volume is not 3D or the target shape is invalid.
    """
    volume = _as_moving_volume(moving_volume)
    target_shape = _as_shape(target_shape, "target shape")

    if volume.shape == target_shape:
        return volume

    method = _resolve_method(method, volume.shape)

    axes = [
        np.linspace(0, src - 1, dst) for src, dst in zip(volume.shape, target_shape)
    ]
    query = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1)

    steps = [(src - 1) / (dst - 1) if dst > 1 else 0.0
             for src, dst in zip(volume.shape, target_shape)]
    logger.debug(
        f"Index-space resample: {volume.shape} -> {target_shape}, "
        f"method '{method.value}', source step {format_tuple(steps, 3)}."
    )
    return _interpolate(volume, query, method)
