# -*- coding: utf-8 -*-

"""
Coordinate transformation utilities for BaseOverlay.

Provides helper functions for converting between voxel indices and
world (RASmm) coordinates using affine transformation matrices.
"""

# ============================================================================
# Imports
# ============================================================================

from typing import Sequence

import numpy as np
from nibabel.affines import apply_affine


# ============================================================================
# Coordinate Transformation Functions
# ============================================================================


def voxel_to_world(vox_coords: np.ndarray, affine: np.ndarray) -> np.ndarray:
    """
    Converts voxel indices [i, j, k] to world RASmm coordinates [x, y, z].

    Args:
        vox_coords: Voxel coordinates, shape (3,) or (N, 3).
        affine: 4x4 affine transformation matrix.

    Returns:
        World coordinates with the same shape as the input.
    """
    return apply_affine(affine, np.asarray(vox_coords, dtype=np.float64))


def world_to_voxel(world_coords: np.ndarray, inv_affine: np.ndarray) -> np.ndarray:
    """
    Converts world RASmm coordinates [x, y, z] to voxel indices [i, j, k].

    Args:
        world_coords: World coordinates, shape (3,) or (N, 3).
        inv_affine: Inverse of the 4x4 affine transformation matrix.

    Returns:
        Voxel coordinates (float values) with the same shape as the input.
    """
    return apply_affine(inv_affine, np.asarray(world_coords, dtype=np.float64))


def voxel_grid(shape: Sequence[int]) -> np.ndarray:
    """
    Enumerates every zero-based voxel index of a 3D grid.

    Rows follow C order, so a flat per-voxel result reshaped with
    ``reshape(shape)`` lands back on its voxel.

    Returns:
        Float array of shape (prod(shape), 3).
    """
    axes = [np.arange(n, dtype=np.float64) for n in shape]
    mesh = np.meshgrid(*axes, indexing="ij")
    return np.stack([m.ravel() for m in mesh], axis=-1)


def invert_affine(affine: np.ndarray, label: str = "volume") -> np.ndarray:
    """
    Inverts a 4x4 affine, naming the volume if the matrix is singular.

    Raises:
        np.linalg.LinAlgError: If the affine cannot be inverted.
    """
    try:
        return np.linalg.inv(affine)
    except np.linalg.LinAlgError as e:
        raise np.linalg.LinAlgError(
            f"Affine of the {label} is singular and cannot be inverted "
            f"(corrupt spatial header?): {e}"
        ) from e
