# -*- coding: utf-8 -*-

"""
Overlay placement: brings a moving volume onto the voxel grid of a base volume.
"""

import logging
from typing import Any, Optional, Union

import numpy as np

from ..utils import InterpolationMethod, parse_interpolation_method
from .affine_decoder import decode_affine
from .resampling import resample_index_space, resample_world_space

logger = logging.getLogger(__name__)


def overlay_to_base(
    base_volume: np.ndarray,
    base_header: Any,
    moving_volume: np.ndarray,
    moving_header: Any,
    method: Optional[Union[str, InterpolationMethod]] = None,
) -> np.ndarray:
    """
    Resamples moving_volume into base_volume's voxel grid.

    If both headers yield a valid affine, every base voxel is mapped through
    world space into the moving volume. Otherwise the moving volume is
    stretched to the base shape in index space and any orientation stored in
    the one valid header is ignored.

    Args:
        base_volume: Reference volume; only its shape is used.
        base_header: Spatial header of the base volume (HeaderMetadata,
                     nibabel image/header, mapping or None).
        moving_volume: 3D volume to overlay.
        moving_header: Spatial header of the moving volume.
        method: Interpolation method (default: cubic).

    Returns:
        float64 array with base_volume's shape; NaN marks missing samples.
    """
    method = parse_interpolation_method(method)
    base_shape = np.shape(base_volume)

    affine_base = decode_affine(base_header, label="base volume")
    affine_moving = decode_affine(moving_header, label="moving volume")

    if affine_base is not None and affine_moving is not None:
        logger.info(
            f"Overlay: resampling {np.shape(moving_volume)} onto {base_shape} "
            f"through world space ('{method.value}')."
        )
        return resample_world_space(
            base_shape, moving_volume, affine_base, affine_moving, method
        )

    missing = [
        name
        for name, affine in (("base", affine_base), ("moving", affine_moving))
        if affine is None
    ]
    logger.info(
        f"Overlay: no affine for {' and '.join(missing)} volume; "
        f"falling back to index-space resampling ('{method.value}')."
    )
    return resample_index_space(moving_volume, base_shape, method)
