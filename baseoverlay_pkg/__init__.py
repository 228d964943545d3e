# -*- coding: utf-8 -*-

"""
BaseOverlay: places a moving image volume onto the voxel grid of a base volume.
"""

from .logic import (
    HeaderMetadata,
    decode_affine,
    overlay_to_base,
    resample_index_space,
    resample_world_space,
)
from .utils import InterpolationMethod

__all__ = [
    "HeaderMetadata",
    "InterpolationMethod",
    "decode_affine",
    "overlay_to_base",
    "resample_index_space",
    "resample_world_space",
]
