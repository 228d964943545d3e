# -*- coding: utf-8 -*-

"""
Logic package for BaseOverlay.

Contains the affine decoder, the world-space and index-space
resamplers, and the overlay entry point that chooses between them.
"""

from .affine_decoder import (
    AffineDecodeError,
    HeaderMetadata,
    decode_affine,
    describe_affine_source,
)
from .resampling import resample_index_space, resample_world_space
from .overlay import overlay_to_base

__all__ = [
    "AffineDecodeError",
    "HeaderMetadata",
    "decode_affine",
    "describe_affine_source",
    "resample_index_space",
    "resample_world_space",
    "overlay_to_base",
]
