# -*- coding: utf-8 -*-

"""
Functions for loading NIfTI volumes with their spatial headers
and saving resampled overlays on the base image grid.
"""

import os
import logging
from typing import Any, NamedTuple, Optional

import numpy as np
import nibabel as nib

from .logic.affine_decoder import HeaderMetadata

logger = logging.getLogger(__name__)

NIFTI_EXTENSIONS = (".nii", ".nii.gz")


class LoadedVolume(NamedTuple):
    """A 3D volume with the header fields needed to place it in world space."""
    data: np.ndarray
    header: HeaderMetadata
    affine: np.ndarray
    path: str
    image: Any


def load_volume(input_path: str) -> LoadedVolume:
    """
    Loads a NIfTI image file (.nii, .nii.gz) as a 3D float32 volume.

    Images with more than three dimensions are reduced to their first
    3D frame.

    Args:
        input_path: Path to the image.

    Returns:
        LoadedVolume with data, decoded header metadata, nibabel affine,
        path and the nibabel image itself.

    Raises:
        FileNotFoundError: If the file does not exist.
        nib.filebasedimages.ImageFileError: If nibabel cannot read the file.
        ValueError: If the image has fewer than three dimensions.
    """
    if not os.path.isfile(input_path):
        raise FileNotFoundError(f"File not found: {input_path}")

    img = nib.load(input_path)
    shape = img.header.get_data_shape()

    if len(shape) < 3:
        raise ValueError(
            f"Loaded image has only {len(shape)} dimensions, expected 3 or more."
        )

    if len(shape) > 3:
        logger.info(
            f"{os.path.basename(input_path)} has shape {shape}; using the first 3D frame."
        )
        img = img.slicer[(slice(None),) * 3 + (0,) * (len(shape) - 3)]

    image_data = img.get_fdata(dtype=np.float32)
    image_affine = img.affine

    if image_affine is None or image_affine.shape != (4, 4):
        raise ValueError(
            f"Loaded image affine is {image_affine!r}, expected a (4, 4) matrix."
        )

    logger.info(
        f"Loaded {os.path.basename(input_path)}: shape {image_data.shape}, "
        f"zooms {img.header.get_zooms()[:3]}"
    )
    return LoadedVolume(
        data=image_data,
        header=HeaderMetadata.from_image(img),
        affine=image_affine,
        path=input_path,
        image=img,
    )


def _has_nifti_extension(path: str) -> bool:
    return path.lower().endswith(NIFTI_EXTENSIONS)


def save_volume(
    data: np.ndarray, reference: Optional[LoadedVolume], output_path: str
) -> str:
    """
    Saves a resampled volume as NIfTI on the reference (base) image grid.

    Args:
        data: 3D array, normally the output of overlay_to_base.
        reference: The base volume; its affine, zooms and units are copied.
                   When None an identity affine is written.
        output_path: Destination ending in .nii or .nii.gz.

    Returns:
        The output path.

    Raises:
        ValueError: On a bad extension or a shape that does not match the reference.
    """
    if not _has_nifti_extension(output_path):
        raise ValueError("Output file must be .nii.gz or .nii format.")

    data = np.asarray(data, dtype=np.float32)
    if reference is not None and data.shape != reference.data.shape:
        raise ValueError(
            f"Output shape {data.shape} does not match the reference shape "
            f"{reference.data.shape}."
        )

    affine = reference.affine if reference is not None else np.eye(4)
    nifti_img = nib.Nifti1Image(data, affine)

    # Copy header info from the reference image if available
    if reference is not None:
        ref_header = reference.image.header
        nifti_img.header.set_zooms(ref_header.get_zooms()[:3])
        try:
            nifti_img.header.set_xyzt_units(*ref_header.get_xyzt_units())
        except AttributeError:
            logger.debug("Reference header has no xyzt units; keeping defaults.")

    nib.save(nifti_img, output_path)
    logger.info(f"Saved resampled volume: {output_path}")
    return output_path
