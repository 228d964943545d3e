# -*- coding: utf-8 -*-
"""
Pytest configuration and shared fixtures for BaseOverlay tests.

Provides reusable volumes, affines, headers and NIfTI files.
"""

import numpy as np
import pytest
import nibabel as nib

from baseoverlay_pkg.logic.affine_decoder import HeaderMetadata


# ============================================================================
# Volume Fixtures
# ============================================================================


@pytest.fixture
def rng():
    """Seeded random generator for reproducible volumes."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_volume(rng):
    """
    Creates a 5x5x5 volume with values in [1, 2).

    Values stay far from zero so the epsilon cleanup never triggers.

    Returns:
        np.ndarray: float32 volume of shape (5, 5, 5).
    """
    return (rng.random((5, 5, 5)) + 1.0).astype(np.float32)


@pytest.fixture
def base_volume_64():
    """
    Creates an empty base volume of shape (64, 64, 32).

    Returns:
        np.ndarray: Zero-filled float32 volume.
    """
    return np.zeros((64, 64, 32), dtype=np.float32)


@pytest.fixture
def moving_volume_64(rng):
    """
    Creates a moving volume of shape (64, 64, 32) with values in [1, 2).

    Returns:
        np.ndarray: float32 volume.
    """
    return (rng.random((64, 64, 32)) + 1.0).astype(np.float32)


# ============================================================================
# Affine / Header Fixtures
# ============================================================================


@pytest.fixture
def sample_affine():
    """
    Creates a standard identity affine matrix.

    Returns:
        np.ndarray: 4x4 identity affine matrix with 1mm isotropic voxels.
    """
    return np.eye(4)


@pytest.fixture
def sample_affine_scaled():
    """
    Creates an affine matrix with 2mm isotropic voxels.

    Returns:
        np.ndarray: 4x4 affine matrix with 2mm scaling.
    """
    affine = np.eye(4)
    affine[0, 0] = 2.0
    affine[1, 1] = 2.0
    affine[2, 2] = 2.0
    return affine


@pytest.fixture
def oblique_affine():
    """
    Creates a rotated, anisotropic, left-handed affine.

    30 degrees about z, 2 x 3 x 4 mm voxels, x axis flipped.

    Returns:
        np.ndarray: 4x4 affine with negative determinant.
    """
    theta = np.deg2rad(30.0)
    rotation = np.array([
        [np.cos(theta), -np.sin(theta), 0.0],
        [np.sin(theta), np.cos(theta), 0.0],
        [0.0, 0.0, 1.0],
    ])
    affine = np.eye(4)
    affine[:3, :3] = rotation @ np.diag([-2.0, 3.0, 4.0])
    affine[:3, 3] = [10.0, -20.0, 5.0]
    return affine


@pytest.fixture
def identity_header(sample_affine):
    """HeaderMetadata carrying only an identity transform."""
    return HeaderMetadata(transform=sample_affine)


@pytest.fixture
def nifti_header_factory():
    """
    Returns a factory building nibabel NIfTI-1 headers.

    The factory takes optional sform/qform affines and codes.
    """
    def _make(sform=None, qform=None, sform_code=1, qform_code=1):
        header = nib.Nifti1Header()
        if qform is not None:
            header.set_qform(qform, code=qform_code)
        if sform is not None:
            header.set_sform(sform, code=sform_code)
        return header

    return _make


# ============================================================================
# NIfTI File Fixtures
# ============================================================================


@pytest.fixture
def nifti_file_factory(tmp_path):
    """
    Returns a factory writing synthetic NIfTI files into tmp_path.

    Yields:
        callable: (data, affine, name) -> str path.
    """
    def _write(data, affine=None, name="volume.nii.gz"):
        if affine is None:
            affine = np.eye(4)
        img = nib.Nifti1Image(np.asarray(data, dtype=np.float32), affine)
        path = tmp_path / name
        nib.save(img, str(path))
        return str(path)

    yield _write


# ============================================================================
# Markers for Test Categories
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
