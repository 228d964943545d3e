# -*- coding: utf-8 -*-

"""
Voxel-to-world affine reconstruction from NIfTI-style header metadata.

A header can describe its orientation three ways: an sform block (three
srow vectors), a qform block (quaternion, voxel spacing, qfac and offset)
or a precomputed 4x4 transform. They are tried in that order and the first
valid one wins. Decoding never raises to the caller: any failure is logged
and reported as ``None``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

BOTTOM_ROW = np.array([0.0, 0.0, 0.0, 1.0])

HEADER_FIELDS = (
    "sform_code",
    "srow_x",
    "srow_y",
    "srow_z",
    "qform_code",
    "quatern_b",
    "quatern_c",
    "quatern_d",
    "pixdim",
    "qoffset_x",
    "qoffset_y",
    "qoffset_z",
)


class AffineDecodeError(ValueError):
    """Raised when header metadata cannot be turned into a valid affine."""


# ============================================================================
# Header Metadata
# ============================================================================


@dataclass
class HeaderMetadata:
    """
    Spatial fields of an already-parsed image header.

    Every field is optional; missing fields simply disqualify the encoding
    that needs them.
    """
    sform_code: Optional[Any] = None
    srow_x: Optional[Any] = None
    srow_y: Optional[Any] = None
    srow_z: Optional[Any] = None
    qform_code: Optional[Any] = None
    quatern_b: Optional[Any] = None
    quatern_c: Optional[Any] = None
    quatern_d: Optional[Any] = None
    pixdim: Optional[Any] = None  # [qfac, dx, dy, dz, ...]
    qoffset_x: Optional[Any] = None
    qoffset_y: Optional[Any] = None
    qoffset_z: Optional[Any] = None
    transform: Optional[Any] = None  # precomputed 4x4, last resort

    @classmethod
    def from_nifti_header(cls, header: Any, transform: Any = None) -> "HeaderMetadata":
        """
        Reads the sform/qform fields from a nibabel NIfTI-1/NIfTI-2 header.

        Fields the header does not define (e.g. MGH headers) are left as None.
        """
        try:
            available = set(header.keys())
        except AttributeError:
            available = set()
        values = {name: header[name] for name in HEADER_FIELDS if name in available}
        return cls(transform=transform, **values)

    @classmethod
    def from_image(cls, img: Any) -> "HeaderMetadata":
        """Builds metadata from a nibabel image, using img.affine as the fallback transform."""
        return cls.from_nifti_header(img.header, transform=getattr(img, "affine", None))

    @classmethod
    def from_mapping(cls, info: Mapping[str, Any]) -> "HeaderMetadata":
        """
        Builds metadata from a plain mapping.

        Accepts either a flat mapping of field names or a nested record of the
        form ``{"raw": {<field>: ...}, "Transform": {"T": <4x4>}}``.
        """
        raw = info.get("raw")
        source = raw if isinstance(raw, Mapping) else info
        values = {name: source[name] for name in HEADER_FIELDS if name in source}

        transform = info.get("transform")
        transform_record = info.get("Transform")
        if transform is None and isinstance(transform_record, Mapping):
            transform = transform_record.get("T")
        return cls(transform=transform, **values)


def as_header_metadata(header: Any) -> Optional[HeaderMetadata]:
    """
    Normalizes the accepted header representations into HeaderMetadata.

    Accepts HeaderMetadata, a nibabel image (anything with ``.header`` and
    ``.affine``), a nibabel header, a mapping, or None.
    """
    if header is None or isinstance(header, HeaderMetadata):
        return header
    if isinstance(header, Mapping):
        return HeaderMetadata.from_mapping(header)
    if hasattr(header, "header") and hasattr(header, "affine"):
        return HeaderMetadata.from_image(header)
    if hasattr(header, "keys"):
        return HeaderMetadata.from_nifti_header(header)
    raise TypeError(f"Unsupported header type: {type(header).__name__}")


# ============================================================================
# Encodings
# ============================================================================


def _as_vector(value: Any, length: int, name: str) -> np.ndarray:
    """Converts a header field into a finite float vector of at least `length` items."""
    if value is None:
        raise AffineDecodeError(f"Header field '{name}' is missing.")
    try:
        vec = np.asarray(value, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise AffineDecodeError(f"Header field '{name}' is not numeric: {e}") from e
    if vec.size < length:
        raise AffineDecodeError(
            f"Header field '{name}' has {vec.size} values, expected {length}."
        )
    if not np.all(np.isfinite(vec[:length])):
        raise AffineDecodeError(f"Header field '{name}' contains non-finite values.")
    return vec


def _as_scalar(value: Any, name: str) -> float:
    return float(_as_vector(value, 1, name)[0])


def _code_is_valid(code: Any, name: str) -> bool:
    """True when a form code is present and > 0."""
    if code is None:
        return False
    try:
        return float(np.asarray(code).ravel()[0]) > 0
    except (TypeError, ValueError, IndexError) as e:
        raise AffineDecodeError(f"Header field '{name}' is not a valid code: {code!r}") from e


def _check_affine(affine: np.ndarray, source: str) -> np.ndarray:
    if affine.shape != (4, 4):
        raise AffineDecodeError(f"{source} affine has shape {affine.shape}, expected (4, 4).")
    if not np.all(np.isfinite(affine)):
        raise AffineDecodeError(f"{source} affine contains non-finite values.")
    if not np.array_equal(affine[3], BOTTOM_ROW):
        raise AffineDecodeError(
            f"{source} affine bottom row is {affine[3].tolist()}, expected [0, 0, 0, 1]."
        )
    return affine


@dataclass(frozen=True)
class SformEncoding:
    """Affine stored directly as three srow vectors."""
    srow_x: np.ndarray
    srow_y: np.ndarray
    srow_z: np.ndarray

    tag = "sform"

    def to_affine(self) -> np.ndarray:
        affine = np.vstack([self.srow_x, self.srow_y, self.srow_z, BOTTOM_ROW])
        return _check_affine(affine, self.tag)


@dataclass(frozen=True)
class QformEncoding:
    """Affine stored as a unit quaternion (b, c, d), spacing, qfac and offset."""
    quatern_b: float
    quatern_c: float
    quatern_d: float
    pixdim: np.ndarray
    offset: np.ndarray

    tag = "qform"

    def to_affine(self) -> np.ndarray:
        b, c, d = self.quatern_b, self.quatern_c, self.quatern_d
        # Clamp: rounding can push b^2 + c^2 + d^2 slightly above 1
        a = np.sqrt(max(0.0, 1.0 - (b * b + c * c + d * d)))

        rotation = np.array([
            [a * a + b * b - c * c - d * d, 2 * b * c - 2 * a * d, 2 * b * d + 2 * a * c],
            [2 * b * c + 2 * a * d, a * a + c * c - b * b - d * d, 2 * c * d - 2 * a * b],
            [2 * b * d - 2 * a * c, 2 * c * d + 2 * a * b, a * a + d * d - b * b - c * c],
        ])

        qfac = self.pixdim[0]
        if qfac == 0:
            qfac = 1.0

        linear = rotation @ np.diag(self.pixdim[1:4])
        linear[:, 2] *= qfac

        affine = np.eye(4)
        affine[:3, :3] = linear
        affine[:3, 3] = self.offset
        return _check_affine(affine, self.tag)


@dataclass(frozen=True)
class RawMatrixEncoding:
    """Precomputed voxel-to-world matrix, used as-is."""
    matrix: np.ndarray

    tag = "transform"

    def to_affine(self) -> np.ndarray:
        return _check_affine(np.array(self.matrix, dtype=np.float64), self.tag)


Encoding = Union[SformEncoding, QformEncoding, RawMatrixEncoding]


def select_encoding(header: Optional[HeaderMetadata]) -> Optional[Encoding]:
    """
    Picks the encoding to use: sform, then qform, then the raw transform.

    Returns:
        The selected encoding, or None when the header carries none.

    Raises:
        AffineDecodeError: If the selected block is present but malformed.
    """
    if header is None:
        return None

    if _code_is_valid(header.sform_code, "sform_code"):
        return SformEncoding(
            srow_x=_as_vector(header.srow_x, 4, "srow_x")[:4],
            srow_y=_as_vector(header.srow_y, 4, "srow_y")[:4],
            srow_z=_as_vector(header.srow_z, 4, "srow_z")[:4],
        )

    if _code_is_valid(header.qform_code, "qform_code"):
        return QformEncoding(
            quatern_b=_as_scalar(header.quatern_b, "quatern_b"),
            quatern_c=_as_scalar(header.quatern_c, "quatern_c"),
            quatern_d=_as_scalar(header.quatern_d, "quatern_d"),
            pixdim=_as_vector(header.pixdim, 4, "pixdim")[:4],
            offset=np.array([
                _as_scalar(header.qoffset_x, "qoffset_x"),
                _as_scalar(header.qoffset_y, "qoffset_y"),
                _as_scalar(header.qoffset_z, "qoffset_z"),
            ]),
        )

    if header.transform is not None and np.size(header.transform) > 0:
        return RawMatrixEncoding(matrix=np.asarray(header.transform))

    return None


# ============================================================================
# Decoding Boundary
# ============================================================================


def decode_affine(header: Any, label: str = "volume") -> Optional[np.ndarray]:
    """
    Builds the 4x4 voxel-to-world affine for a header.

    Args:
        header: HeaderMetadata or any representation accepted by
                as_header_metadata (nibabel image/header, mapping, None).
        label: Name of the volume, used in log messages.

    Returns:
        The affine as a float64 (4, 4) array, or None if no valid affine
        can be built. Never raises.
    """
    try:
        encoding = select_encoding(as_header_metadata(header))
        if encoding is None:
            logger.info(f"No valid affine transformation found in the {label} header.")
            return None
        affine = encoding.to_affine()
    except Exception as e:
        logger.warning(f"Could not decode the {label} affine: {e}")
        return None

    logger.debug(f"Decoded {label} affine from {encoding.tag}:\n{affine}")
    return affine


def describe_affine_source(header: Any) -> Optional[str]:
    """Returns 'sform', 'qform' or 'transform' for the source decode_affine would use, else None."""
    try:
        encoding = select_encoding(as_header_metadata(header))
        if encoding is None:
            return None
        encoding.to_affine()
    except Exception as e:
        logger.debug(f"No usable affine source: {e}")
        return None
    return encoding.tag
