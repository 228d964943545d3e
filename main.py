# -*- coding: utf-8 -*-

"""
BaseOverlay - Headless Runner

Resamples a moving NIfTI image onto the voxel grid of a base image.
"""

import os
import sys
import logging
import argparse
from typing import List, Optional

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

METHOD_CHOICES = ["nearest", "linear", "cubic", "quintic", "pchip", "spline"]


def _run_overlay(
    base_path: str,
    moving_path: str,
    output_path: str,
    method: str = "cubic",
    index_space: bool = False,
) -> None:
    """
    Loads both images, resamples the moving one onto the base grid and saves it.

    Args:
        base_path: Path to the base (reference) image.
        moving_path: Path to the moving (overlay) image.
        output_path: Path to the output NIfTI file (.nii.gz or .nii).
        method: Interpolation method name.
        index_space: Skip the header affines and stretch in index space.

    Raises:
        SystemExit: If an input is missing or resampling fails.
    """
    import numpy as np
    import nibabel as nib

    from baseoverlay_pkg.file_io import load_volume, save_volume
    from baseoverlay_pkg.logic import (
        describe_affine_source,
        overlay_to_base,
        resample_index_space,
    )

    for label, path in (("Base", base_path), ("Moving", moving_path)):
        if not os.path.isfile(path):
            logger.error(f"Error: {label} image not found: {path}")
            print(f"Error: {label} image not found: {path}", file=sys.stderr)
            sys.exit(1)

    print(f"Resampling: {moving_path} -> grid of {base_path}")
    logger.info(f"Headless overlay: {moving_path} onto {base_path} ({method})")

    try:
        base = load_volume(base_path)
        moving = load_volume(moving_path)

        if index_space:
            print("Using index-space resampling (header affines ignored).")
            result = resample_index_space(moving.data, base.data.shape, method)
        else:
            base_source = describe_affine_source(base.header) or "none"
            moving_source = describe_affine_source(moving.header) or "none"
            print(f"Affine sources: base={base_source}, moving={moving_source}")
            result = overlay_to_base(
                base.data, base.header, moving.data, moving.header, method
            )

        save_volume(result, base, output_path)

        nan_fraction = float(np.mean(np.isnan(result))) if result.size else 0.0
        print(f"Successfully saved: {output_path}")
        print(f"Grid shape: {result.shape}, Missing samples: {nan_fraction:.1%}")
        logger.info(f"Overlay saved: {output_path}")

    except FileNotFoundError as e:
        logger.error(f"Error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except nib.filebasedimages.ImageFileError as e:
        logger.error(f"Invalid NIfTI file: {e}")
        print(f"Error: Invalid NIfTI file: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Overlay failed: {e}", exc_info=True)
        print(f"Error: Overlay failed: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main function of the BaseOverlay runner.
    """
    parser = argparse.ArgumentParser(
        description="BaseOverlay - resample an overlay onto a base image grid"
    )
    parser.add_argument("base", help="Path to the base (reference) image (.nii, .nii.gz)")
    parser.add_argument("moving", help="Path to the moving (overlay) image (.nii, .nii.gz)")
    parser.add_argument(
        "-o",
        "--output",
        required=True,
        metavar="OUTPUT",
        help="Path of the resampled output image (.nii.gz or .nii).",
    )
    parser.add_argument(
        "--method",
        choices=METHOD_CHOICES,
        default="cubic",
        help="Interpolation method (default: cubic).",
    )
    parser.add_argument(
        "--index-space",
        dest="index_space",
        action="store_true",
        help="Ignore header affines and stretch the moving image to the base shape.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    _run_overlay(args.base, args.moving, args.output, args.method, args.index_space)
    sys.exit(0)


if __name__ == "__main__":
    main()
