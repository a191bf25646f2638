"""
Segmentation Module
Named facial regions over the MediaPipe face mesh and soft-edged region masks
"""

import logging
import math
from enum import Enum
from typing import Dict, Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class MalformedRegionError(ValueError):
    """A region references landmarks the detector does not produce."""


class Region(Enum):
    LIP_OUTER = "lip_outer"
    CHEEK_LEFT = "cheek_left"
    CHEEK_RIGHT = "cheek_right"
    EYE_LEFT = "eye_left"
    EYE_RIGHT = "eye_right"
    FULL_FRAME = "full_frame"


# Ordered so that each list walks the region outline once
REGION_INDICES: Dict[Region, Tuple[int, ...]] = {
    Region.LIP_OUTER: (
        61, 146, 91, 181, 84, 17, 314, 405, 321, 375,
        291, 409, 270, 269, 267, 0, 37, 39, 40, 185,
    ),
    Region.CHEEK_LEFT: (116, 117, 118, 119, 100, 142, 36, 205, 206),
    Region.CHEEK_RIGHT: (345, 346, 347, 348, 329, 371, 266, 425, 426),
    Region.EYE_LEFT: (
        33, 7, 163, 144, 145, 153, 154, 155,
        133, 173, 157, 158, 159, 160, 161, 246,
    ),
    Region.EYE_RIGHT: (
        362, 382, 381, 380, 374, 373, 390, 249,
        263, 466, 388, 387, 386, 385, 384, 398,
    ),
    # Face oval; only used when foundation masking is switched on
    Region.FULL_FRAME: (
        10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288,
        397, 365, 379, 378, 400, 377, 152, 148, 176, 149, 150, 136,
        172, 58, 132, 93, 234, 127, 162, 21, 54, 103, 67, 109,
    ),
}


def region_indices(region: Region) -> Tuple[int, ...]:
    return REGION_INDICES[region]


def validate_region_registry(landmark_count: int) -> None:
    """
    Check every region against the detector's landmark cardinality

    Args:
        landmark_count: Number of landmarks the detector produces

    Raises:
        MalformedRegionError: if a region is too short or out of range
    """
    for region in Region:
        indices = REGION_INDICES.get(region)
        if indices is None or len(indices) < 3:
            raise MalformedRegionError(f"Region {region.name} needs at least 3 landmarks")

        bad = [i for i in indices if i < 0 or i >= landmark_count]
        if bad:
            raise MalformedRegionError(
                f"Region {region.name} references landmarks {bad} "
                f"outside a {landmark_count}-point landmark set"
            )

    logger.debug("Region registry valid for %d landmarks", landmark_count)


def region_polygon(region: Region, landmarks: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resolve a region against normalized landmarks into a pixel polygon

    Args:
        region: Region to resolve
        landmarks: (N, 2+) array of normalized coordinates
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        (K, 2) int32 polygon in pixel space
    """
    points = landmarks[list(region_indices(region)), :2].astype(np.float64)
    points[:, 0] *= width
    points[:, 1] *= height

    return np.round(points).astype(np.int32)


def blur_kernel_size(blur_radius: float) -> int:
    return 2 * int(math.ceil(3 * blur_radius)) + 1


def create_region_mask(image_shape, polygon, blur_radius=0):
    """
    Rasterize a soft-edged mask for one polygon

    Args:
        image_shape: Shape of the target image
        polygon: (K, 2) int32 pixel polygon
        blur_radius: Gaussian sigma in pixels used to soften the edge

    Returns:
        float32 mask in [0, 1]
    """
    h, w = image_shape[:2]
    mask = np.zeros((h, w), dtype=np.uint8)

    cv2.fillPoly(mask, [polygon.reshape(-1, 1, 2)], 255)

    mask = mask.astype(np.float32) / 255.0

    if blur_radius > 0:
        ksize = blur_kernel_size(blur_radius)
        mask = cv2.GaussianBlur(mask, (ksize, ksize), blur_radius)

    return np.clip(mask, 0.0, 1.0)


def create_full_frame_mask(image_shape):
    h, w = image_shape[:2]
    return np.ones((h, w), dtype=np.float32)
