import math
import os
import sys

import numpy as np
import pytest

# Ensure project root is on PYTHONPATH for tests
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from catalog import default_catalog  # noqa: E402
from makeup_application import MakeupCompositor  # noqa: E402
from segmentation import Region, region_indices  # noqa: E402

IMAGE_SIZE = 400

# Normalized (center_x, center_y, radius) of each synthetic region
REGION_LAYOUT = {
    Region.LIP_OUTER: (0.50, 0.70, 0.06),
    Region.CHEEK_LEFT: (0.30, 0.50, 0.05),
    Region.CHEEK_RIGHT: (0.70, 0.50, 0.05),
    Region.EYE_LEFT: (0.35, 0.35, 0.04),
    Region.EYE_RIGHT: (0.65, 0.35, 0.04),
    Region.FULL_FRAME: (0.50, 0.50, 0.30),
}


def make_landmarks(count=478):
    """Place each region's landmarks on a circle at a known position."""
    points = np.full((count, 3), 0.5)
    points[:, 2] = 0.0

    for region, (cx, cy, r) in REGION_LAYOUT.items():
        indices = region_indices(region)
        for k, idx in enumerate(indices):
            angle = 2 * math.pi * k / len(indices)
            points[idx, 0] = cx + r * math.cos(angle)
            points[idx, 1] = cy + r * math.sin(angle)

    return points


def region_center_px(region, size=IMAGE_SIZE):
    cx, cy, _ = REGION_LAYOUT[region]
    return int(round(cx * size)), int(round(cy * size))


def distance_map(center, size=IMAGE_SIZE):
    yy, xx = np.mgrid[0:size, 0:size]
    return np.hypot(xx - center[0], yy - center[1])


@pytest.fixture
def landmarks():
    return make_landmarks()


@pytest.fixture
def base_image():
    rng = np.random.default_rng(7)
    return rng.integers(60, 200, size=(IMAGE_SIZE, IMAGE_SIZE, 3), dtype=np.uint8)


@pytest.fixture
def flat_image():
    return np.full((IMAGE_SIZE, IMAGE_SIZE, 3), 200, dtype=np.uint8)


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def compositor(catalog):
    return MakeupCompositor(catalog)
