"""
Configuration file for the Virtual Makeup Try-On
Contains all product shades, blend settings, constants, and settings
"""

import os


APP_TITLE = "✨ Virtual Makeup Try-On"
APP_ICON = "💄"
VERSION = "3.0.0"


MAX_IMAGE_SIZE = (1920, 1920)
MIN_IMAGE_SIZE = (400, 400)
# Small photos are upscaled to MIN_IMAGE_SIZE by at most this factor
MAX_UPSCALE = 2.0


DEFAULT_INTENSITY = 50
OVERRIDE_INTENSITY = 75
MIN_INTENSITY = 0
MAX_INTENSITY = 100

# Whole-frame tint strength used when no landmarks are available
FALLBACK_OPACITY_MULTIPLIER = 0.5


# MediaPipe FaceLandmarker: 468 mesh points + 10 iris points
LANDMARK_COUNT = 478

FACE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/1/face_landmarker.task"
)
FACE_MODEL_PATH = os.getenv("TRYON_FACE_MODEL_PATH", "models/face_landmarker.task")
DETECTION_TIMEOUT = 10.0


RECOMMENDATION_URL = os.getenv(
    "TRYON_RECOMMENDATION_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"
)
RECOMMENDATION_MODEL = os.getenv("TRYON_RECOMMENDATION_MODEL", "google/gemini-2.5-flash")
RECOMMENDATION_TIMEOUT = 30


# effect id -> (display name, RGB)
LIPSTICK_SHADES = {
    "lipstick-red": ("Bold Red", (220, 20, 60)),
    "lipstick-nude": ("Nude", (210, 140, 130)),
    "lipstick-pink": ("Pink Gloss", (255, 105, 180)),
    "lipstick-coral": ("Coral", (255, 127, 80)),
    "lipstick-berry": ("Berry", (135, 38, 87)),
    "lipstick-mauve": ("Mauve", (224, 176, 255)),
    "lipstick-brown": ("Brown", (160, 82, 45)),
}

FOUNDATION_SHADES = {
    "foundation-light": ("Light Foundation", (255, 220, 200)),
    "foundation-medium": ("Medium Foundation", (205, 170, 140)),
}

BLUSH_SHADES = {
    "blush-pink": ("Pink Blush", (255, 182, 193)),
}

EYESHADOW_SHADES = {
    "eyeshadow-bronze": ("Bronze", (205, 127, 50)),
    "eyeshadow-purple": ("Purple", (147, 112, 219)),
}


PRODUCTS = ["Lipstick", "Foundation", "Blush", "Eyeshadow"]


# Per-product compositing parameters. Foundation tints the whole frame.
BLEND_SETTINGS = {
    "Lipstick": {"blur_radius": 4, "blend_mode": "multiply", "opacity_multiplier": 0.5},
    "Foundation": {
        "blur_radius": 15,
        "blend_mode": "overlay",
        "opacity_multiplier": 0.2,
        "full_frame": True,
    },
    "Blush": {"blur_radius": 12, "blend_mode": "multiply", "opacity_multiplier": 0.35},
    "Eyeshadow": {"blur_radius": 8, "blend_mode": "multiply", "opacity_multiplier": 0.3},
}


def get_shades_for_product(product_name):
    if product_name == "Lipstick":
        return LIPSTICK_SHADES
    elif product_name == "Foundation":
        return FOUNDATION_SHADES
    elif product_name == "Blush":
        return BLUSH_SHADES
    elif product_name == "Eyeshadow":
        return EYESHADOW_SHADES
    else:
        return {}


def rgb_to_bgr(rgb_tuple):
    return (rgb_tuple[2], rgb_tuple[1], rgb_tuple[0])
