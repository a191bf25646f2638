"""
Image I/O
Turns uploaded photos into try-on base images and previews back into PNG bytes
"""

import io

import cv2
import numpy as np
from PIL import Image, ImageOps

import config


class InvalidImageError(ValueError):
    """The photo cannot be used as a try-on base image."""


def pil_to_cv(pil_image):
    # Honor camera orientation and drop any alpha channel
    pil_image = ImageOps.exif_transpose(pil_image)
    rgb_array = np.array(pil_image.convert('RGB'))
    return cv2.cvtColor(rgb_array, cv2.COLOR_RGB2BGR)


def cv_to_pil(cv_image):
    return Image.fromarray(cv2.cvtColor(cv_image, cv2.COLOR_BGR2RGB))


def encode_png(cv_image):
    buf = io.BytesIO()
    cv_to_pil(cv_image).save(buf, format='PNG')
    return buf.getvalue()


def fit_base_image(image,
                   max_size=config.MAX_IMAGE_SIZE,
                   min_size=config.MIN_IMAGE_SIZE,
                   max_upscale=config.MAX_UPSCALE):
    """
    Scale a BGR photo into the working size range

    Large photos shrink to fit inside max_size. Photos under min_size grow
    to reach it, but only by up to max_upscale.

    Raises:
        InvalidImageError: for non-color images or photos too small to upscale
    """
    if image is None or image.ndim != 3 or image.shape[2] != 3:
        raise InvalidImageError("Image must be color (3 channels)")

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise InvalidImageError("Image is empty")

    shrink = min(max_size[0] / w, max_size[1] / h)
    if shrink < 1.0:
        size = (max(1, int(w * shrink)), max(1, int(h * shrink)))
        return cv2.resize(image, size, interpolation=cv2.INTER_AREA)

    grow = max(min_size[0] / w, min_size[1] / h)
    if grow > max_upscale:
        raise InvalidImageError(
            f"Image too small (minimum {int(np.ceil(min_size[0] / max_upscale))}x"
            f"{int(np.ceil(min_size[1] / max_upscale))} pixels)"
        )
    if grow > 1.0:
        size = (int(round(w * grow)), int(round(h * grow)))
        return cv2.resize(image, size, interpolation=cv2.INTER_CUBIC)

    return image


def load_photo(source):
    """Decode an uploaded file (path or file-like) into a fitted BGR base image"""
    try:
        with Image.open(source) as pil_image:
            cv_image = pil_to_cv(pil_image)
    except (OSError, Image.DecompressionBombError) as e:
        raise InvalidImageError(f"Could not read image: {e}") from e

    return fit_base_image(cv_image)


def before_after(before, after, labels=("Before", "After"), gap=8):
    """Place two same-sized previews next to each other with captions burned in"""
    if before.shape != after.shape:
        raise ValueError(f"Preview shapes differ: {before.shape} vs {after.shape}")

    h = before.shape[0]
    divider = np.full((h, gap, 3), 255, dtype=np.uint8)
    panels = [before.copy(), after.copy()]

    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = max(0.5, h / 800)
    for panel, label in zip(panels, labels):
        (text_w, _), _ = cv2.getTextSize(label, font, scale, 2)
        origin = ((panel.shape[1] - text_w) // 2, int(30 * scale / 0.8))
        # Dark outline keeps the caption readable on light skin
        cv2.putText(panel, label, origin, font, scale, (0, 0, 0), 4, cv2.LINE_AA)
        cv2.putText(panel, label, origin, font, scale, (255, 255, 255), 2, cv2.LINE_AA)

    return np.hstack([panels[0], divider, panels[1]])
