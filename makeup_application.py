"""
Makeup Application Module
Composites the selected color onto landmark-driven facial regions with realistic blending
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

import config
from catalog import BlendMode, default_catalog
from segmentation import (
    create_full_frame_mask,
    create_region_mask,
    region_polygon,
    validate_region_registry,
)
from selection import Selection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositeRequest:
    base_image: np.ndarray
    landmarks: Optional[np.ndarray]
    selection: Selection
    intensity: int
    sequence: int = 0


@dataclass(frozen=True)
class CompositeResult:
    image: np.ndarray
    approximate: bool = False
    sequence: int = 0


class MakeupCompositor:
    """
    Renders one selection onto a base image

    Every call starts from a fresh copy of the base image, so the output
    depends only on the request.
    """

    def __init__(
        self,
        catalog=None,
        fallback_opacity=config.FALLBACK_OPACITY_MULTIPLIER,
        landmark_count=config.LANDMARK_COUNT,
    ):
        validate_region_registry(landmark_count)

        self.catalog = catalog if catalog is not None else default_catalog()
        self.fallback_opacity = fallback_opacity
        self.landmark_count = landmark_count

    def composite(self, request: CompositeRequest) -> CompositeResult:
        """
        Apply the request's selection to its base image

        Args:
            request: CompositeRequest with BGR base image, optional landmarks,
                selection and intensity (0-100)

        Returns:
            CompositeResult holding a new BGR image of the same size
        """
        result = request.base_image.copy()

        if request.selection is None:
            return CompositeResult(result, approximate=False, sequence=request.sequence)

        color_bgr = config.rgb_to_bgr(request.selection.color)
        effect_type = request.selection.effect_type

        if request.landmarks is None:
            result = self._apply_fallback(result, color_bgr, request.intensity)
            return CompositeResult(result, approximate=True, sequence=request.sequence)

        landmarks = self._as_landmark_array(request.landmarks)
        blend_spec = self.catalog.blend_spec_for(effect_type)
        opacity = self._clamp_opacity(request.intensity / 100.0 * blend_spec.opacity_multiplier)

        logger.debug(
            "Compositing %s at opacity %.3f (%s)",
            effect_type.value, opacity, blend_spec.blend_mode.value,
        )

        h, w = result.shape[:2]

        if blend_spec.full_frame:
            mask = create_full_frame_mask(result.shape)
            result = self.apply_makeup(result, mask, color_bgr, opacity, blend_spec.blend_mode)
        else:
            for region in self.catalog.regions_for(effect_type):
                polygon = region_polygon(region, landmarks, w, h)
                mask = create_region_mask(result.shape, polygon, blend_spec.blur_radius)
                result = self.apply_makeup(result, mask, color_bgr, opacity, blend_spec.blend_mode)

        return CompositeResult(result, approximate=False, sequence=request.sequence)

    def _as_landmark_array(self, landmarks):
        points = np.asarray(landmarks, dtype=np.float64)

        if points.ndim != 2 or points.shape[1] < 2:
            raise ValueError(f"Landmarks must be an (N, 2) array, got shape {points.shape}")
        if points.shape[0] < self.landmark_count:
            raise ValueError(
                f"Expected {self.landmark_count} landmarks, got {points.shape[0]}"
            )

        return points

    @staticmethod
    def _clamp_opacity(opacity):
        return float(min(max(opacity, 0.0), 1.0))

    def _apply_fallback(self, image, color_bgr, intensity):
        """
        Tint the whole frame when no landmarks are available

        Uses plain alpha blending at a reduced flat opacity; no blur and no
        blend-mode variation.
        """
        opacity = self._clamp_opacity(intensity / 100.0 * self.fallback_opacity)
        mask = create_full_frame_mask(image.shape)

        logger.debug("No landmarks, applying whole-frame tint at opacity %.3f", opacity)

        return self.apply_makeup(image, mask, color_bgr, opacity, BlendMode.NORMAL)

    def apply_makeup(self, image, mask, color_bgr, alpha, blend_mode=BlendMode.MULTIPLY):
        """
        Apply a flat color to image through a mask

        Args:
            image: BGR image (OpenCV format)
            mask: float32 mask in [0, 1]
            color_bgr: Tuple (B, G, R) 0-255
            alpha: Blend strength 0-1
            blend_mode: BlendMode

        Returns:
            New BGR image with the color applied
        """
        base = image.astype(np.float32)
        color = np.asarray(color_bgr, dtype=np.float32).reshape(1, 1, 3)

        if blend_mode is BlendMode.MULTIPLY:
            blended = self._blend_multiply(base, color)
        elif blend_mode is BlendMode.OVERLAY:
            blended = self._blend_overlay(base, color)
        else:
            blended = self._blend_normal(base, color)

        weight = (alpha * mask.astype(np.float32))[:, :, np.newaxis]
        result = base * (1.0 - weight) + blended * weight

        return np.clip(np.rint(result), 0, 255).astype(np.uint8)

    def _blend_normal(self, base, color):
        return np.broadcast_to(color, base.shape)

    def _blend_multiply(self, base, color):
        """Multiply blending (darkens - good for lipstick, blush, eyeshadow)"""
        return base * color / 255.0

    def _blend_overlay(self, base, color):
        """Overlay blending (preserves highlights and shadows)"""
        return np.where(
            base < 127.5,
            2.0 * base * color / 255.0,
            255.0 - 2.0 * (255.0 - base) * (255.0 - color) / 255.0,
        )
