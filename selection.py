"""
Selection State Module
Tracks the active effect (preset, external override or nothing) and the intensity
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import config
from catalog import Effect, EffectType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Preset:
    effect: Effect

    @property
    def color(self) -> Tuple[int, int, int]:
        return self.effect.color

    @property
    def effect_type(self) -> EffectType:
        return self.effect.effect_type

    @property
    def label(self) -> str:
        return self.effect.display_name


@dataclass(frozen=True)
class Override:
    color: Tuple[int, int, int]
    effect_type: EffectType
    label: str = ""


# None means no effect is active
Selection = Optional[Union[Preset, Override]]


def clamp_intensity(value) -> int:
    value = float(value)
    if math.isnan(value):
        raise ValueError("Intensity must be a number")

    clamped = int(round(min(max(value, config.MIN_INTENSITY), config.MAX_INTENSITY)))
    if clamped != value:
        logger.warning("Intensity %r normalized to %d", value, clamped)
    return clamped


def normalize_color(rgb) -> Tuple[int, int, int]:
    r, g, b = (int(round(min(max(float(c), 0), 255))) for c in rgb)
    return (r, g, b)


class SelectionState:
    """
    Holds the current selection and intensity

    The most recent instruction wins: a preset replaces an override and an
    override replaces a preset. Only set_override and set_intensity change
    the intensity.
    """

    def __init__(self, catalog, intensity=config.DEFAULT_INTENSITY):
        self.catalog = catalog
        self._selection: Selection = None
        self._intensity = clamp_intensity(intensity)

    @property
    def intensity(self) -> int:
        return self._intensity

    def set_intensity(self, value) -> int:
        self._intensity = clamp_intensity(value)
        return self._intensity

    def set_preset(self, effect_id) -> Selection:
        effect = self.catalog.lookup(effect_id)
        self._selection = Preset(effect) if effect is not None else None
        return self._selection

    def set_override(self, rgb, effect_type, label="") -> Selection:
        parsed = EffectType.parse(effect_type)
        if parsed is None:
            logger.warning("Ignoring override with unsupported product type %r", effect_type)
            self._selection = None
            return None

        self._selection = Override(normalize_color(rgb), parsed, label or "")
        self._intensity = config.OVERRIDE_INTENSITY
        return self._selection

    def clear(self) -> Selection:
        self._selection = None
        return None

    def current(self) -> Selection:
        return self._selection
