"""
Effect Catalog Module
Selectable makeup effects and the per-product compositing parameters
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import config
from segmentation import Region


logger = logging.getLogger(__name__)


class EffectType(Enum):
    LIPSTICK = "lipstick"
    FOUNDATION = "foundation"
    BLUSH = "blush"
    EYESHADOW = "eyeshadow"

    @classmethod
    def parse(cls, value) -> Optional["EffectType"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def product_name(self) -> str:
        return self.value.title()


class BlendMode(Enum):
    MULTIPLY = "multiply"
    OVERLAY = "overlay"
    NORMAL = "normal"


@dataclass(frozen=True)
class BlendSpec:
    blur_radius: float
    blend_mode: BlendMode
    opacity_multiplier: float
    full_frame: bool = False

    def __post_init__(self):
        if self.blur_radius < 0:
            raise ValueError("blur_radius must be non-negative")
        if not 0.0 < self.opacity_multiplier <= 1.0:
            raise ValueError("opacity_multiplier must be in (0, 1]")


@dataclass(frozen=True)
class Effect:
    effect_id: str
    display_name: str
    effect_type: EffectType
    color: Tuple[int, int, int]


EFFECT_REGIONS: Dict[EffectType, Tuple[Region, ...]] = {
    EffectType.LIPSTICK: (Region.LIP_OUTER,),
    EffectType.BLUSH: (Region.CHEEK_LEFT, Region.CHEEK_RIGHT),
    EffectType.EYESHADOW: (Region.EYE_LEFT, Region.EYE_RIGHT),
    EffectType.FOUNDATION: (Region.FULL_FRAME,),
}


def blend_spec_from_settings(settings) -> BlendSpec:
    return BlendSpec(
        blur_radius=settings["blur_radius"],
        blend_mode=BlendMode(settings["blend_mode"]),
        opacity_multiplier=settings["opacity_multiplier"],
        full_frame=settings.get("full_frame", False),
    )


class EffectCatalog:
    """
    Read-only table of effects, blend specs and effect regions

    Entries are fixed at construction; nothing is added or removed later.
    """

    def __init__(self, effects, blend_specs: Dict[EffectType, BlendSpec]):
        self._effects: Dict[str, Effect] = {}
        for effect in effects:
            if effect.effect_id in self._effects:
                raise ValueError(f"Duplicate effect id: {effect.effect_id}")
            self._effects[effect.effect_id] = effect

        missing = [t.value for t in EffectType if t not in blend_specs]
        if missing:
            raise ValueError(f"Missing blend specs for: {', '.join(missing)}")

        self._blend_specs = dict(blend_specs)

    def __len__(self):
        return len(self._effects)

    def __iter__(self):
        return iter(self._effects.values())

    def lookup(self, effect_id) -> Optional[Effect]:
        effect = self._effects.get(effect_id)
        if effect is None:
            logger.warning("Unknown effect id: %r", effect_id)
        return effect

    def effects_by_type(self, effect_type: EffectType) -> Tuple[Effect, ...]:
        return tuple(e for e in self._effects.values() if e.effect_type is effect_type)

    def blend_spec_for(self, effect_type: EffectType) -> BlendSpec:
        return self._blend_specs[effect_type]

    def regions_for(self, effect_type: EffectType) -> Tuple[Region, ...]:
        return EFFECT_REGIONS[effect_type]


def default_catalog(blend_overrides: Optional[Dict[EffectType, BlendSpec]] = None) -> EffectCatalog:
    """Build the catalog from the shade tables and blend settings in config"""
    effects = []
    blend_specs = {}

    for product in config.PRODUCTS:
        effect_type = EffectType.parse(product)
        for effect_id, (display_name, rgb) in config.get_shades_for_product(product).items():
            effects.append(Effect(effect_id, display_name, effect_type, tuple(rgb)))
        blend_specs[effect_type] = blend_spec_from_settings(config.BLEND_SETTINGS[product])

    if blend_overrides:
        blend_specs.update(blend_overrides)

    return EffectCatalog(effects, blend_specs)
