import numpy as np
import pytest

from catalog import BlendMode, BlendSpec, EffectType, default_catalog
from makeup_application import CompositeRequest, MakeupCompositor
from segmentation import MalformedRegionError, Region
from selection import Override, SelectionState
from conftest import IMAGE_SIZE, distance_map, region_center_px


def render(compositor, image, landmarks, selection, intensity):
    request = CompositeRequest(image, landmarks, selection, intensity)
    return compositor.composite(request)


def changed_pixels(a, b):
    return np.any(a != b, axis=2)


@pytest.fixture
def state(catalog):
    return SelectionState(catalog)


def test_no_selection_returns_identical_copy(compositor, base_image, landmarks):
    result = render(compositor, base_image, landmarks, None, 80)

    assert np.array_equal(result.image, base_image)
    assert result.image is not base_image
    assert result.approximate is False


def test_composite_is_deterministic(compositor, base_image, landmarks, state):
    selection = state.set_preset("blush-pink")

    first = render(compositor, base_image, landmarks, selection, 64)
    second = render(compositor, base_image, landmarks, selection, 64)

    assert first.image.tobytes() == second.image.tobytes()


def test_base_image_is_never_mutated(compositor, base_image, landmarks, state):
    original = base_image.copy()
    base_image.setflags(write=False)

    render(compositor, base_image, landmarks, state.set_preset("foundation-light"), 100)
    render(compositor, base_image, None, state.set_preset("lipstick-red"), 100)

    assert np.array_equal(base_image, original)


def test_result_keeps_dimensions(compositor, landmarks, state):
    image = np.full((300, 500, 3), 128, dtype=np.uint8)

    result = render(compositor, image, landmarks, state.set_preset("eyeshadow-purple"), 50)

    assert result.image.shape == (300, 500, 3)
    assert result.image.dtype == np.uint8


def test_lipstick_scenario(compositor, flat_image, landmarks, state):
    selection = state.set_preset("lipstick-red")

    result = render(compositor, flat_image, landmarks, selection, 50)

    # multiply at 0.5 * 0.5 = 25% opacity: 200 * 0.75 + 200 * c / 255 * 0.25
    cx, cy = region_center_px(Region.LIP_OUTER)
    b, g, r = (int(v) for v in result.image[cy, cx])
    assert b == pytest.approx(162, abs=1)
    assert g == pytest.approx(154, abs=1)
    assert r == pytest.approx(193, abs=1)

    for y, x in ((0, 0), (0, IMAGE_SIZE - 1), (IMAGE_SIZE - 1, 0), (IMAGE_SIZE - 1, IMAGE_SIZE - 1)):
        assert np.array_equal(result.image[y, x], flat_image[y, x])


def test_lipstick_stays_inside_lip_mask(compositor, base_image, landmarks, state):
    result = render(compositor, base_image, landmarks, state.set_preset("lipstick-berry"), 100)

    changed = changed_pixels(result.image, base_image)
    center = region_center_px(Region.LIP_OUTER)
    # lip radius 24px plus the 12px reach of a sigma-4 blur
    assert not np.any(changed & (distance_map(center) > 24 + 12 + 2))
    assert changed[center[1], center[0]]

    for region in (Region.CHEEK_LEFT, Region.CHEEK_RIGHT, Region.EYE_LEFT, Region.EYE_RIGHT):
        region_area = distance_map(region_center_px(region)) <= 20
        assert not np.any(changed & region_area)


def test_paired_regions_get_both_sides(compositor, base_image, landmarks, state):
    result = render(compositor, base_image, landmarks, state.set_preset("blush-pink"), 100)

    changed = changed_pixels(result.image, base_image)
    for region in (Region.CHEEK_LEFT, Region.CHEEK_RIGHT):
        x, y = region_center_px(region)
        assert changed[y, x]

    lip_x, lip_y = region_center_px(Region.LIP_OUTER)
    assert not changed[lip_y, lip_x]


def test_paired_regions_are_mirror_identical(compositor, flat_image, landmarks, state):
    result = render(compositor, flat_image, landmarks, state.set_preset("eyeshadow-bronze"), 90)

    left = region_center_px(Region.EYE_LEFT)
    right = region_center_px(Region.EYE_RIGHT)
    left_pixel = result.image[left[1], left[0]].astype(int)
    right_pixel = result.image[right[1], right[0]].astype(int)
    # vertex rounding may differ by a pixel between the two sides
    assert np.all(np.abs(left_pixel - right_pixel) <= 1)
    assert not np.array_equal(result.image[left[1], left[0]], flat_image[0, 0])


def test_intensity_is_monotonic(compositor, base_image, landmarks, state):
    """Coarse intensity steps strictly increase the deviation from the base."""
    selection = state.set_preset("lipstick-red")
    center = region_center_px(Region.LIP_OUTER)
    lip_area = distance_map(center) <= 16

    deviations = []
    for intensity in (0, 10, 25, 50, 75, 100):
        result = render(compositor, base_image, landmarks, selection, intensity)
        diff = np.abs(result.image.astype(np.int32) - base_image.astype(np.int32))
        deviations.append(diff[lip_area].sum())

    assert deviations[0] == 0
    assert all(a < b for a, b in zip(deviations, deviations[1:]))


@pytest.mark.parametrize("effect_id,regions", [
    ("blush-pink", (Region.CHEEK_LEFT, Region.CHEEK_RIGHT)),
    ("eyeshadow-purple", (Region.EYE_LEFT, Region.EYE_RIGHT)),
])
def test_unit_intensity_steps_never_reduce_deviation(
    compositor, base_image, landmarks, state, effect_id, regions
):
    """
    Every single intensity step is non-decreasing, but not strictly so.

    With small opacity multipliers the lowest steps move each channel by
    less than half a level, so 8-bit rounding leaves the output equal to
    the base (blush stays flat up to about intensity 3, eyeshadow up to 1).
    """
    selection = state.set_preset(effect_id)
    area = np.zeros(base_image.shape[:2], dtype=bool)
    for region in regions:
        area |= distance_map(region_center_px(region)) <= 14

    deviations = []
    for intensity in range(0, 101):
        result = render(compositor, base_image, landmarks, selection, intensity)
        diff = np.abs(result.image.astype(np.int32) - base_image.astype(np.int32))
        deviations.append(diff[area].sum())

    assert deviations[0] == 0
    assert all(a <= b for a, b in zip(deviations, deviations[1:]))
    assert deviations[-1] > deviations[10] > 0


def test_full_intensity_saturates_at_multiplier(compositor, flat_image, landmarks, state):
    result = render(compositor, flat_image, landmarks, state.set_preset("lipstick-red"), 100)

    # opacity 0.5: 200 * 0.5 + 200 * c / 255 * 0.5
    cx, cy = region_center_px(Region.LIP_OUTER)
    expected = [100 + 200 * c / 255 * 0.5 for c in (60, 20, 220)]
    assert result.image[cy, cx].tolist() == pytest.approx(expected, abs=1)


def test_override_color_is_used(compositor, flat_image, landmarks, state):
    state.set_preset("lipstick-red")
    selection = state.set_override((0, 0, 255), EffectType.LIPSTICK, "Electric Blue")

    result = render(compositor, flat_image, landmarks, selection, state.intensity)

    cx, cy = region_center_px(Region.LIP_OUTER)
    b, g, r = (int(v) for v in result.image[cy, cx])
    # blue survives the multiply, red and green are darkened equally
    assert b == 200
    assert g == r < 200


def test_override_type_selects_regions(compositor, base_image, landmarks):
    selection = Override((255, 120, 150), EffectType.BLUSH, "Rosy Glow")

    result = render(compositor, base_image, landmarks, selection, 75)

    changed = changed_pixels(result.image, base_image)
    x, y = region_center_px(Region.CHEEK_LEFT)
    lip_x, lip_y = region_center_px(Region.LIP_OUTER)
    assert changed[y, x]
    assert not changed[lip_y, lip_x]


def test_foundation_overlays_whole_frame(compositor, landmarks, state):
    image = np.full((IMAGE_SIZE, IMAGE_SIZE, 3), 100, dtype=np.uint8)

    result = render(compositor, image, landmarks, state.set_preset("foundation-light"), 50)

    # overlay at 0.5 * 0.2 = 10% opacity of 2 * 100 * c / 255
    assert np.all(result.image == result.image[0, 0])
    assert result.image[0, 0].tolist() == pytest.approx([106, 107, 110], abs=1)


def test_foundation_can_be_masked_to_face_oval(landmarks, state):
    masked = BlendSpec(15, BlendMode.OVERLAY, 0.2, full_frame=False)
    compositor = MakeupCompositor(default_catalog({EffectType.FOUNDATION: masked}))
    image = np.full((IMAGE_SIZE, IMAGE_SIZE, 3), 100, dtype=np.uint8)

    result = render(compositor, image, landmarks, state.set_preset("foundation-medium"), 100)

    assert not np.array_equal(result.image[200, 200], image[200, 200])
    assert np.array_equal(result.image[0, 0], image[0, 0])


def test_fallback_tints_whole_frame(compositor, state):
    image = np.zeros((IMAGE_SIZE, IMAGE_SIZE, 3), dtype=np.uint8)
    image[:] = (100, 150, 200)

    result = render(compositor, image, None, state.set_preset("lipstick-red"), 60)

    # plain alpha blend at 0.6 * 0.5 = 30% toward BGR (60, 20, 220)
    expected = [100 * 0.7 + 60 * 0.3, 150 * 0.7 + 20 * 0.3, 200 * 0.7 + 220 * 0.3]
    assert result.approximate is True
    assert np.all(result.image == result.image[0, 0])
    assert result.image[0, 0].tolist() == pytest.approx(expected, abs=1)


def test_fallback_multiplier_is_characterized(compositor):
    assert compositor.fallback_opacity == 0.5


def test_fallback_ignores_blend_spec(compositor, flat_image, state):
    lipstick = render(compositor, flat_image, None, Override((10, 200, 90), EffectType.LIPSTICK), 80)
    foundation = render(compositor, flat_image, None, Override((10, 200, 90), EffectType.FOUNDATION), 80)

    assert np.array_equal(lipstick.image, foundation.image)


def test_fallback_and_regional_coverage_differ(compositor, base_image, landmarks, state):
    selection = state.set_preset("lipstick-coral")

    approximate = render(compositor, base_image, None, selection, 70)
    regional = render(compositor, base_image, landmarks, selection, 70)

    assert changed_pixels(approximate.image, base_image).mean() > 0.95
    assert changed_pixels(regional.image, base_image).mean() < 0.05


def test_clear_restores_base(compositor, base_image, landmarks, state):
    state.set_preset("eyeshadow-purple")
    state.set_intensity(100)
    state.clear()

    result = render(compositor, base_image, landmarks, state.current(), state.intensity)

    assert np.array_equal(result.image, base_image)


def test_short_landmark_set_rejected(compositor, base_image, landmarks, state):
    with pytest.raises(ValueError):
        render(compositor, base_image, landmarks[:100], state.set_preset("lipstick-red"), 50)


def test_registry_checked_at_init():
    with pytest.raises(MalformedRegionError):
        MakeupCompositor(landmark_count=68)


def test_custom_fallback_opacity(flat_image, catalog, state):
    compositor = MakeupCompositor(catalog, fallback_opacity=1.0)

    result = render(compositor, flat_image, None, state.set_preset("lipstick-red"), 100)

    assert result.image[0, 0].tolist() == [60, 20, 220]
