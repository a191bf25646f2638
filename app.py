"""
Virtual Makeup Try-On
Main Streamlit Application - landmark-driven preview with adjustable intensity
"""

import concurrent.futures
import hashlib
import logging

import streamlit as st
from dotenv import load_dotenv

load_dotenv()

from config import (
    APP_TITLE, APP_ICON, VERSION,
    PRODUCTS, MIN_INTENSITY, MAX_INTENSITY,
    DETECTION_TIMEOUT,
)
from catalog import EffectType
from face_detection import FaceLandmarkDetector
from makeup_application import MakeupCompositor
from recommendations import RecommendationClient, RecommendationError, SkinProfile
from selection import Override, SelectionState
from session import TryOnSession
from utils import InvalidImageError, before_after, cv_to_pil, encode_png, load_photo


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


st.set_page_config(
    page_title=APP_TITLE,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def load_models():
    """Load the detector and compositor once per server process"""
    detector = FaceLandmarkDetector()
    compositor = MakeupCompositor()
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="landmarks")
    return detector, compositor, executor


try:
    detector, compositor, executor = load_models()
except Exception as e:
    st.error(f"❌ Error loading models: {str(e)}")
    st.stop()

catalog = compositor.catalog


# Initialize session state
if 'selection' not in st.session_state:
    st.session_state.selection = SelectionState(catalog)
if 'tryon' not in st.session_state:
    st.session_state.tryon = None
if 'image_digest' not in st.session_state:
    st.session_state.image_digest = None
if 'recommendations' not in st.session_state:
    st.session_state.recommendations = []
if 'intensity' not in st.session_state:
    st.session_state.intensity = st.session_state.selection.intensity

selection = st.session_state.selection


def choose_preset(effect_id):
    selection.set_preset(effect_id)


def choose_override(rgb, effect_type, label):
    selection.set_override(rgb, effect_type, label)
    st.session_state.intensity = selection.intensity


def change_intensity():
    st.session_state.intensity = selection.set_intensity(st.session_state.intensity)


def clear_selection():
    selection.clear()


# ===== SIDEBAR CONTROLS =====
st.sidebar.title(f"{APP_ICON} Makeup Controls")
st.sidebar.markdown(f"**Version:** {VERSION}")
st.sidebar.markdown("---")

for product in PRODUCTS:
    effect_type = EffectType.parse(product)
    st.sidebar.markdown(f"**{product}**")
    columns = st.sidebar.columns(3)
    for idx, effect in enumerate(catalog.effects_by_type(effect_type)):
        columns[idx % 3].button(
            effect.display_name,
            key=f"preset_{effect.effect_id}",
            on_click=choose_preset,
            args=(effect.effect_id,),
            use_container_width=True,
        )

st.sidebar.markdown("---")

current = selection.current()
if current is not None:
    swatch_html = f"""
    <div style="
        background-color: rgb{tuple(current.color)};
        width: 100%;
        height: 40px;
        border-radius: 8px;
        border: 2px solid #ddd;
        margin: 10px 0;
    "></div>
    <p style="text-align: center; color: #666; font-size: 0.9em;">{current.label}</p>
    """
    st.sidebar.markdown(swatch_html, unsafe_allow_html=True)

    st.sidebar.slider(
        "💪 Intensity",
        min_value=MIN_INTENSITY,
        max_value=MAX_INTENSITY,
        key="intensity",
        on_change=change_intensity,
        help="Adjust makeup intensity (0 = subtle, 100 = bold)"
    )

    st.sidebar.button("Clear Filter", on_click=clear_selection, use_container_width=True)
else:
    st.sidebar.info("Pick a shade to start the try-on")

st.sidebar.markdown("---")
show_comparison = st.sidebar.checkbox("👁️ Show Before/After", value=True)


# ===== MAIN CONTENT =====
st.title(APP_TITLE)
st.markdown(
    "Upload a selfie and preview lipstick, blush, eyeshadow and foundation "
    "on your own face with adjustable intensity."
)
st.markdown("---")

col1, col2 = st.columns([1, 1])

# ===== LEFT COLUMN: IMAGE UPLOAD & RECOMMENDATIONS =====
with col1:
    st.subheader("📸 Upload Your Selfie")

    uploaded_file = st.file_uploader(
        "Choose a selfie...",
        type=['jpg', 'jpeg', 'png'],
        help="Upload a clear, front-facing photo for best results"
    )

    if st.checkbox("📷 Use Camera Instead"):
        camera_image = st.camera_input("Take a selfie")
        if camera_image:
            uploaded_file = camera_image

    if uploaded_file is not None:
        digest = hashlib.sha1(uploaded_file.getvalue()).hexdigest()

        if digest != st.session_state.image_digest:
            try:
                cv_image = load_photo(uploaded_file)
            except InvalidImageError as e:
                st.error(f"❌ Error loading image: {str(e)}")
                st.stop()

            if st.session_state.tryon is None:
                st.session_state.tryon = TryOnSession(
                    cv_image, compositor=compositor, selection=selection, detector=detector
                )
            else:
                st.session_state.tryon.replace_image(cv_image)

            st.session_state.image_digest = digest
            st.session_state.tryon.start_detection(executor)

        tryon = st.session_state.tryon
        height, width = tryon.base_image.shape[:2]
        st.image(cv_to_pil(tryon.base_image), caption="Original Image", use_container_width=True)
        st.info(f"📏 Image size: {width} x {height} pixels")
    else:
        st.info("👆 Upload a selfie or use camera to get started")

    with st.expander("🔎 Find shades that suit me"):
        skin_tone = st.selectbox("Skin tone", ["fair", "light", "medium", "tan", "deep"], index=2)
        undertone = st.selectbox("Undertone", ["warm", "cool", "neutral"])
        concerns = st.multiselect(
            "Concerns", ["dryness", "oiliness", "uneven texture", "dark spots", "redness"]
        )
        product_types = st.multiselect(
            "Products",
            list(EffectType),
            format_func=lambda t: t.product_name,
            help="Only recommend these makeup products",
        )
        query = st.text_input("What are you looking for?", placeholder="everyday nude lipstick")

        if st.button("Get Recommendations", disabled=not (query or product_types)):
            try:
                client = RecommendationClient()
                with st.spinner("Finding shades..."):
                    st.session_state.recommendations = client.recommend(
                        SkinProfile(skin_tone, undertone, concerns), query, product_types
                    )
            except ValueError as e:
                st.warning(f"⚠️ Recommendations unavailable: {e}")
            except RecommendationError as e:
                st.error(f"❌ {e}")

        for idx, rec in enumerate(st.session_state.recommendations):
            st.markdown(f"**{rec.label}**")
            if rec.why_it_suits:
                st.caption(rec.why_it_suits)

            override = rec.as_override()
            if override is not None:
                st.button(
                    "💄 Try on",
                    key=f"try_on_{idx}",
                    on_click=choose_override,
                    args=override,
                )

# ===== RIGHT COLUMN: RESULTS =====
with col2:
    st.subheader("✨ Result")

    tryon = st.session_state.tryon

    if tryon is not None:
        if tryon.detection_pending:
            with st.spinner("Detecting facial features..."):
                try:
                    tryon.start_detection(executor).result(timeout=DETECTION_TIMEOUT)
                except concurrent.futures.TimeoutError:
                    logger.warning("Landmark detection still running, showing approximate preview")

        result = tryon.render()

        if result.approximate:
            st.warning(
                "⚠️ Approximate preview: no face landmarks were found, "
                "so the color is tinted over the whole photo."
            )

        if show_comparison:
            comparison = before_after(tryon.base_image, result.image)
            st.image(cv_to_pil(comparison), caption="Before & After Comparison", use_container_width=True)
        else:
            current = selection.current()
            caption_text = "Original" if current is None else f"{current.label} ({selection.intensity}%)"
            st.image(cv_to_pil(result.image), caption=caption_text, use_container_width=True)

        current = selection.current()
        if current is not None:
            source = "Recommendation" if isinstance(current, Override) else "Catalog"
            st.caption(f"{source}: {current.label} • {current.effect_type.product_name}")

        st.download_button(
            label="📥 Download Result",
            data=encode_png(result.image),
            file_name="tryon_result.png",
            mime="image/png",
            use_container_width=True
        )
    else:
        st.info("📸 Upload an image first to see results here")


# ===== FOOTER =====
st.markdown("---")
st.markdown(
    f"""
<div style="text-align: center; color: #666; padding: 20px;">
    <p><strong>💄 Virtual Makeup Try-On</strong></p>
    <p style="font-size: 0.9em;">Built with Streamlit, MediaPipe & OpenCV • Version {VERSION}</p>
</div>
""",
    unsafe_allow_html=True,
)
