"""
LabelSense AI - Streamlit Application
Detects defects on label images and tracks session statistics.
"""
import logging
import time

import streamlit as st

from src import config, defect_stats
from src.errors import FileReadError, LabelSenseError
from src.image_handler import ImageUploadHandler
from src.inference import create_client
from src.models import SessionState
from src.report import png_bytes, report_filename, report_json
from src.session import PerfectLabelNotice, run_analysis, start_processing
from src.visualization import DetectionVisualizer

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

# Configure Streamlit page
st.set_page_config(
    page_title="LabelSense AI",
    page_icon="🛡️",
    layout="wide",
    initial_sidebar_state="collapsed"
)


@st.cache_resource
def load_client():
    """One inference client per server process."""
    return create_client()


def get_state() -> SessionState:
    if 'labelsense_state' not in st.session_state:
        st.session_state.labelsense_state = SessionState()
        st.session_state.labelsense_notice = PerfectLabelNotice()
        st.session_state.labelsense_file_id = None
        st.session_state.labelsense_filename = 'image.png'
    return st.session_state.labelsense_state


def set_state(state: SessionState) -> None:
    st.session_state.labelsense_state = state


def submit_upload(state: SessionState, uploaded_file) -> None:
    """Read the file and enter processing; the next run does the analysis."""
    try:
        image_bytes = ImageUploadHandler.read_upload(uploaded_file)
    except FileReadError as e:
        logger.warning("Rejected upload %s: %s", getattr(uploaded_file, 'name', None), e)
        st.error(f"❌ {e}")
        return

    st.session_state.labelsense_filename = uploaded_file.name
    set_state(start_processing(state, image_bytes))
    st.rerun()


def render_header(state: SessionState) -> None:
    col_title, col_total, col_export = st.columns([4, 1, 1])
    with col_title:
        st.title("🛡️ LabelSense AI")
    with col_total:
        st.metric("Total Analyzed", state.total_analyzed)
    with col_export:
        st.download_button(
            label="📥 Export Report",
            data=report_json(state),
            file_name=report_filename('report', 'json'),
            mime="application/json",
            disabled=state.total_analyzed == 0,
        )


def render_upload_panel(state: SessionState, visualizer: DetectionVisualizer) -> None:
    st.subheader("📤 Upload Label Image")

    uploaded_file = st.file_uploader(
        "Choose Image",
        disabled=state.processing,
        help=f"Any image format Pillow can read "
             f"(max {config.MAX_FILE_SIZE // 1024 // 1024}MB)",
    )

    analyze_clicked = st.button(
        "Processing..." if state.processing else "Analyze",
        disabled=state.processing or uploaded_file is None,
        type="primary",
    )

    if not state.processing and uploaded_file is not None:
        # A newly selected file starts analysis right away; Analyze re-runs it
        is_new_file = uploaded_file.file_id != st.session_state.labelsense_file_id
        if is_new_file or analyze_clicked:
            st.session_state.labelsense_file_id = uploaded_file.file_id
            submit_upload(state, uploaded_file)

    if state.processing:
        with st.spinner("🔄 Analyzing label..."):
            new_state = run_analysis(state, load_client(), st.session_state.labelsense_filename)
        set_state(new_state)
        st.rerun()

    if state.error:
        st.error(f"❌ {state.error}")

    if not state.has_image:
        st.info("👆 Upload a label image to start the analysis")
        return

    try:
        image = ImageUploadHandler.decode(state.image_bytes)
    except LabelSenseError as e:
        st.error(f"❌ {e}")
        return

    annotated = visualizer.render(image, state.detections)
    st.image(annotated, caption="Detection Result", width='stretch')

    with st.expander("📋 Image info"):
        image_info = ImageUploadHandler.get_image_info(image, state.image_bytes)
        col_info1, col_info2 = st.columns(2)
        with col_info1:
            st.write(f"**Size:** {image_info['width']} × {image_info['height']}")
            st.write(f"**Color mode:** {image_info['color_mode']}")
        with col_info2:
            st.write(f"**File size:** {image_info['file_size'] / 1024 / 1024:.2f} MB")
            st.write(f"**Format:** {image_info['format']}")

    st.download_button(
        label="💾 Download annotated image",
        data=png_bytes(annotated),
        file_name=report_filename('annotated', 'png'),
        mime="image/png",
    )

    notice: PerfectLabelNotice = st.session_state.labelsense_notice
    notice.on_state(state)
    if notice.visible:
        placeholder = st.empty()
        placeholder.success("🛡️ **Perfect Label!** No defects detected in this label.")
        # Hide timer for the notice; the results column is already drawn
        time.sleep(notice.remaining)
        notice.hide(state.result_id)
        placeholder.empty()


def render_results_panel(state: SessionState, visualizer: DetectionVisualizer) -> None:
    st.subheader("📊 Analysis Results")

    st.image(visualizer.create_confidence_gauge(state.confidence), caption="Confidence")
    st.image(visualizer.create_stats_donut(state.stats), caption="Outcomes")

    columns = st.columns(len(state.stats))
    for column, stat in zip(columns, state.stats):
        with column:
            st.metric(
                stat.name,
                stat.value,
                help=f"Count: {stat.value} ({defect_stats.share(stat, state.total_analyzed):.1f}%)",
            )

    if state.has_image:
        with st.expander("📋 Detection details"):
            if not state.detections:
                st.write("No regions returned for this label.")
            for i, detection in enumerate(state.detections):
                kind = detection.label if detection.is_defect else "Clean region"
                st.write(f"  {i + 1}. {kind}, center ({detection.x_center:.3f}, "
                         f"{detection.y_center:.3f}), size {detection.width:.3f} × {detection.height:.3f}")


def main():
    """Main application entry point."""
    state = get_state()
    visualizer = DetectionVisualizer()

    with st.sidebar:
        st.header("🎛️ Backend")
        st.write(f"**Inference:** {config.INFERENCE_MODE}")
        if config.INFERENCE_MODE == 'http':
            st.write(f"**Service:** {config.API_URL}{config.PREDICT_PATH}")
        else:
            st.warning("Simulated results, not a real detection")

        st.subheader("🎨 Legend")
        st.markdown("🟥 **Type 1 Defect**")
        st.markdown("🟧 **Type 2 Defect**")
        st.markdown("🟩 **Perfect Label**")

    render_header(state)

    col1, col2 = st.columns([2, 1])
    # Results first: the upload panel may block while the notice is up
    with col2:
        render_results_panel(state, visualizer)
    with col1:
        render_upload_panel(state, visualizer)


if __name__ == "__main__":
    main()
