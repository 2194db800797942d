"""
Imbue — Streamlit Web Application.
Launch: streamlit run streamlit_app.py
"""

import streamlit as st
import plotly.graph_objects as go
import io
import json
from datetime import datetime

from imbue.engine import STRATEGIES, ImbueEngine, ImbueError
from imbue.sample import generate_sparse_series

# ──────────────────────────────────────
# Page Config
# ──────────────────────────────────────
st.set_page_config(
    page_title="Imbue — Sparse Series Gap-Filler",
    page_icon="📈",
    layout="wide",
)

for key, default in [
    ("engine", None),
    ("source", None),
    ("gap_report", None),
    ("filled", False),
]:
    if key not in st.session_state:
        st.session_state[key] = default

st.title("📈 Imbue")
st.caption("Gap-filler for sparse integer-indexed series")

# ──────────────────────────────────────
# Sidebar
# ──────────────────────────────────────
with st.sidebar:
    st.header("⚙️ Settings")
    strategy = st.selectbox("Strategy", STRATEGIES)
    max_span = st.number_input("Max axis span", value=1_000_000, min_value=1, step=1000)
    merge = st.checkbox("Export merged series", value=True)
    include_flags = st.checkbox("Include flags", value=True)

# ══════════════════════════════════════
# STEP 1: Upload
# ══════════════════════════════════════
st.header("📤 Step 1: Upload Series")

uploaded_file = st.file_uploader("Upload CSV", type=["csv"])
use_sample = st.checkbox("Use sample data for demo")

if use_sample and not uploaded_file:
    buf = io.StringIO()
    generate_sparse_series().to_csv(buf, index=False)
    buf.seek(0)
    uploaded_file = buf

if uploaded_file:
    source = (
        "sample" if isinstance(uploaded_file, io.StringIO)
        else (uploaded_file.name, uploaded_file.size)
    )
    source = (source, int(max_span))

    # Reruns keep the filled engine unless the input changed
    if source != st.session_state.source:
        engine = ImbueEngine(max_span=int(max_span))
        try:
            engine.load_csv(uploaded_file)
        except ValueError as e:
            st.error(f"Failed to load: {e}")
            st.stop()
        st.session_state.engine = engine
        st.session_state.source = source
        st.session_state.gap_report = None
        st.session_state.filled = False

    engine = st.session_state.engine
    load_info = engine.load_info

    c1, c2, c3 = st.columns(3)
    c1.metric("Points", load_info["shape"][0])
    c2.metric("Columns", f"{load_info['x_column']}, {load_info['y_column']}")
    c3.metric("Rows Dropped", load_info["rows_dropped"])
    with st.expander("Preview Raw Data"):
        st.dataframe(engine.df.head(50), use_container_width=True)

# ══════════════════════════════════════
# STEP 2: Detect + Fill
# ══════════════════════════════════════
if st.session_state.engine is not None:
    engine = st.session_state.engine
    st.header("🔧 Step 2: Detect and Fill")

    if st.button("🚀 Fill Gaps", type="primary"):
        try:
            st.session_state.gap_report = engine.detect_gaps()
            engine.fill_gaps(strategy=strategy)
            st.session_state.filled = True
        except ImbueError as e:
            st.session_state.filled = False
            st.error(f"Error: {e}")

    if st.session_state.filled and engine.imbued_df is not None:
        gr = st.session_state.gap_report
        c1, c2, c3 = st.columns(3)
        c1.metric("Missing", f"{gr['missing_count']:,}")
        c2.metric("Gaps", gr["n_gaps"])
        c3.metric("Longest Gap", gr["max_gap_length"])

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=engine.df["x"], y=engine.df["y"], mode="markers", name="Known",
            marker=dict(color="#2D6A4F", size=4),
        ))
        fig.add_trace(go.Scatter(
            x=engine.imbued_df["x"], y=engine.imbued_df["y"], mode="markers",
            name=f"Imbued ({engine.strategy.value})",
            marker=dict(color="#E63946", size=4, symbol="x"),
        ))
        fig.update_layout(height=450, xaxis_title="x", yaxis_title="y")
        st.plotly_chart(fig, use_container_width=True)

        dist = gr["gap_length_distribution"]
        fig2 = go.Figure(data=[go.Bar(x=list(dist.keys()), y=list(dist.values()), marker_color="#2D6A4F")])
        fig2.update_layout(title="Gap Length Distribution", height=300)
        st.plotly_chart(fig2, use_container_width=True)

# ══════════════════════════════════════
# STEP 3: Export
# ══════════════════════════════════════
if (
    st.session_state.filled
    and st.session_state.engine is not None
    and st.session_state.engine.imbued_df is not None
):
    engine = st.session_state.engine
    st.header("📥 Step 3: Export")

    export_df = engine.export(merge=merge, include_flags=include_flags)
    st.dataframe(export_df.head(20), use_container_width=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    c1, c2 = st.columns(2)
    with c1:
        csv_buf = io.StringIO()
        export_df.to_csv(csv_buf, index=False)
        st.download_button(
            "⬇️ Download CSV", csv_buf.getvalue(),
            f"imbue_output_{stamp}.csv", "text/csv", type="primary",
        )
    with c2:
        st.download_button(
            "📄 Download Report",
            json.dumps(engine.generate_report(), indent=2, default=str),
            f"imbue_report_{stamp}.json", "application/json",
        )
