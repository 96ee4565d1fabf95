"""
WPC Reconciler - Interactive front end

Run with:  streamlit run app.py
"""

import io
import sys
from pathlib import Path

import plotly.express as px
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from wpc_reconciler.config import (
    STATUS_KPI_NORMALIZED,
    STATUS_SITE_DROPPED,
    STATUS_SSH_APPROVAL,
)
from wpc_reconciler.dashboard import get_run_overview, get_status_summary, records_to_frame
from wpc_reconciler.exceptions import ConfigurationError
from wpc_reconciler.pipeline import reconcile

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="WPC Reconciler",
    page_icon="📶",
    layout="wide",
    initial_sidebar_state="expanded",
)

STATUS_COLORS = {
    STATUS_KPI_NORMALIZED: "#2ecc71",
    STATUS_SSH_APPROVAL: "#f39c12",
    STATUS_SITE_DROPPED: "#e74c3c",
    "(open)": "#95a5a6",
}

# ---------------------------------------------------------------------------
# Sidebar: inputs
# ---------------------------------------------------------------------------
st.sidebar.title("WPC Reconciler")
st.sidebar.markdown("KPI D-1 / Status / TAGGING / MOCN DATE")
st.sidebar.divider()

step1_only = st.sidebar.toggle("Step 1 only (KPI D-1 + KPI Normalized)", value=False)

wpc_file = st.sidebar.file_uploader("WPC export", type=["xlsx"])
sfxl_file = st.sidebar.file_uploader("NEW SFXL", type=["xlsx"])
sitelist_file = None
tagging_file = None
if not step1_only:
    sitelist_file = st.sidebar.file_uploader("Site list", type=["csv", "xlsx"])
    tagging_file = st.sidebar.file_uploader("TAGGING", type=["xlsx"])

ready = wpc_file is not None and sfxl_file is not None
if not step1_only:
    ready = ready and sitelist_file is not None and tagging_file is not None

run_clicked = st.sidebar.button("Run", type="primary", disabled=not ready)

# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------
if run_clicked:
    try:
        with st.spinner("Reconciling..."):
            result = reconcile(
                wpc_file,
                sfxl_file,
                sitelist=sitelist_file,
                tagging=tagging_file,
                step1_only=step1_only,
                sitelist_name=sitelist_file.name if sitelist_file is not None else None,
            )
            buffer = io.BytesIO()
            result.workbook.save(buffer)
    except ConfigurationError as exc:
        st.error(str(exc))
        st.stop()

    st.session_state["result"] = result
    st.session_state["output"] = buffer.getvalue()
    st.session_state["output_name"] = "output-wpcsdm-step1.xlsx" if step1_only else "output-wpcsdm-transform.xlsx"

result = st.session_state.get("result")

# ===========================================================================
# PAGE: Results
# ===========================================================================
st.title("Run Summary")

if result is None:
    st.info("Upload the input files in the sidebar and press Run.")
    st.stop()

overview = get_run_overview(result.stats)

cols = st.columns(4)
cols[0].metric("Tracked rows", overview["tracked_rows"], help=f"{overview['rows']} rows in sheet")
fill_pct = overview["kpi_fill_pct"]
cols[1].metric(
    "KPI D-1 filled",
    overview["kpi_filled"],
    delta=f"{fill_pct:.1f}%" if fill_pct is not None else None,
    delta_color="off",
)
cols[2].metric("KPI D-1 #N/A", overview["kpi_na"])
cols[3].metric("TAGGING #N/A", overview["tagging_na"])

cols = st.columns(3)
cols[0].metric(STATUS_KPI_NORMALIZED, overview["kpi_normalized"])
cols[1].metric(STATUS_SSH_APPROVAL, overview["ssh_approval"])
cols[2].metric(STATUS_SITE_DROPPED, overview["site_dropped"])

st.download_button(
    "Download output workbook",
    data=st.session_state["output"],
    file_name=st.session_state["output_name"],
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

st.divider()

# Status breakdown chart
st.subheader("Status by Metric")
summary = get_status_summary(result.records)
if not summary.empty:
    fig = px.bar(
        summary,
        x="count",
        y="metric",
        color="status",
        orientation="h",
        color_discrete_map=STATUS_COLORS,
    )
    fig.update_layout(
        height=400,
        xaxis_title="Rows",
        yaxis_title="",
        plot_bgcolor="rgba(0,0,0,0)",
        margin=dict(l=10, r=10, t=10, b=40),
    )
    st.plotly_chart(fig, use_container_width=True)
    st.dataframe(summary, use_container_width=True, hide_index=True)

# Row-level detail
st.subheader("Rows")
records_df = records_to_frame(result.records)
metric_filter = st.multiselect("Metric", sorted(records_df["metric"].dropna().unique().tolist()))
if metric_filter:
    records_df = records_df[records_df["metric"].isin(metric_filter)]
st.dataframe(records_df.astype(str), use_container_width=True, hide_index=True)
