"""
Run-summary output functions.

These are the entry points for the CLI summary and the Streamlit front end.
Each function returns plain dicts or DataFrames suitable for rendering
cards, charts, and tables.
"""

import logging

import pandas as pd

from .models import Marker, TrackedRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "row", "entity_id", "wpc_name", "metric", "tower_id", "day_7",
    "kpi_d1", "status", "tagging", "mocn_date", "operator",
]


def _display(val):
    if isinstance(val, Marker):
        return val.value
    return val


def records_to_frame(records: list[TrackedRecord]) -> pd.DataFrame:
    """Flatten tracked records into a DataFrame, sentinels shown as #N/A."""
    rows = [
        {
            "row": rec.row,
            "entity_id": rec.entity_key,
            "wpc_name": rec.metric_label,
            "metric": rec.metric.value if rec.metric else None,
            "tower_id": rec.tower_key,
            "day_7": rec.baseline,
            "kpi_d1": _display(rec.kpi_value),
            "status": rec.status,
            "tagging": _display(rec.tagging),
            "mocn_date": _display(rec.date_or_marker),
            "operator": rec.operator,
        }
        for rec in records
    ]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def get_status_summary(records: list[TrackedRecord]) -> pd.DataFrame:
    """Status counts per tracked metric.

    Returns
    -------
    DataFrame with columns: metric, status, count. Blank status is
    reported as "(open)".
    """
    df = records_to_frame(records)
    df = df[df["metric"].notna()].copy()
    if df.empty:
        logger.warning("No tracked metrics in run, returning empty status summary")
        return pd.DataFrame(columns=["metric", "status", "count"])

    df["status"] = df["status"].fillna("(open)")
    summary = (
        df.groupby(["metric", "status"])
        .size()
        .reset_index(name="count")
        .sort_values(["metric", "count"], ascending=[True, False])
        .reset_index(drop=True)
    )
    return summary


def get_run_overview(stats: dict) -> dict:
    """Headline numbers for dashboard cards."""
    claims = stats.get("status_claims", {})
    tracked = stats.get("tracked_rows", 0)
    filled = stats.get("kpi_filled", 0)
    return {
        "rows": stats.get("rows", 0),
        "tracked_rows": tracked,
        "kpi_filled": filled,
        "kpi_na": stats.get("kpi_na", 0),
        "kpi_fill_pct": (filled / tracked * 100) if tracked else None,
        "kpi_normalized": claims.get("kpi_normalized", 0),
        "ssh_approval": claims.get("ssh_approval", 0),
        "site_dropped": claims.get("site_dropped", 0),
        "tagging_na": stats.get("tagging_na", 0),
    }
