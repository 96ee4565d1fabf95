"""
KPI computation functions: pure functions with no side effects.

Provides reference lookup per metric (the KPI D-1 resolver), the
Day-7 difference/ratio calculation, and the per-metric "KPI Normalized"
rules.
"""

import logging

from .config import (
    LOSS_CEILING,
    LOSS_DIFF_CEILING,
    RATIO_FLOOR,
    S1_FLOOR,
    TRAFFIC_DIFF_FLOOR,
)
from .models import (
    LOSS_METRICS,
    RATIO_METRICS,
    UNRESOLVED,
    Marker,
    Metric,
    ReferenceMaps,
)

logger = logging.getLogger(__name__)


def _lookup(refs: ReferenceMaps, source: str, field: str | None, key: str) -> float | None:
    table = getattr(refs, source)
    if key not in table:
        return None
    entry = table[key]
    if field is None:
        return entry
    return getattr(entry, field)


def lookup_value(metric: Metric, entity_key: str, refs: ReferenceMaps) -> float | None:
    """Exact-match lookup of a metric's value for one entity.

    Returns None when the key is absent or the field is empty. IPPD reads
    the IPPD pivot when the workbook has one, otherwise the DATA sheet's
    Rank2 column scaled by 100.
    """
    source, field, scale = metric.source, metric.entry["field"], 1.0

    fallback = metric.entry.get("fallback")
    if fallback and not refs.has_section(source):
        source, field, scale = fallback["source"], fallback["field"], fallback["scale"]

    value = _lookup(refs, source, field, entity_key)
    if value is None:
        return None
    return value * scale


def resolve_kpi(metric: Metric, entity_key: str, refs: ReferenceMaps) -> float | Marker:
    """Return the KPI D-1 value to write: a number, or UNRESOLVED on a miss."""
    value = lookup_value(metric, entity_key, refs)
    return UNRESOLVED if value is None else value


def calc_variance(kpi: float | None, baseline: float | None) -> tuple[float | None, float | None]:
    """Return (diff, ratio) of KPI D-1 against Day-7.

    diff is None if either side is missing; ratio is also None when
    Day-7 is zero.
    """
    if kpi is None or baseline is None:
        return None, None
    diff = kpi - baseline
    if baseline == 0:
        return diff, None
    return diff, diff / baseline


def is_normalized(metric: Metric, kpi: float | Marker | None, baseline: float | None) -> bool:
    """Return True when a metric's KPI D-1 counts as back to normal.

    Logic
    -----
    - DL Traffic:        diff > -50 and ratio > -10%
    - S1 success rate:   kpi > 99
    - IPPD / TWAMP loss: kpi < 0.6 and diff < 0.2
    - ratio metrics:     ratio > -10%
    A missing KPI never passes.
    """
    if kpi is None or isinstance(kpi, Marker):
        return False

    diff, ratio = calc_variance(kpi, baseline)

    if metric is Metric.DL_TRAFFIC:
        return diff is not None and ratio is not None and diff > TRAFFIC_DIFF_FLOOR and ratio > RATIO_FLOOR
    if metric is Metric.S1_SUCCESS_RATE:
        return kpi > S1_FLOOR
    if metric in LOSS_METRICS:
        return diff is not None and kpi < LOSS_CEILING and diff < LOSS_DIFF_CEILING
    if metric in RATIO_METRICS:
        return ratio is not None and ratio > RATIO_FLOOR
    return False
