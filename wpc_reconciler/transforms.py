"""
Record transforms: KPI D-1 resolution and the three ordered status passes.

Pass order is part of the contract. Later passes read Status, TAGGING and
MOCN DATE as left by earlier ones:

    step 1  resolve KPI D-1, then "KPI Normalized"   (unconditional write)
    step 2  MOCN DATE lookup, then "NY SSH Approval"  (guarded)
    step 3  TAGGING fill, then SF keep/drop and "Close due to site already drop" (guarded)

Every step function takes (record, refs) and returns True when it claimed
the record's Status.
"""

import logging
from datetime import date
from typing import Callable, NamedTuple

from .config import (
    DECOMMISSION_TAGS,
    DROP_MARKER,
    SF_OPERATOR,
    SSH_MARKER,
    SSH_OPERATOR,
    SSH_PRIORITY,
    SSH_TARGET_YEARS,
    STATUS_KPI_NORMALIZED,
    STATUS_SITE_DROPPED,
    STATUS_SSH_APPROVAL,
)
from .kpis import is_normalized, resolve_kpi
from .loaders.utils import cell_text, is_blank, parse_date_like
from .models import SSH_METRICS, UNRESOLVED, ReferenceMaps, TrackedRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Write guard
# ---------------------------------------------------------------------------

def status_open(record: TrackedRecord) -> bool:
    """True while no pass has claimed Status and the cell is blank."""
    return record.status_claimed_by is None and is_blank(record.status)


def claim_status(record: TrackedRecord, status: str, claimed_by: str) -> bool:
    """Write Status only if it is still open. Returns whether the write happened."""
    if not status_open(record):
        return False
    record.status = status
    record.status_claimed_by = claimed_by
    return True


# ---------------------------------------------------------------------------
# Step 1
# ---------------------------------------------------------------------------

def apply_kpi_value(record: TrackedRecord, refs: ReferenceMaps) -> bool:
    record.kpi_value = resolve_kpi(record.metric, record.entity_key, refs)
    return False


def apply_kpi_normalized(record: TrackedRecord, refs: ReferenceMaps) -> bool:
    # First status pass: Status is written without the guard
    if not is_normalized(record.metric, record.kpi_value, record.baseline):
        return False
    record.status = STATUS_KPI_NORMALIZED
    record.status_claimed_by = "kpi_normalized"
    return True


# ---------------------------------------------------------------------------
# Step 2
# ---------------------------------------------------------------------------

def is_ssh_candidate(record: TrackedRecord) -> bool:
    return (
        SSH_MARKER in record.description.upper()
        and record.priority == SSH_PRIORITY
        and record.operator == SSH_OPERATOR
        and record.metric in SSH_METRICS
    )


def apply_ssh_approval(record: TrackedRecord, refs: ReferenceMaps) -> bool:
    """Fill MOCN DATE from the site list and flag 2025/2026 MOCN sites."""
    if not is_ssh_candidate(record):
        return False

    hit = refs.sitelist_all.get(record.tower_key)
    if hit is not None and not is_blank(hit.mocn_date):
        parsed = parse_date_like(hit.mocn_date)
        record.date_or_marker = parsed if parsed is not None else cell_text(hit.mocn_date)
    else:
        record.date_or_marker = UNRESOLVED

    stored = record.date_or_marker
    if isinstance(stored, date) and stored.year in SSH_TARGET_YEARS:
        return claim_status(record, STATUS_SSH_APPROVAL, "ssh_approval")
    return False


# ---------------------------------------------------------------------------
# Step 3
# ---------------------------------------------------------------------------

def apply_tagging(record: TrackedRecord, refs: ReferenceMaps) -> bool:
    if is_blank(record.tagging) or record.tagging is UNRESOLVED:
        record.tagging = refs.tagging.get(record.tower_key, UNRESOLVED)
    return False


def is_decommission_candidate(record: TrackedRecord) -> bool:
    return (
        record.operator == SF_OPERATOR
        and cell_text(record.tagging).upper() in DECOMMISSION_TAGS
    )


def apply_site_dropped(record: TrackedRecord, refs: ReferenceMaps) -> bool:
    """Replace MOCN DATE with the SF keep/drop marker and close dropped sites."""
    if is_decommission_candidate(record):
        hit = refs.sitelist_sf.get(record.tower_key)
        if hit is not None and not is_blank(hit.keep_drop):
            record.date_or_marker = cell_text(hit.keep_drop)
        else:
            record.date_or_marker = UNRESOLVED

    if isinstance(record.date_or_marker, str) and record.date_or_marker.strip() == DROP_MARKER:
        return claim_status(record, STATUS_SITE_DROPPED, "site_dropped")
    return False


# ---------------------------------------------------------------------------
# Pass runner
# ---------------------------------------------------------------------------

class Pass(NamedTuple):
    name: str
    step: int
    apply: Callable[[TrackedRecord, ReferenceMaps], bool]
    table_wide: bool = False  # also runs for records with an untracked WPC Name


PASSES: tuple[Pass, ...] = (
    Pass("kpi_value", 1, apply_kpi_value),
    Pass("kpi_normalized", 1, apply_kpi_normalized),
    Pass("ssh_approval", 2, apply_ssh_approval),
    Pass("tagging", 3, apply_tagging, table_wide=True),
    Pass("site_dropped", 3, apply_site_dropped),
)


def run_passes(
    records: list[TrackedRecord],
    refs: ReferenceMaps,
    through_step: int = 3,
) -> dict[str, int]:
    """Apply every pass up to `through_step`, each as a full scan, in order.

    Returns a dict of Status claims per pass name.
    """
    claims: dict[str, int] = {}
    for step_pass in PASSES:
        if step_pass.step > through_step:
            break
        count = 0
        for record in records:
            if record.metric is None and not step_pass.table_wide:
                continue
            if step_pass.apply(record, refs):
                count += 1
        claims[step_pass.name] = count
        logger.info("Pass %s (step %d): %d status claims", step_pass.name, step_pass.step, count)
    return claims
