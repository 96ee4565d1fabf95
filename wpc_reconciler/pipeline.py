"""
End-to-end reconciliation: load phase, then mutate phase, then write.

Load phase
    1. read the WPC export into TrackedRecords
    2. collect the keys each reference section will be asked for
    3. stream each reference source once, keeping only those keys
Mutate phase
    4. run the ordered passes (transforms.PASSES)
Write
    5. copy changed fields back into the workbook and save it

Nothing is written unless every step before it succeeded.
"""

import logging
from dataclasses import dataclass, field
from typing import IO, Any

from .config import WPC_REQUIRED, WPC_REQUIRED_STEP1, WPC_SHEET
from .loaders import load_sfxl_maps, load_sitelist, load_tagging, load_wpc_export
from .loaders.wpc_export import WpcWorkbook
from .models import (
    ENTITY_METRICS,
    Marker,
    Metric,
    NeededKeys,
    ReferenceMaps,
    TrackedRecord,
)
from .transforms import run_passes

logger = logging.getLogger(__name__)

_SECTION_OF = {
    Metric.DL_TRAFFIC: "traffic",
    Metric.RRC_CONN_USERS: "traffic",
    Metric.TWAMP_PACKET_LOSS: "twamp",
}


@dataclass
class RunResult:
    """Outcome of one reconciliation run."""

    workbook: WpcWorkbook
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def records(self) -> list[TrackedRecord]:
        return self.workbook.records


def collect_needed_keys(records: list[TrackedRecord]) -> NeededKeys:
    """Single scan of the tracked table for the keys each source must provide.

    IPPD entities are requested from both the IPPD pivot and the DATA sheet,
    since which one answers depends on the sheets the workbook turns out to
    contain.
    """
    needed = NeededKeys()
    for rec in records:
        if rec.tower_key:
            needed.tower.add(rec.tower_key)

        metric = rec.metric
        if metric is None or not rec.entity_key:
            continue
        if metric in ENTITY_METRICS:
            needed.entity.add(rec.entity_key)
        elif metric is Metric.IPPD_PACKET_LOSS:
            needed.ippd.add(rec.entity_key)
            needed.entity.add(rec.entity_key)
        else:
            needed.for_section(_SECTION_OF[metric]).add(rec.entity_key)

    logger.info("Collected needed keys: %s", needed.sizes())
    return needed


def load_references(
    needed: NeededKeys,
    sfxl: "str | IO[bytes]",
    sitelist: "str | IO | None" = None,
    tagging: "str | IO[bytes] | None" = None,
    sitelist_name: str | None = None,
) -> ReferenceMaps:
    """Build the per-run lookup maps. Site list and tagging are optional for step 1 runs."""
    maps, present = load_sfxl_maps(sfxl, needed)

    sitelist_all, sitelist_sf = {}, {}
    if sitelist is not None:
        sitelist_all, sitelist_sf = load_sitelist(sitelist, needed.tower, name=sitelist_name)

    remarks = {}
    if tagging is not None:
        remarks = load_tagging(tagging, needed.tower)

    refs = ReferenceMaps(
        entity=maps["entity"],
        traffic=maps["traffic"],
        twamp=maps["twamp"],
        ippd=maps["ippd"],
        sitelist_all=sitelist_all,
        sitelist_sf=sitelist_sf,
        tagging=remarks,
        sections=frozenset(present),
    )
    logger.info("Maps loaded: %s", refs.sizes())
    return refs


def summarise_records(records: list[TrackedRecord]) -> dict[str, int]:
    """Counts of KPI D-1 outcomes and TAGGING misses across tracked rows."""
    tracked = [r for r in records if r.metric is not None]
    return {
        "rows": len(records),
        "tracked_rows": len(tracked),
        "kpi_filled": sum(1 for r in tracked if isinstance(r.kpi_value, float)),
        "kpi_na": sum(1 for r in tracked if isinstance(r.kpi_value, Marker)),
        "tagging_na": sum(1 for r in records if isinstance(r.tagging, Marker)),
    }


def reconcile(
    wpc: "str | IO[bytes]",
    sfxl: "str | IO[bytes]",
    sitelist: "str | IO | None" = None,
    tagging: "str | IO[bytes] | None" = None,
    out: "str | IO[bytes] | None" = None,
    step1_only: bool = False,
    sheet_name: str = WPC_SHEET,
    sitelist_name: str | None = None,
) -> RunResult:
    """Run the reconciliation over one WPC export.

    Parameters
    ----------
    wpc : WPC export workbook.
    sfxl : NEW SFXL metrics workbook.
    sitelist : MOCN site list (CSV or xlsx). Required unless step1_only.
    tagging : TAGGING workbook. Required unless step1_only.
    out : Where to save the mutated workbook; None leaves saving to the caller.
    step1_only : Only resolve KPI D-1 and apply "KPI Normalized".

    Raises
    ------
    ConfigurationError for missing columns, OSError for unreadable inputs,
    ValueError if a full run is missing the site list or tagging source.
    """
    if not step1_only and (sitelist is None or tagging is None):
        raise ValueError("Full transform needs both a site list and a tagging source")

    required = WPC_REQUIRED_STEP1 if step1_only else WPC_REQUIRED
    workbook = load_wpc_export(wpc, sheet_name=sheet_name, required=required)

    needed = collect_needed_keys(workbook.records)
    if step1_only:
        refs = load_references(needed, sfxl)
    else:
        refs = load_references(needed, sfxl, sitelist, tagging, sitelist_name=sitelist_name)

    claims = run_passes(workbook.records, refs, through_step=1 if step1_only else 3)

    stats: dict[str, Any] = summarise_records(workbook.records)
    stats["status_claims"] = claims
    stats["needed_keys"] = needed.sizes()
    stats["map_sizes"] = refs.sizes()
    stats["cells_written"] = workbook.write_back(rename_marker_header=not step1_only)

    if out is not None:
        workbook.save(out)

    logger.info(
        "Run complete: %d rows, KPI filled %d, KPI #N/A %d, claims %s",
        stats["rows"], stats["kpi_filled"], stats["kpi_na"], claims,
    )
    return RunResult(workbook=workbook, stats=stats)
