"""
Streaming loader for the NEW SFXL metrics workbook.

Sheets recognised (case/whitespace-insensitive, see config.SFXL_SECTIONS):
    DATA           per-cell KPIs keyed by MOEntity
    TRAFFIC/PLMN   pivot of payload and RRC users keyed by Row Labels
    TWAMP          pivot of max TWAMP loss keyed by Row Labels
    IPPD           pivot of IPPD loss (already x100) keyed by Row Labels

The workbook is large, so it is read once in read-only mode and only the
rows whose key the tracked table needs are materialised.
"""

import logging
from typing import IO

import openpyxl

from ..config import SFXL_SECTIONS
from ..exceptions import ConfigurationError
from ..models import EntityMetrics, NeededKeys, TrafficMetrics
from .utils import (
    build_header_index,
    find_column_containing,
    normalise_header,
    normalise_key,
    pick_column,
    safe_float,
    value_at,
)

logger = logging.getLogger(__name__)

_RECORD_TYPES = {"entity": EntityMetrics, "traffic": TrafficMetrics}


def match_section(sheet_name: str) -> str | None:
    """Return the section a sheet name belongs to, or None if it is not used."""
    name = normalise_header(sheet_name)
    for section, layout in SFXL_SECTIONS.items():
        if name in {normalise_header(alias) for alias in layout["sheets"]}:
            return section
    return None


def _field_columns(section: str, index: dict[str, int]) -> dict[str, int | None]:
    layout = SFXL_SECTIONS[section]
    cols = {name: pick_column(index, variants) for name, variants in layout["fields"].items()}
    for fragments in layout.get("contains", []):
        if cols.get("value") is not None:
            break
        cols["value"] = find_column_containing(index, fragments)

    absent = [name for name, pos in cols.items() if pos is None]
    if absent:
        logger.warning("SFXL %s sheet has no column for %s; values left empty", section, absent)
    return cols


def _read_section(ws, section: str, needed: set[str]) -> dict:
    rows = ws.iter_rows(values_only=True)
    header = next(rows, None)
    if header is None:
        logger.warning("SFXL sheet '%s' is empty", ws.title)
        return {}

    index = build_header_index(header)
    key_variants = SFXL_SECTIONS[section]["key"]
    key_col = pick_column(index, key_variants)
    if key_col is None:
        raise ConfigurationError(f"SFXL sheet '{ws.title}'", [key_variants[0]])

    cols = _field_columns(section, index)
    record_type = _RECORD_TYPES.get(section)

    out: dict = {}
    scanned = 0
    for values in rows:
        scanned += 1
        key = normalise_key(value_at(values, key_col))
        if not key or key not in needed:
            continue
        fields = {name: safe_float(value_at(values, pos)) for name, pos in cols.items()}
        out[key] = record_type(**fields) if record_type else fields["value"]

    logger.info(
        "SFXL %s: kept %d of %d rows from sheet '%s'", section, len(out), scanned, ws.title
    )
    return out


def load_sfxl_maps(path: "str | IO[bytes]", needed: NeededKeys) -> tuple[dict[str, dict], set[str]]:
    """Stream the SFXL workbook into lookup maps.

    Parameters
    ----------
    path : Path or binary file object of the SFXL workbook.
    needed : Keys collected from the tracked table.

    Returns
    -------
    (maps, sections_present) where maps has one dict per section
    ("entity", "traffic", "twamp", "ippd") and sections_present names the
    sections the workbook actually contained.

    Raises
    ------
    ConfigurationError if a recognised sheet lacks its key column.
    """
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception:
        logger.exception("Failed to open SFXL workbook: %s", path)
        raise

    maps: dict[str, dict] = {section: {} for section in SFXL_SECTIONS}
    present: set[str] = set()

    try:
        for ws in wb.worksheets:
            section = match_section(ws.title)
            if section is None:
                logger.debug("Skipping SFXL sheet '%s'", ws.title)
                continue
            present.add(section)
            maps[section].update(_read_section(ws, section, needed.for_section(section)))
    finally:
        wb.close()

    missing = sorted(set(SFXL_SECTIONS) - present)
    if missing:
        logger.warning("SFXL workbook has no sheet for sections: %s", missing)

    return maps, present
