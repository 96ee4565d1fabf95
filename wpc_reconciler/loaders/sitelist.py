"""
Loader for the MOCN site list.

Source: sitelist_mocn_<date>.csv (or an .xlsx export of the same list).

Columns: New XL ID (tower key), MOCN Date, Keep/Drop.

The list is consulted through two views: "all" for MOCN dates and
"SF only" for keep/drop markers. The CSV export has no separate SF view,
so both views share the same rows; a workbook may carry an "SF only" sheet.
"""

import logging
from pathlib import Path
from typing import IO, Iterable

import openpyxl
import pandas as pd

from ..config import SITELIST_ALL_SHEETS, SITELIST_COLUMNS, SITELIST_SF_SHEETS
from ..models import SiteListEntry
from .utils import build_header_index, normalise_header, normalise_key, resolve_columns, value_at

logger = logging.getLogger(__name__)

_CSV_CHUNK_ROWS = 50_000
_REQUIRED = ["tower_key", "mocn_date", "keep_drop"]


def _collect(
    rows: Iterable[tuple],
    cols: dict[str, int | None],
    needed: set[str] | None,
    into: dict[str, SiteListEntry],
) -> None:
    for values in rows:
        key = normalise_key(value_at(values, cols["tower_key"]))
        if not key or (needed is not None and key not in needed):
            continue
        into[key] = SiteListEntry(
            mocn_date=value_at(values, cols["mocn_date"]),
            keep_drop=value_at(values, cols["keep_drop"]),
        )


def _load_csv(source, needed: set[str] | None) -> dict[str, SiteListEntry]:
    entries: dict[str, SiteListEntry] = {}
    try:
        reader = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
            chunksize=_CSV_CHUNK_ROWS,
        )
        cols = None
        for chunk in reader:
            if cols is None:
                cols = resolve_columns(
                    build_header_index(chunk.columns), SITELIST_COLUMNS, _REQUIRED, "SITELIST CSV"
                )
            _collect(chunk.itertuples(index=False, name=None), cols, needed, entries)
    except pd.errors.EmptyDataError:
        logger.warning("Site list CSV is empty: %s", source)
    return entries


def _load_sheet(ws, needed: set[str] | None) -> dict[str, SiteListEntry]:
    rows = ws.iter_rows(values_only=True)
    header = next(rows, None)
    if header is None:
        return {}
    cols = resolve_columns(
        build_header_index(header), SITELIST_COLUMNS, _REQUIRED, f"SITELIST sheet '{ws.title}'"
    )
    entries: dict[str, SiteListEntry] = {}
    _collect(rows, cols, needed, entries)
    return entries


def _find_sheet(wb, aliases: list[str]):
    wanted = {normalise_header(alias) for alias in aliases}
    for ws in wb.worksheets:
        if normalise_header(ws.title) in wanted:
            return ws
    return None


def _load_workbook(source, needed: set[str] | None):
    wb = openpyxl.load_workbook(source, read_only=True, data_only=True)
    try:
        ws_all = _find_sheet(wb, SITELIST_ALL_SHEETS) or wb.worksheets[0]
        all_view = _load_sheet(ws_all, needed)

        ws_sf = _find_sheet(wb, SITELIST_SF_SHEETS)
        if ws_sf is None or ws_sf.title == ws_all.title:
            sf_view = dict(all_view)
        else:
            sf_view = _load_sheet(ws_sf, needed)
    finally:
        wb.close()
    return all_view, sf_view


def _is_workbook(source, name: str | None) -> bool:
    name = name or (str(source) if isinstance(source, (str, Path)) else "")
    return Path(name).suffix.lower() in {".xlsx", ".xlsm"}


def load_sitelist(
    source: "str | Path | IO",
    needed: set[str] | None = None,
    name: str | None = None,
) -> tuple[dict[str, SiteListEntry], dict[str, SiteListEntry]]:
    """Load the site list into ("all", "SF only") maps keyed by tower ID.

    Parameters
    ----------
    source : Path or file object (CSV text or xlsx bytes).
    needed : Tower keys to keep; None keeps every row.
    name : Original file name when source is a file object, used to tell
           CSV from xlsx.

    Raises
    ------
    ConfigurationError if New XL ID, MOCN Date or Keep/Drop is missing.
    """
    try:
        if _is_workbook(source, name):
            all_view, sf_view = _load_workbook(source, needed)
        else:
            all_view = _load_csv(source, needed)
            sf_view = dict(all_view)
    except (OSError, UnicodeDecodeError):
        logger.exception("Failed to read site list: %s", name or source)
        raise

    logger.info("Loaded %d site list entries (%d SF view)", len(all_view), len(sf_view))
    return all_view, sf_view
