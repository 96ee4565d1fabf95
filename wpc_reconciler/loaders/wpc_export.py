"""
Loader and writer for the WPC export (the tracked table).

Source: wpcsdm_wpc_export_<timestamp>_default.xlsx, sheet "wpcsdm_wpc_export".

The workbook is opened twice: a read-only, cached-value copy supplies the
cell values the rules run on, and a full copy keeps formulas and styling so
that only KPI D-1, Status, TAGGING and MOCN DATE change on save.
"""

import logging
from datetime import date, datetime
from typing import IO, Any

import openpyxl

from ..config import (
    MOCN_DATE_FORMAT,
    MOCN_DATE_HEADER,
    NA_TEXT,
    WPC_COLUMNS,
    WPC_REQUIRED,
    WPC_SHEET,
)
from ..models import UNRESOLVED, TrackedRecord
from .utils import (
    build_header_index,
    cell_text,
    normalise_key,
    resolve_columns,
    safe_float,
    value_at,
)

logger = logging.getLogger(__name__)

_MUTABLE = ("kpi_value", "status", "tagging", "date_or_marker")


def _read_marker(val: Any) -> Any:
    """Turn an #N/A error cell into the miss sentinel."""
    if isinstance(val, str) and val.strip() == NA_TEXT:
        return UNRESOLVED
    return val


def _read_kpi(val: Any):
    val = _read_marker(val)
    if val is UNRESOLVED:
        return val
    return safe_float(val)


def _read_text(val: Any) -> str | None:
    text = cell_text(val)
    return text or None


def _read_date_or_marker(val: Any):
    val = _read_marker(val)
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, str):
        return val.strip() or None
    return val


def _to_cell(val: Any) -> Any:
    if val is UNRESOLVED:
        return NA_TEXT
    return val


def _record_from_row(row_idx: int, values: tuple, cols: dict[str, int | None]) -> TrackedRecord:
    def get(name):
        return value_at(values, cols.get(name))

    return TrackedRecord(
        row=row_idx,
        entity_key=normalise_key(get("entity_key")),
        metric_label=cell_text(get("metric_label")),
        tower_key=normalise_key(get("tower_key")),
        baseline=safe_float(get("baseline")),
        kpi_value=_read_kpi(get("kpi_value")),
        status=_read_text(get("status")),
        tagging=_read_marker(_read_text(get("tagging"))),
        date_or_marker=_read_date_or_marker(get("date_or_marker")),
        description=cell_text(get("description")),
        priority=cell_text(get("priority")),
        operator=cell_text(get("operator")),
    )


class WpcWorkbook:
    """The tracked workbook: parsed records plus the writable openpyxl workbook."""

    def __init__(self, workbook, sheet_name: str, columns: dict[str, int | None],
                 records: list[TrackedRecord]):
        self.workbook = workbook
        self.sheet_name = sheet_name
        self.columns = columns
        self.records = records
        self._original = {
            rec.row: tuple(getattr(rec, name) for name in _MUTABLE) for rec in records
        }

    @property
    def worksheet(self):
        return self.workbook[self.sheet_name]

    def write_back(self, rename_marker_header: bool = True) -> int:
        """Copy mutated record fields into the worksheet.

        Only cells whose value changed during the run are touched, plus
        every miss, so text "#N/A" in the input becomes a real error cell.
        Returns the number of cells written.
        """
        ws = self.worksheet
        written = 0

        for rec in self.records:
            before = self._original.get(rec.row)
            for pos_in_tuple, name in enumerate(_MUTABLE):
                col = self.columns.get(name)
                if col is None:
                    continue
                value = getattr(rec, name)
                if value is not UNRESOLVED and before is not None and before[pos_in_tuple] == value:
                    continue
                cell = ws.cell(row=rec.row, column=col + 1)
                cell.value = _to_cell(value)
                if isinstance(value, date):
                    cell.number_format = MOCN_DATE_FORMAT
                written += 1

        marker_col = self.columns.get("date_or_marker")
        if rename_marker_header and marker_col is not None:
            ws.cell(row=1, column=marker_col + 1).value = MOCN_DATE_HEADER

        # Formula columns (diff / ratio / Yes-Open) recompute when opened
        self.workbook.calculation.fullCalcOnLoad = True

        logger.info("Wrote %d changed cells to sheet '%s'", written, self.sheet_name)
        return written

    def save(self, target: "str | IO[bytes]") -> None:
        self.workbook.save(target)
        logger.info("Saved WPC workbook to %s", target)


def load_wpc_export(
    path: "str | IO[bytes]",
    sheet_name: str = WPC_SHEET,
    required: list[str] | None = None,
) -> WpcWorkbook:
    """Load the WPC export into TrackedRecords.

    Assumptions
    -----------
    - Row 1 holds the headers; data starts on row 2.
    - Columns are located by header alias (config.WPC_COLUMNS), not position.
    - Fully empty rows are skipped.

    Raises
    ------
    ConfigurationError if a required column is missing.
    """
    if required is None:
        required = WPC_REQUIRED

    try:
        workbook = openpyxl.load_workbook(path)
        if hasattr(path, "seek"):
            path.seek(0)
        values_wb = openpyxl.load_workbook(path, data_only=True, read_only=True)
    except Exception:
        logger.exception("Failed to open WPC export: %s", path)
        raise

    if sheet_name not in workbook.sheetnames:
        logger.warning("Sheet '%s' not found, using '%s'", sheet_name, workbook.sheetnames[0])
        sheet_name = workbook.sheetnames[0]

    try:
        rows = values_wb[sheet_name].iter_rows(values_only=True)
        header = next(rows, ())
        columns = resolve_columns(
            build_header_index(header), WPC_COLUMNS, required, f"WPC sheet '{sheet_name}'"
        )

        records = []
        for row_idx, values in enumerate(rows, start=2):
            if all(v is None for v in values):
                continue
            records.append(_record_from_row(row_idx, values, columns))
    finally:
        values_wb.close()

    logger.info("Loaded %d WPC rows from %s [%s]", len(records), path, sheet_name)
    return WpcWorkbook(workbook, sheet_name, columns, records)
