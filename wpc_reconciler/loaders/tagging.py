"""
Loader for the TAGGING workbook: Tower ID -> Remark.

Only the first worksheet is read; row 1 carries the headers.
"""

import logging
from typing import IO

import openpyxl

from ..config import TAGGING_COLUMNS
from .utils import build_header_index, cell_text, normalise_key, resolve_columns, value_at

logger = logging.getLogger(__name__)


def load_tagging(path: "str | IO[bytes]", needed: set[str] | None = None) -> dict[str, str]:
    """Load tower remarks keyed by tower ID.

    Rows with a blank remark are not stored, so an earlier non-blank remark
    for the same tower survives.

    Raises
    ------
    ConfigurationError if Tower ID or Remark is missing.
    """
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception:
        logger.exception("Failed to open tagging workbook: %s", path)
        raise

    remarks: dict[str, str] = {}
    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, ())
        cols = resolve_columns(
            build_header_index(header), TAGGING_COLUMNS, ["tower_key", "remark"], "TAGGING workbook"
        )

        for values in rows:
            tower = normalise_key(value_at(values, cols["tower_key"]))
            if not tower or (needed is not None and tower not in needed):
                continue
            remark = cell_text(value_at(values, cols["remark"]))
            if remark:
                remarks[tower] = remark
    finally:
        wb.close()

    logger.info("Loaded %d tagging remarks from %s", len(remarks), path)
    return remarks
