"""
Shared utilities for data ingestion: key and header normalisation,
column picking, numeric coercion, date parsing.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Iterable

import pandas as pd

from ..config import EXCEL_EPOCH, EXCEL_SERIAL_MIN
from ..exceptions import ConfigurationError
from ..models import Marker

logger = logging.getLogger(__name__)

_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")


def cell_text(val: Any) -> str:
    """Render a cell value as trimmed text.

    Integral floats drop their ".0" so numeric IDs compare equal to
    their text form.
    """
    if val is None:
        return ""
    if isinstance(val, Marker):
        return val.value
    if isinstance(val, str):
        return val.strip()
    if isinstance(val, bool):
        return str(val).upper()
    if isinstance(val, float):
        if val.is_integer():
            return str(int(val))
        return repr(val)
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    return str(val).strip()


def normalise_key(val: Any) -> str:
    """Canonicalise a lookup key for exact matching.

    NBSP becomes a plain space, zero-width characters are removed and the
    result is trimmed. Case is preserved.
    """
    text = cell_text(val).replace("\u00a0", " ")
    return _ZERO_WIDTH.sub("", text).strip()


def normalise_header(val: Any) -> str:
    """Collapse whitespace, trim and uppercase a header label."""
    return re.sub(r"\s+", " ", cell_text(val).replace("\u00a0", " ")).strip().upper()


def is_blank(val: Any) -> bool:
    """True for None and whitespace-only text. The miss sentinel is not blank."""
    if val is None:
        return True
    if isinstance(val, str):
        return val.strip() == ""
    return False


def build_header_index(cells: Iterable[Any]) -> dict[str, int]:
    """Map normalised header text to its 0-based column position."""
    index: dict[str, int] = {}
    for pos, raw in enumerate(cells):
        header = normalise_header(raw)
        if header:
            index.setdefault(header, pos)
    return index


def pick_column(index: dict[str, int], variants: list[str]) -> int | None:
    """Return the position of the first variant present in the header index."""
    for variant in variants:
        pos = index.get(normalise_header(variant))
        if pos is not None:
            return pos
    return None


def find_column_containing(index: dict[str, int], fragments: list[str]) -> int | None:
    """Return the first header containing every fragment, in header order."""
    wanted = [normalise_header(f) for f in fragments]
    for header, pos in sorted(index.items(), key=lambda item: item[1]):
        if all(w in header for w in wanted):
            return pos
    return None


def resolve_columns(
    index: dict[str, int],
    columns: dict[str, list[str]],
    required: Iterable[str],
    source: str,
) -> dict[str, int | None]:
    """Pick every logical column; raise ConfigurationError if a required one is absent."""
    picked = {name: pick_column(index, variants) for name, variants in columns.items()}
    missing = [columns[name][0] for name in required if picked.get(name) is None]
    if missing:
        raise ConfigurationError(source, missing)
    return picked


def value_at(row: tuple | list, pos: int | None) -> Any:
    """Return row[pos], or None when the column is absent or the row is short."""
    if pos is None or pos >= len(row):
        return None
    return row[pos]


def safe_float(val: Any) -> float | None:
    """Coerce a value to float, returning None for non-numeric values."""
    if val is None or isinstance(val, Marker):
        return None
    if isinstance(val, str):
        # Skip formula strings and text labels
        val = val.strip()
        if val.startswith("=") or not val:
            return None
        # Handle percentage strings like "78%"
        if val.endswith("%"):
            val = val[:-1]
        try:
            result = float(val)
        except ValueError:
            return None
    else:
        try:
            result = float(val)
        except (ValueError, TypeError):
            return None
    if not math.isfinite(result):
        return None
    return result


def _from_serial(serial: float) -> date | None:
    if serial <= EXCEL_SERIAL_MIN:
        return None
    try:
        return (pd.Timestamp(EXCEL_EPOCH) + pd.Timedelta(days=serial)).date()
    except (ValueError, OverflowError):
        logger.warning("Could not convert serial number %s to date", serial)
        return None


def parse_date_like(val: Any) -> date | None:
    """Convert a site-list date cell to a calendar date.

    Accepts datetime/date objects, spreadsheet serial numbers (1899-12-30
    epoch), slash dates and anything pd.Timestamp understands. Slash dates
    are read month-first, and day-first only when that is not a valid date.
    A bare year means 1 January. Returns None for unparseable values.
    """
    if val is None or isinstance(val, Marker):
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return _from_serial(float(val))

    text = cell_text(val)
    if not text:
        return None

    serial = safe_float(text)
    if serial is not None and serial > EXCEL_SERIAL_MIN and not text.endswith("%"):
        return _from_serial(serial)

    match = _DMY.match(text)
    if match:
        first, second, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        for month, day in ((first, second), (second, first)):
            try:
                return date(year, month, day)
            except ValueError:
                continue
        return None

    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()
