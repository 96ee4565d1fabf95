from datetime import date, datetime

import pytest

from wpc_reconciler.exceptions import ConfigurationError
from wpc_reconciler.loaders.utils import (
    build_header_index,
    cell_text,
    find_column_containing,
    is_blank,
    normalise_header,
    normalise_key,
    parse_date_like,
    pick_column,
    resolve_columns,
    safe_float,
)
from wpc_reconciler.models import UNRESOLVED


def test_normalise_key_strips_invisible_characters():
    assert normalise_key("\u200bCELL_01\ufeff ") == "CELL_01"
    assert normalise_key("SITE\u00a0A") == "SITE A"


def test_normalise_key_keeps_case():
    assert normalise_key("abc123") != normalise_key("ABC123")


def test_normalise_key_renders_integral_numbers_without_decimal():
    assert normalise_key(123456.0) == "123456"
    assert normalise_key(None) == ""


def test_normalise_header_collapses_whitespace_and_uppercases():
    assert normalise_header("  Sum of   Payload\nper PLMN ") == "SUM OF PAYLOAD PER PLMN"


def test_pick_column_returns_first_variant_present():
    index = build_header_index(["Entity_ID", "TowerID", "Tower ID"])
    assert pick_column(index, ["Tower ID", "TowerID"]) == 2
    assert pick_column(index, ["TowerID", "Tower ID"]) == 1
    assert pick_column(index, ["Site"]) is None


def test_find_column_containing_scans_in_header_order():
    index = build_header_index(["Row Labels", "Sum of IPPD", "IPPD x 100", "IPPD 100 %"])
    assert find_column_containing(index, ["IPPD", "100"]) == 2


def test_resolve_columns_reports_missing_required_columns():
    index = build_header_index(["Tower ID"])
    columns = {"tower_key": ["Tower ID"], "remark": ["Remark"]}
    with pytest.raises(ConfigurationError) as exc:
        resolve_columns(index, columns, ["tower_key", "remark"], "TAGGING workbook")
    assert exc.value.missing == ["Remark"]
    assert "TAGGING workbook" in str(exc.value)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        ("", None),
        ("=A1*2", None),
        ("n/a", None),
        (" 12.5 ", 12.5),
        ("78%", 78.0),
        (3, 3.0),
        (float("nan"), None),
        (UNRESOLVED, None),
    ],
)
def test_safe_float(raw, expected):
    assert safe_float(raw) == expected


def test_is_blank_treats_sentinel_as_filled():
    assert is_blank(None)
    assert is_blank("   ")
    assert not is_blank(UNRESOLVED)
    assert not is_blank(0)


def test_cell_text_renders_sentinel_and_dates():
    assert cell_text(UNRESOLVED) == "#N/A"
    assert cell_text(date(2025, 3, 1)) == "2025-03-01"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (datetime(2025, 3, 15, 10, 30), date(2025, 3, 15)),
        (date(2026, 1, 2), date(2026, 1, 2)),
        (45731, date(2025, 3, 15)),
        ("45731", date(2025, 3, 15)),
        ("15/03/2025", date(2025, 3, 15)),
        ("5/1/26", date(2026, 5, 1)),
        ("03/04/2025", date(2025, 3, 4)),
        ("2025", date(2025, 1, 1)),
        ("2025-07-01", date(2025, 7, 1)),
        ("Mar 3, 2025", date(2025, 3, 3)),
    ],
)
def test_parse_date_like_accepts_common_formats(raw, expected):
    assert parse_date_like(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "TBD", "Keep", "31/02/2025", 12, UNRESOLVED])
def test_parse_date_like_returns_none_for_non_dates(raw):
    assert parse_date_like(raw) is None
