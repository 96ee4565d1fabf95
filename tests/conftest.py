import sys
from pathlib import Path

import openpyxl
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from wpc_reconciler.models import ReferenceMaps, TrackedRecord

WPC_HEADER = [
    "Entity_ID", "WPC Name", "Day-7", "KPI D-1", "Status", "Tower ID",
    "TAGGING", "MOCN Date", "Description2", "Priority", "Operator", "Yes/Open",
]

DATA_HEADER = [
    "MOEntity", "Avg CQI", "DL SE", "S1 Setup Success Rate",
    "DL User Throughput", "UL User Throughput", "Rank2",
]


def write_workbook(path: Path, sheets: dict[str, list[list]]) -> Path:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


@pytest.fixture
def make_workbook(tmp_path):
    def _make(name: str, sheets: dict[str, list[list]]) -> Path:
        return write_workbook(tmp_path / name, sheets)
    return _make


@pytest.fixture
def make_record():
    def _make(**fields) -> TrackedRecord:
        fields.setdefault("row", 2)
        return TrackedRecord(**fields)
    return _make


@pytest.fixture
def make_refs():
    def _make(**maps) -> ReferenceMaps:
        maps.setdefault("sections", frozenset({"entity", "traffic", "twamp"}))
        return ReferenceMaps(**maps)
    return _make
