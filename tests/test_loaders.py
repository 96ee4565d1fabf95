import pytest

from conftest import DATA_HEADER, WPC_HEADER
from wpc_reconciler.exceptions import ConfigurationError
from wpc_reconciler.loaders import load_sfxl_maps, load_sitelist, load_tagging, load_wpc_export
from wpc_reconciler.loaders.sfxl import match_section
from wpc_reconciler.models import UNRESOLVED, EntityMetrics, NeededKeys, SiteListEntry, TrafficMetrics


# ---------------------------------------------------------------------------
# SFXL workbook
# ---------------------------------------------------------------------------

@pytest.fixture
def sfxl_path(make_workbook):
    return make_workbook("sfxl.xlsx", {
        "DATA": [
            DATA_HEADER,
            ["E1", 9.5, 1.8, 99.7, 20.1, 4.2, 0.0031],
            ["E2", 7.0, 1.1, 97.0, 11.0, 2.0, 0.0100],
            ["UNUSED", 1, 1, 1, 1, 1, 1],
        ],
        "plmn": [
            ["Row Labels", "Sum of Payload per PLMN", "Sum of RRC User per PLMN"],
            ["E3", 1200, 35],
            ["E4", 800, None],
        ],
        "TWAMP": [
            ["Row Labels", "Max of MAX TWAMP"],
            ["E5", 0.12],
        ],
        "Notes": [["anything"], ["at all"]],
    })


def test_match_section_is_case_insensitive():
    assert match_section(" data ") == "entity"
    assert match_section("Plmn") == "traffic"
    assert match_section("Traffic") == "traffic"
    assert match_section("Pivot1") is None


def test_sfxl_keeps_only_needed_keys(sfxl_path):
    needed = NeededKeys(entity={"E1", "MISSING"}, traffic={"E3", "E4"}, twamp={"E5"})
    maps, present = load_sfxl_maps(str(sfxl_path), needed)

    assert present == {"entity", "traffic", "twamp"}
    assert set(maps["entity"]) == {"E1"}
    assert maps["entity"]["E1"] == EntityMetrics(
        avg_cqi=9.5, dl_se=1.8, s1_rate=99.7, dl_throughput=20.1, ul_throughput=4.2, loss_rank=0.0031
    )
    assert maps["traffic"]["E3"] == TrafficMetrics(payload_sum=1200.0, rrc_user_sum=35.0)
    assert maps["traffic"]["E4"].rrc_user_sum is None
    assert maps["twamp"] == {"E5": 0.12}
    assert maps["ippd"] == {}


def test_sfxl_missing_field_column_leaves_value_empty(make_workbook):
    path = make_workbook("sfxl.xlsx", {
        "DATA": [["MOEntity", "Avg CQI"], ["E1", 8.0]],
    })
    maps, _ = load_sfxl_maps(str(path), NeededKeys(entity={"E1"}))
    assert maps["entity"]["E1"].avg_cqi == 8.0
    assert maps["entity"]["E1"].loss_rank is None


def test_sfxl_missing_key_column_raises(make_workbook):
    path = make_workbook("sfxl.xlsx", {
        "DATA": [["Cell", "Avg CQI"], ["E1", 8.0]],
    })
    with pytest.raises(ConfigurationError) as exc:
        load_sfxl_maps(str(path), NeededKeys(entity={"E1"}))
    assert exc.value.missing == ["MOEntity"]


def test_sfxl_ippd_value_column_found_by_fragments(make_workbook):
    path = make_workbook("sfxl.xlsx", {
        "IPPD": [["Row Labels", "Sum of IPPD", "IPPD x 100"], ["E9", 0.01, 1.0]],
    })
    maps, present = load_sfxl_maps(str(path), NeededKeys(ippd={"E9"}))
    assert present == {"ippd"}
    assert maps["ippd"] == {"E9": 1.0}


# ---------------------------------------------------------------------------
# Site list
# ---------------------------------------------------------------------------

def test_sitelist_csv(tmp_path):
    path = tmp_path / "sitelist_mocn.csv"
    path.write_text(
        "\ufeffNew XL ID,Site Name,MOCN Date,Keep/Drop\n"
        'T1,"Site, North",15/03/2025,Keep\n'
        "\n"
        'T2,"The ""Old"" Site",,Drop\n'
        "T3,Other,01/01/2026,Keep\n",
        encoding="utf-8",
    )
    all_view, sf_view = load_sitelist(str(path), needed={"T1", "T2"})

    assert set(all_view) == {"T1", "T2"}
    assert all_view["T1"] == SiteListEntry(mocn_date="15/03/2025", keep_drop="Keep")
    assert all_view["T2"].keep_drop == "Drop"
    assert all_view["T2"].mocn_date == ""
    assert sf_view == all_view


def test_sitelist_csv_without_filter_keeps_every_row(tmp_path):
    path = tmp_path / "sitelist.csv"
    path.write_text("New XL ID,MOCN Date,Keep/Drop\nA,1/2/2025,Keep\nB,,\n", encoding="utf-8")
    all_view, _ = load_sitelist(str(path))
    assert set(all_view) == {"A", "B"}


def test_sitelist_csv_missing_column_raises(tmp_path):
    path = tmp_path / "sitelist.csv"
    path.write_text("New XL ID,MOCN Date\nT1,15/03/2025\n", encoding="utf-8")
    with pytest.raises(ConfigurationError) as exc:
        load_sitelist(str(path))
    assert exc.value.missing == ["Keep/Drop"]


def test_sitelist_workbook_has_separate_sf_view(make_workbook):
    header = ["New XL ID", "MOCN Date", "Keep/Drop"]
    path = make_workbook("sitelist.xlsx", {
        "All": [header, ["T1", "15/03/2025", "Keep"], ["T2", None, "Keep"]],
        "SF only": [header, ["T2", None, "Drop"]],
    })
    all_view, sf_view = load_sitelist(str(path))
    assert all_view["T2"].keep_drop == "Keep"
    assert sf_view == {"T2": SiteListEntry(mocn_date=None, keep_drop="Drop")}


def test_sitelist_workbook_without_sf_sheet_reuses_all_view(make_workbook):
    path = make_workbook("sitelist.xlsx", {
        "Sheet1": [["New XL ID", "MOCN Date", "Keep/Drop"], ["T1", None, "Drop"]],
    })
    all_view, sf_view = load_sitelist(str(path))
    assert sf_view == all_view == {"T1": SiteListEntry(mocn_date=None, keep_drop="Drop")}


# ---------------------------------------------------------------------------
# Tagging
# ---------------------------------------------------------------------------

def test_tagging_blank_remark_does_not_override(make_workbook):
    path = make_workbook("TAGGING.xlsx", {
        "Sheet1": [
            ["Tower ID", "Region", "Remark"],
            ["T1", "N", "DROP"],
            ["T1", "N", "  "],
            [1001, "S", "Dismantle"],
            ["T9", "S", "ignored"],
        ],
    })
    remarks = load_tagging(str(path), needed={"T1", "1001"})
    assert remarks == {"T1": "DROP", "1001": "Dismantle"}


def test_tagging_missing_remark_column_raises(make_workbook):
    path = make_workbook("TAGGING.xlsx", {"Sheet1": [["Tower ID", "Note"], ["T1", "x"]]})
    with pytest.raises(ConfigurationError) as exc:
        load_tagging(str(path))
    assert exc.value.missing == ["Remark"]


# ---------------------------------------------------------------------------
# WPC export
# ---------------------------------------------------------------------------

def test_wpc_export_reads_records(make_workbook):
    path = make_workbook("wpc.xlsx", {
        "wpcsdm_wpc_export": [
            WPC_HEADER,
            ["\u200bE1 ", "Avg CQI", 10, "#N/A", None, "T1", "#N/A", "Drop", "x", "P1", "SF", None],
            [None] * len(WPC_HEADER),
            ["E2", "Availability", "12", 42, "Open", 77.0, "DROP", None, None, None, None, None],
        ],
    })
    wpc = load_wpc_export(str(path))
    first, second = wpc.records

    assert first.row == 2
    assert first.entity_key == "E1"
    assert first.baseline == 10.0
    assert first.kpi_value is UNRESOLVED
    assert first.tagging is UNRESOLVED
    assert first.date_or_marker == "Drop"
    assert first.metric is not None

    # the empty row is skipped but row numbers keep their sheet position
    assert second.row == 4
    assert second.tower_key == "77"
    assert second.status == "Open"
    assert second.metric is None


def test_wpc_export_missing_required_column_raises(make_workbook):
    header = [h for h in WPC_HEADER if h != "Status"]
    path = make_workbook("wpc.xlsx", {"wpcsdm_wpc_export": [header]})
    with pytest.raises(ConfigurationError) as exc:
        load_wpc_export(str(path))
    assert exc.value.missing == ["Status"]


def test_wpc_export_falls_back_to_first_sheet(make_workbook):
    path = make_workbook("wpc.xlsx", {
        "Export": [WPC_HEADER, ["E1", "DL Traffic", 1000] + [None] * 9],
    })
    wpc = load_wpc_export(str(path))
    assert wpc.sheet_name == "Export"
    assert len(wpc.records) == 1
