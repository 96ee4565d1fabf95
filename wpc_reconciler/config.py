"""
Configuration: metric registry, header aliases, status literals, constants.

METRIC_REGISTRY maps each canonical metric to the WPC Name labels it is
known by, the reference section it resolves from, and the field it reads.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# File paths: defaults for the CLI, adjust if source files move
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

WPC_FILE = DATA_DIR / "wpcsdm_wpc_export.xlsx"
SFXL_FILE = DATA_DIR / "NEW SFXL.xlsx"
SITELIST_FILE = DATA_DIR / "sitelist_mocn.csv"
TAGGING_FILE = DATA_DIR / "TAGGING.xlsx"
OUTPUT_FILE = DATA_DIR / "wpcsdm_out.xlsx"

WPC_SHEET = "wpcsdm_wpc_export"

# ---------------------------------------------------------------------------
# Literals written into the tracked table
# ---------------------------------------------------------------------------
NA_TEXT = "#N/A"

STATUS_KPI_NORMALIZED = "KPI Normalized"
STATUS_SSH_APPROVAL = "NY SSH Approval"
STATUS_SITE_DROPPED = "Close due to site already drop"

DROP_MARKER = "Drop"
MOCN_DATE_HEADER = "MOCN DATE"
MOCN_DATE_FORMAT = "dd/mm/yy"

# ---------------------------------------------------------------------------
# Business rule parameters
# ---------------------------------------------------------------------------
SSH_MARKER = "SSH"
SSH_PRIORITY = "P1"
SSH_OPERATOR = "MOCN"
SSH_TARGET_YEARS = frozenset({2025, 2026})

SF_OPERATOR = "SF"
DECOMMISSION_TAGS = frozenset({"DROP", "DISMANTLE", "DISMANTLED", "NYOA"})

RATIO_FLOOR = -0.10
TRAFFIC_DIFF_FLOOR = -50.0
S1_FLOOR = 99.0
LOSS_CEILING = 0.6
LOSS_DIFF_CEILING = 0.2

# Lowest numeric value treated as a spreadsheet date serial (mid-1954)
EXCEL_SERIAL_MIN = 20000
EXCEL_EPOCH = "1899-12-30"

# ---------------------------------------------------------------------------
# Metric registry
# ---------------------------------------------------------------------------
# labels: WPC Name variants (matched after header normalisation)
# source: reference section the value comes from
# field:  attribute on the reference record (None for single-value sections)
# fallback: source, field and scale used when the source section is absent
METRIC_REGISTRY: dict[str, dict] = {
    "AvgCQI": {
        "labels": ["Avg CQI"],
        "source": "entity",
        "field": "avg_cqi",
    },
    "AvgDLSpectralEfficiency": {
        "labels": ["Avg DL SE"],
        "source": "entity",
        "field": "dl_se",
    },
    "S1SuccessRate": {
        "labels": ["S1 Set up success rate (%)"],
        "source": "entity",
        "field": "s1_rate",
    },
    "UEDLThroughput": {
        "labels": ["UE DL IP Throughput"],
        "source": "entity",
        "field": "dl_throughput",
    },
    "UEULThroughput": {
        "labels": ["UE UL IP Throughput"],
        "source": "entity",
        "field": "ul_throughput",
    },
    "IPPDPacketLoss": {
        "labels": ["IPPD Packet Loss"],
        "source": "ippd",
        "field": None,
        # used when the workbook has no IPPD section
        "fallback": {"source": "entity", "field": "loss_rank", "scale": 100.0},
    },
    "DLTraffic": {
        "labels": ["DL Traffic"],
        "source": "traffic",
        "field": "payload_sum",
    },
    "RRCConnUsers": {
        "labels": ["RRC Conn Users"],
        "source": "traffic",
        "field": "rrc_user_sum",
    },
    "TWAMPPacketLoss": {
        "labels": ["TWAMP Packet Loss", "TWAMP"],
        "source": "twamp",
        "field": None,
    },
}

# ---------------------------------------------------------------------------
# Tracked table (WPC export) columns
# ---------------------------------------------------------------------------
# logical field -> ordered header variants
WPC_COLUMNS: dict[str, list[str]] = {
    "entity_key": ["Entity_ID"],
    "metric_label": ["WPC Name"],
    "baseline": ["Day-7"],
    "kpi_value": ["KPI D-1"],
    "status": ["Status"],
    "tower_key": ["Tower ID", "TowerID"],
    "tagging": ["TAGGING"],
    "date_or_marker": ["MOCN DATE", "MOCN Date"],
    "description": ["Description2"],
    "priority": ["Priority"],
    "operator": ["Operator"],
}

WPC_REQUIRED_STEP1 = ["entity_key", "metric_label", "baseline", "kpi_value", "status"]
WPC_REQUIRED = WPC_REQUIRED_STEP1 + ["tower_key", "tagging", "date_or_marker"]

# ---------------------------------------------------------------------------
# Metrics workbook (SFXL) sections
# ---------------------------------------------------------------------------
# section -> sheet aliases, key column variants, field -> header variants
SFXL_SECTIONS: dict[str, dict] = {
    "entity": {
        "sheets": ["DATA"],
        "key": ["MOEntity"],
        "fields": {
            "avg_cqi": ["Avg CQI"],
            "dl_se": ["DL SE"],
            "s1_rate": ["S1 Setup Success Rate"],
            "dl_throughput": ["DL User Throughput"],
            "ul_throughput": ["UL User Throughput"],
            "loss_rank": ["Rank2"],
        },
    },
    "traffic": {
        "sheets": ["TRAFFIC", "PLMN"],
        "key": ["Row Labels"],
        "fields": {
            "payload_sum": ["Sum of Payload per PLMN"],
            "rrc_user_sum": ["Sum of RRC User per PLMN"],
        },
    },
    "twamp": {
        "sheets": ["TWAMP"],
        "key": ["Row Labels"],
        "fields": {"value": ["Max of MAX TWAMP"]},
    },
    "ippd": {
        "sheets": ["IPPD"],
        "key": ["Row Labels"],
        "fields": {"value": ["IPPD*100"]},
        # header fragments tried in order when no exact variant matches
        "contains": [["IPPD", "100"], ["IPPD", "%"]],
    },
}

# ---------------------------------------------------------------------------
# Site list and tagging
# ---------------------------------------------------------------------------
SITELIST_COLUMNS: dict[str, list[str]] = {
    "tower_key": ["New XL ID"],
    "mocn_date": ["MOCN Date"],
    "keep_drop": ["Keep/Drop"],
}
SITELIST_ALL_SHEETS = ["SITELIST", "SITE LIST", "ALL"]
SITELIST_SF_SHEETS = ["SF ONLY", "SF"]

TAGGING_COLUMNS: dict[str, list[str]] = {
    "tower_key": ["Tower ID", "TowerID"],
    "remark": ["Remark"],
}
