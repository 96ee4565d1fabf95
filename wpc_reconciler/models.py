"""
Typed records flowing through the reconciliation.

TrackedRecord mirrors one row of the WPC export and is the only mutable
entity. Reference records are built once per run by the loaders and held
read-only in a ReferenceMaps run context.

Cell values that can be "not found" use a small sum type:
    - None                -> blank cell
    - Marker.UNRESOLVED   -> lookup miss, written back as #N/A
    - anything else       -> a real value
"""

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from .config import METRIC_REGISTRY, NA_TEXT


class Marker(enum.Enum):
    """Explicit lookup-miss sentinel."""

    UNRESOLVED = NA_TEXT

    def __str__(self) -> str:
        return self.value


UNRESOLVED = Marker.UNRESOLVED


def _label_key(label: str) -> str:
    return " ".join(str(label).split()).upper()


class Metric(enum.Enum):
    """Closed set of WPC metrics the reconciler knows how to resolve."""

    AVG_CQI = "AvgCQI"
    AVG_DL_SE = "AvgDLSpectralEfficiency"
    S1_SUCCESS_RATE = "S1SuccessRate"
    UE_DL_THROUGHPUT = "UEDLThroughput"
    UE_UL_THROUGHPUT = "UEULThroughput"
    IPPD_PACKET_LOSS = "IPPDPacketLoss"
    DL_TRAFFIC = "DLTraffic"
    RRC_CONN_USERS = "RRCConnUsers"
    TWAMP_PACKET_LOSS = "TWAMPPacketLoss"

    @property
    def entry(self) -> dict:
        return METRIC_REGISTRY[self.value]

    @property
    def source(self) -> str:
        return self.entry["source"]

    @property
    def labels(self) -> list[str]:
        return self.entry["labels"]

    @classmethod
    def from_label(cls, label: Any) -> "Metric | None":
        """Return the metric for a WPC Name cell, or None if it is not tracked."""
        if label is None:
            return None
        return _LABEL_INDEX.get(_label_key(label))


_LABEL_INDEX: dict[str, Metric] = {
    _label_key(label): metric for metric in Metric for label in metric.labels
}

ENTITY_METRICS = frozenset({
    Metric.AVG_CQI,
    Metric.AVG_DL_SE,
    Metric.S1_SUCCESS_RATE,
    Metric.UE_DL_THROUGHPUT,
    Metric.UE_UL_THROUGHPUT,
})
RATIO_METRICS = frozenset({
    Metric.AVG_CQI,
    Metric.AVG_DL_SE,
    Metric.UE_DL_THROUGHPUT,
    Metric.UE_UL_THROUGHPUT,
    Metric.RRC_CONN_USERS,
})
LOSS_METRICS = frozenset({Metric.IPPD_PACKET_LOSS, Metric.TWAMP_PACKET_LOSS})
SSH_METRICS = frozenset({
    Metric.AVG_CQI,
    Metric.AVG_DL_SE,
    Metric.UE_DL_THROUGHPUT,
    Metric.UE_UL_THROUGHPUT,
})


@dataclass
class TrackedRecord:
    """One row of the WPC export.

    Only kpi_value, status, tagging and date_or_marker are ever written.
    status_claimed_by names the pass that set Status during this run.
    """

    row: int
    entity_key: str = ""
    metric_label: str = ""
    tower_key: str = ""
    baseline: float | None = None
    kpi_value: float | Marker | None = None
    status: str | None = None
    tagging: str | Marker | None = None
    date_or_marker: date | str | Marker | None = None
    description: str = ""
    priority: str = ""
    operator: str = ""
    status_claimed_by: str | None = None

    @property
    def metric(self) -> Metric | None:
        return Metric.from_label(self.metric_label)


@dataclass(frozen=True)
class EntityMetrics:
    """DATA sheet row keyed by MOEntity."""

    avg_cqi: float | None = None
    dl_se: float | None = None
    s1_rate: float | None = None
    dl_throughput: float | None = None
    ul_throughput: float | None = None
    loss_rank: float | None = None


@dataclass(frozen=True)
class TrafficMetrics:
    """TRAFFIC/PLMN pivot row keyed by Row Labels."""

    payload_sum: float | None = None
    rrc_user_sum: float | None = None


@dataclass(frozen=True)
class SiteListEntry:
    mocn_date: Any = None
    keep_drop: Any = None


@dataclass
class NeededKeys:
    """Keys the tracked table will actually look up, per reference section."""

    entity: set[str] = field(default_factory=set)
    traffic: set[str] = field(default_factory=set)
    twamp: set[str] = field(default_factory=set)
    ippd: set[str] = field(default_factory=set)
    tower: set[str] = field(default_factory=set)

    def for_section(self, section: str) -> set[str]:
        return getattr(self, section)

    def sizes(self) -> dict[str, int]:
        return {
            "entity": len(self.entity),
            "traffic": len(self.traffic),
            "twamp": len(self.twamp),
            "ippd": len(self.ippd),
            "tower": len(self.tower),
        }


@dataclass
class ReferenceMaps:
    """Per-run lookup maps. Built by the load phase, never mutated afterwards."""

    entity: dict[str, EntityMetrics] = field(default_factory=dict)
    traffic: dict[str, TrafficMetrics] = field(default_factory=dict)
    twamp: dict[str, float | None] = field(default_factory=dict)
    ippd: dict[str, float | None] = field(default_factory=dict)
    sitelist_all: dict[str, SiteListEntry] = field(default_factory=dict)
    sitelist_sf: dict[str, SiteListEntry] = field(default_factory=dict)
    tagging: dict[str, str] = field(default_factory=dict)
    sections: frozenset[str] = frozenset()

    def has_section(self, section: str) -> bool:
        return section in self.sections

    def sizes(self) -> dict[str, int]:
        return {
            "entity": len(self.entity),
            "traffic": len(self.traffic),
            "twamp": len(self.twamp),
            "ippd": len(self.ippd),
            "sitelist": len(self.sitelist_all),
            "tagging": len(self.tagging),
        }
