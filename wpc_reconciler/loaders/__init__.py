"""Data ingestion loaders for the WPC tracker and its reference sources."""

from .sfxl import load_sfxl_maps
from .sitelist import load_sitelist
from .tagging import load_tagging
from .wpc_export import WpcWorkbook, load_wpc_export

__all__ = [
    "load_sfxl_maps",
    "load_sitelist",
    "load_tagging",
    "load_wpc_export",
    "WpcWorkbook",
]
