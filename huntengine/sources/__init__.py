"""Pluggable read-only match sources."""

from .base import (
    SOURCES_BY_KIND,
    MatchSource,
    MatchSourceKind,
    RawHit,
    applicable_sources,
)
from .event_log import LogSource
from .inventory import InventorySource

__all__ = [
    "SOURCES_BY_KIND",
    "InventorySource",
    "LogSource",
    "MatchSource",
    "MatchSourceKind",
    "RawHit",
    "applicable_sources",
]
