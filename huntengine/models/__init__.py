"""SQLAlchemy models package."""

from .base import Base
from .endpoint import Endpoint
from .event_log import EventLogRecord
from .hunt_job import HuntJob
from .hunt_match import HuntMatch
from .indicator import Indicator
from .inventory_record import InventoryRecord

__all__ = [
    "Base",
    "Endpoint",
    "EventLogRecord",
    "HuntJob",
    "HuntMatch",
    "Indicator",
    "InventoryRecord",
]
