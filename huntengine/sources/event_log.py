"""Log source — free-text endpoint event logs."""

from sqlalchemy import select

from ..intel.classifier import IndicatorKind
from ..models.endpoint import Endpoint
from ..models.event_log import EventLogRecord
from .base import MatchSource, MatchSourceKind, RawHit, escape_like


class LogSource(MatchSource):
    """Substring search of the raw indicator value over event messages.

    Hashes are not searched here, log messages do not reliably carry them.
    """

    kind = MatchSourceKind.LOG

    async def find_by_message_substring(self, organization_id: str, fragment: str, limit: int) -> list[RawHit]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EventLogRecord, Endpoint.hostname)
                .join(Endpoint, Endpoint.id == EventLogRecord.endpoint_id)
                .where(
                    Endpoint.organization_id == organization_id,
                    EventLogRecord.message.ilike(f"%{escape_like(fragment)}%", escape="\\"),
                )
                .order_by(EventLogRecord.event_time.desc(), EventLogRecord.id.desc())
                .limit(limit)
            )
            rows = result.all()

        return [
            RawHit(
                endpoint_id=log.endpoint_id,
                endpoint_hostname=hostname,
                matched_value=fragment,
                context={
                    "message": log.message,
                    "event_time": log.event_time.isoformat() if log.event_time else None,
                    "log_source": log.log_source,
                    "event_id": log.event_id,
                    "raw_data": log.raw_data,
                },
            )
            for log, hostname in rows
        ]

    async def _query(self, organization_id, value, kind, limit):
        if kind == IndicatorKind.FILE_HASH:
            return []
        return await self.find_by_message_substring(organization_id, value, limit)
