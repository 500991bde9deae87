"""Inventory source — executed and installed files discovered on endpoints."""

from sqlalchemy import func, select

from ..intel.classifier import IndicatorKind
from ..models.endpoint import Endpoint
from ..models.inventory_record import InventoryRecord
from .base import MatchSource, MatchSourceKind, RawHit, escape_like


class InventorySource(MatchSource):
    """Searches the file inventory by hash, full path or file name.

    Hashes match exactly, paths and names by substring, all case-insensitive.
    """

    kind = MatchSourceKind.INVENTORY

    async def find_by_hash(self, organization_id: str, file_hash: str, limit: int) -> list[RawHit]:
        condition = func.lower(InventoryRecord.file_hash) == file_hash.strip().lower()
        return await self._find(organization_id, condition, "file_hash", limit)

    async def find_by_path_substring(self, organization_id: str, fragment: str, limit: int) -> list[RawHit]:
        condition = InventoryRecord.file_path.ilike(f"%{escape_like(fragment)}%", escape="\\")
        return await self._find(organization_id, condition, "file_path", limit)

    async def find_by_name_substring(self, organization_id: str, fragment: str, limit: int) -> list[RawHit]:
        condition = InventoryRecord.file_name.ilike(f"%{escape_like(fragment)}%", escape="\\")
        return await self._find(organization_id, condition, "file_name", limit)

    async def _query(self, organization_id, value, kind, limit):
        if kind == IndicatorKind.FILE_HASH:
            return await self.find_by_hash(organization_id, value, limit)
        if kind == IndicatorKind.FILE_PATH:
            return await self.find_by_path_substring(organization_id, value, limit)
        if kind == IndicatorKind.FILE_NAME:
            return await self.find_by_name_substring(organization_id, value, limit)
        return []

    async def _find(self, organization_id: str, condition, matched_field: str, limit: int) -> list[RawHit]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(InventoryRecord, Endpoint.hostname)
                .outerjoin(Endpoint, Endpoint.id == InventoryRecord.endpoint_id)
                .where(InventoryRecord.organization_id == organization_id, condition)
                .order_by(InventoryRecord.id)
                .limit(limit)
            )
            rows = result.all()

        return [
            RawHit(
                endpoint_id=record.endpoint_id,
                endpoint_hostname=hostname,
                matched_value=getattr(record, matched_field) or "",
                context={
                    "file_path": record.file_path,
                    "file_name": record.file_name,
                    "file_hash": record.file_hash,
                },
            )
            for record, hostname in rows
        ]
