"""Indicator store — organization-scoped CRUD over the indicator library."""

from __future__ import annotations

import json
from typing import Optional

from sqlalchemy import func, select, update

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.hunt_match import HuntMatch
from ..models.indicator import Indicator
from ..utils.logging import get_logger
from .classifier import IndicatorKind, classify

logger = get_logger("intel.indicator_store")

SEVERITIES = ("low", "medium", "high", "critical")
INDICATOR_SOURCES = ("manual", "virustotal", "alienvault", "misp", "other")

# Values accepted in place of a kind meaning "let the classifier decide"
AUTO_KIND = (None, "", "auto", "auto-detect")

_UPDATABLE_FIELDS = {
    "value", "kind", "severity", "source", "threat_name",
    "description", "tags", "is_active",
}


def _resolve_kind(value: str, kind: Optional[str]) -> tuple[str, Optional[str]]:
    """Return (kind, hash_algorithm) honouring an explicit kind override."""
    detected = classify(value)
    if kind in AUTO_KIND:
        resolved = detected.kind.value
    else:
        try:
            resolved = IndicatorKind(kind).value
        except ValueError:
            raise ValidationError(f"Unknown indicator kind: {kind!r}") from None

    algorithm = None
    if resolved == IndicatorKind.FILE_HASH.value and detected.hash_algorithm is not None:
        algorithm = detected.hash_algorithm.value
    return resolved, algorithm


def _validate_entry(
    value: Optional[str],
    kind: Optional[str],
    severity: str,
    source: str,
) -> tuple[str, str, Optional[str]]:
    """Validate one indicator definition and return (value, kind, hash_algorithm)."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError("Indicator value must not be empty")
    if severity not in SEVERITIES:
        raise ValidationError(f"severity must be one of {SEVERITIES}, got {severity!r}")
    if source not in INDICATOR_SOURCES:
        raise ValidationError(f"source must be one of {INDICATOR_SOURCES}, got {source!r}")
    resolved_kind, algorithm = _resolve_kind(cleaned, kind)
    return cleaned, resolved_kind, algorithm


class IndicatorStore:
    """Persists indicators and resolves them for hunts and quick lookups.

    Inactive indicators are excluded from ``list(active_only=True)``, which
    feeds hunt selection, but stay addressable by id through ``get``.
    """

    def __init__(self, db_session_factory) -> None:
        self._session_factory = db_session_factory

    async def create(
        self,
        organization_id: str,
        value: str,
        kind: Optional[str] = None,
        severity: str = "medium",
        source: str = "manual",
        threat_name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
        is_active: bool = True,
        created_by: Optional[str] = None,
    ) -> dict:
        """Create one indicator, classifying it unless ``kind`` is given."""
        cleaned, resolved_kind, algorithm = _validate_entry(value, kind, severity, source)

        async with self._session_factory() as session:
            indicator = Indicator(
                organization_id=organization_id,
                kind=resolved_kind,
                value=cleaned,
                hash_algorithm=algorithm,
                severity=severity,
                source=source,
                threat_name=threat_name,
                description=description,
                tags_json=json.dumps(tags) if tags else None,
                is_active=is_active,
                created_by=created_by,
            )
            session.add(indicator)
            await session.commit()
            await session.refresh(indicator)
            result = self._to_dict(indicator)

        logger.info("indicator_created", id=result["id"], kind=resolved_kind, org=organization_id)
        return result

    async def bulk_create(self, organization_id: str, entries: list[dict]) -> list[dict]:
        """Create many indicators at once (import path).

        The whole batch is validated before anything is written, so one bad
        entry rejects the import without a partial insert.
        """
        prepared = []
        for position, entry in enumerate(entries):
            try:
                cleaned, resolved_kind, algorithm = _validate_entry(
                    entry.get("value"),
                    entry.get("kind"),
                    entry.get("severity") or "medium",
                    entry.get("source") or "manual",
                )
            except ValidationError as exc:
                raise ValidationError(f"Entry {position}: {exc}") from exc
            prepared.append(
                Indicator(
                    organization_id=organization_id,
                    kind=resolved_kind,
                    value=cleaned,
                    hash_algorithm=algorithm,
                    severity=entry.get("severity") or "medium",
                    source=entry.get("source") or "manual",
                    threat_name=entry.get("threat_name"),
                    description=entry.get("description"),
                    tags_json=json.dumps(entry["tags"]) if entry.get("tags") else None,
                    is_active=entry.get("is_active", True),
                    created_by=entry.get("created_by"),
                )
            )

        if not prepared:
            return []

        async with self._session_factory() as session:
            session.add_all(prepared)
            await session.commit()
            for indicator in prepared:
                await session.refresh(indicator)
            results = [self._to_dict(i) for i in prepared]

        logger.info("indicators_bulk_created", count=len(results), org=organization_id)
        return results

    async def update(self, organization_id: str, indicator_id: int, **fields) -> dict:
        """Update indicator fields.

        Value and kind are frozen once any match references the indicator;
        metadata such as severity or the active flag stays editable.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {sorted(unknown)}")

        async with self._session_factory() as session:
            indicator = await self._load(session, organization_id, indicator_id)

            value_changed = "value" in fields and (fields["value"] or "").strip() != indicator.value
            kind_changed = "kind" in fields and fields["kind"] not in AUTO_KIND and fields["kind"] != indicator.kind
            if value_changed or kind_changed:
                match_count = (await session.execute(
                    select(func.count(HuntMatch.id)).where(HuntMatch.indicator_id == indicator_id)
                )).scalar() or 0
                if match_count:
                    raise ConflictError(
                        f"Indicator {indicator_id} has {match_count} matches; value and kind are frozen"
                    )

            cleaned, resolved_kind, algorithm = _validate_entry(
                fields.get("value", indicator.value),
                fields.get("kind", None if value_changed else indicator.kind),
                fields.get("severity", indicator.severity),
                fields.get("source", indicator.source),
            )
            indicator.value = cleaned
            indicator.kind = resolved_kind
            indicator.hash_algorithm = algorithm
            indicator.severity = fields.get("severity", indicator.severity)
            indicator.source = fields.get("source", indicator.source)
            if "threat_name" in fields:
                indicator.threat_name = fields["threat_name"]
            if "description" in fields:
                indicator.description = fields["description"]
            if "tags" in fields:
                indicator.tags_json = json.dumps(fields["tags"]) if fields["tags"] else None
            if "is_active" in fields:
                indicator.is_active = bool(fields["is_active"])

            await session.commit()
            result = self._to_dict(indicator)

        logger.info("indicator_updated", id=indicator_id, fields=sorted(fields))
        return result

    async def delete(self, organization_id: str, indicator_id: int) -> None:
        """Delete an indicator. Historical matches survive with a null reference."""
        async with self._session_factory() as session:
            indicator = await self._load(session, organization_id, indicator_id)
            await session.execute(
                update(HuntMatch)
                .where(HuntMatch.indicator_id == indicator_id)
                .values(indicator_id=None)
            )
            await session.delete(indicator)
            await session.commit()

        logger.info("indicator_deleted", id=indicator_id, org=organization_id)

    async def list(self, organization_id: str, active_only: bool = False) -> list[dict]:
        """List indicators, newest first."""
        async with self._session_factory() as session:
            query = (
                select(Indicator)
                .where(Indicator.organization_id == organization_id)
                .order_by(Indicator.created_at.desc(), Indicator.id.desc())
            )
            if active_only:
                query = query.where(Indicator.is_active == True)  # noqa: E712
            result = await session.execute(query)
            return [self._to_dict(i) for i in result.scalars().all()]

    async def get(self, organization_id: str, ids: list[int]) -> list[dict]:
        """Resolve indicator ids in request order. Unknown ids are skipped."""
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []

        async with self._session_factory() as session:
            result = await session.execute(
                select(Indicator).where(
                    Indicator.organization_id == organization_id,
                    Indicator.id.in_(wanted),
                )
            )
            found = {i.id: i for i in result.scalars().all()}

        return [self._to_dict(found[i]) for i in wanted if i in found]

    async def get_one(self, organization_id: str, indicator_id: int) -> dict:
        async with self._session_factory() as session:
            return self._to_dict(await self._load(session, organization_id, indicator_id))

    @staticmethod
    async def _load(session, organization_id: str, indicator_id: int) -> Indicator:
        indicator = (await session.execute(
            select(Indicator).where(
                Indicator.id == indicator_id,
                Indicator.organization_id == organization_id,
            )
        )).scalar_one_or_none()
        if indicator is None:
            raise NotFoundError(f"Indicator {indicator_id} not found")
        return indicator

    @staticmethod
    def _to_dict(indicator: Indicator) -> dict:
        return {
            "id": indicator.id,
            "organization_id": indicator.organization_id,
            "kind": indicator.kind,
            "value": indicator.value,
            "hash_algorithm": indicator.hash_algorithm,
            "severity": indicator.severity,
            "source": indicator.source,
            "threat_name": indicator.threat_name,
            "description": indicator.description,
            "tags": json.loads(indicator.tags_json) if indicator.tags_json else [],
            "is_active": indicator.is_active,
            "created_by": indicator.created_by,
            "created_at": indicator.created_at.isoformat() if indicator.created_at else None,
        }
