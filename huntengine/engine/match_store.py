"""Match store — persisted hunt matches and analyst review."""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from ..exceptions import NotFoundError, ValidationError
from ..models.endpoint import Endpoint
from ..models.hunt_match import HuntMatch
from ..sources.base import MatchSourceKind, RawHit
from ..utils.logging import get_logger

logger = get_logger("engine.match_store")


class MatchStore:
    """Append-only match rows plus the reviewed/unreviewed toggle.

    Review status never feeds back into hunt job aggregates.
    """

    def __init__(self, db_session_factory) -> None:
        self._session_factory = db_session_factory

    async def insert(
        self,
        hunt_job_id: Optional[int],
        indicator_id: Optional[int],
        source: MatchSourceKind,
        hit: RawHit,
    ) -> dict:
        """Persist a single match and return it."""
        async with self._session_factory() as session:
            match = self._build(hunt_job_id, indicator_id, source, hit)
            session.add(match)
            await session.commit()
            await session.refresh(match)
            return self._to_dict(match)

    async def insert_many(
        self,
        hunt_job_id: Optional[int],
        indicator_id: Optional[int],
        source: MatchSourceKind,
        hits: list[RawHit],
    ) -> int:
        """Persist hits in the order given and return how many were written."""
        if not hits:
            return 0
        async with self._session_factory() as session:
            session.add_all([self._build(hunt_job_id, indicator_id, source, h) for h in hits])
            await session.commit()
        return len(hits)

    async def get(self, match_id: int) -> dict:
        async with self._session_factory() as session:
            return self._to_dict(await self._load(session, match_id))

    async def list_by_job(self, hunt_job_id: int, reviewed: Optional[bool] = None) -> list[dict]:
        """List a job's matches newest first, with endpoint display details."""
        async with self._session_factory() as session:
            query = (
                select(HuntMatch, Endpoint.hostname, Endpoint.is_online)
                .outerjoin(Endpoint, Endpoint.id == HuntMatch.endpoint_id)
                .where(HuntMatch.hunt_job_id == hunt_job_id)
                .order_by(HuntMatch.created_at.desc(), HuntMatch.id.desc())
            )
            if reviewed is not None:
                query = query.where(HuntMatch.reviewed == reviewed)
            rows = (await session.execute(query)).all()

        results = []
        for match, hostname, is_online in rows:
            item = self._to_dict(match)
            item["endpoint"] = {"hostname": hostname, "is_online": bool(is_online)}
            results.append(item)
        return results

    async def set_reviewed(self, match_id: int, reviewed: bool, actor: Optional[str]) -> dict:
        """Mark a match reviewed by ``actor``, or clear the review entirely."""
        if reviewed and not actor:
            raise ValidationError("An actor is required to mark a match reviewed")

        async with self._session_factory() as session:
            match = await self._load(session, match_id)
            match.reviewed = reviewed
            # reviewed_by and reviewed_at are set or cleared together
            if reviewed:
                match.reviewed_by = actor
                match.reviewed_at = datetime.now(timezone.utc)
            else:
                match.reviewed_by = None
                match.reviewed_at = None
            await session.commit()
            result = self._to_dict(match)

        logger.info("match_review_updated", id=match_id, reviewed=reviewed, actor=actor)
        return result

    @staticmethod
    def _build(hunt_job_id, indicator_id, source, hit: RawHit) -> HuntMatch:
        return HuntMatch(
            hunt_job_id=hunt_job_id,
            indicator_id=indicator_id,
            endpoint_id=hit.endpoint_id,
            source=MatchSourceKind(source).value,
            matched_value=hit.matched_value or "",
            context_json=json.dumps(hit.context, default=str) if hit.context else None,
            reviewed=False,
        )

    @staticmethod
    async def _load(session, match_id: int) -> HuntMatch:
        match = (await session.execute(
            select(HuntMatch).where(HuntMatch.id == match_id)
        )).scalar_one_or_none()
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    @staticmethod
    def _to_dict(match: HuntMatch) -> dict:
        return {
            "id": match.id,
            "hunt_job_id": match.hunt_job_id,
            "indicator_id": match.indicator_id,
            "endpoint_id": match.endpoint_id,
            "source": match.source,
            "matched_value": match.matched_value,
            "context": json.loads(match.context_json) if match.context_json else {},
            "reviewed": match.reviewed,
            "reviewed_by": match.reviewed_by,
            "reviewed_at": match.reviewed_at.isoformat() if match.reviewed_at else None,
            "created_at": match.created_at.isoformat() if match.created_at else None,
        }
