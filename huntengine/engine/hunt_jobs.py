"""Hunt job store — hunt job persistence and lifecycle state machine."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete as sa_delete, func as sa_func, select

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.hunt_job import HuntJob
from ..models.hunt_match import HuntMatch
from ..utils.logging import get_logger

logger = get_logger("engine.hunt_jobs")

HUNT_STATUSES = ("pending", "running", "completed", "failed")
HUNT_KINDS = ("ioc_sweep", "quick_search", "pattern_search")

# completed and failed are terminal; a retry is a new job
VALID_TRANSITIONS = {
    "pending": ["running"],
    "running": ["completed", "failed"],
    "completed": [],
    "failed": [],
}


class HuntJobStore:
    """Creates hunt jobs and drives them through pending → running → completed/failed."""

    def __init__(self, db_session_factory) -> None:
        self._session_factory = db_session_factory

    async def create(
        self,
        organization_id: str,
        name: str,
        indicator_ids: list[int] | None = None,
        description: str | None = None,
        hunt_kind: str = "ioc_sweep",
        parameters: dict | None = None,
        created_by: str | None = None,
    ) -> dict:
        """Create a hunt job in ``pending``."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Hunt name must not be empty")
        if hunt_kind not in HUNT_KINDS:
            raise ValidationError(f"hunt_kind must be one of {HUNT_KINDS}, got {hunt_kind!r}")

        async with self._session_factory() as session:
            job = HuntJob(
                organization_id=organization_id,
                name=cleaned,
                description=description,
                status="pending",
                hunt_kind=hunt_kind,
                indicator_ids_json=json.dumps(list(indicator_ids or [])),
                parameters_json=json.dumps(parameters) if parameters else None,
                total_endpoints=0,
                matches_found=0,
                created_by=created_by,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            result = self._to_dict(job)

        logger.info("hunt_job_created", id=result["id"], name=cleaned, indicators=len(result["indicator_ids"]))
        return result

    async def get(self, organization_id: str, job_id: int) -> dict:
        async with self._session_factory() as session:
            return self._to_dict(await self._load(session, organization_id, job_id))

    async def list(self, organization_id: str, status: str | None = None, limit: int = 100) -> list[dict]:
        """List hunt jobs newest first, optionally filtered by status."""
        async with self._session_factory() as session:
            query = (
                select(HuntJob)
                .where(HuntJob.organization_id == organization_id)
                .order_by(HuntJob.created_at.desc(), HuntJob.id.desc())
                .limit(limit)
            )
            if status:
                query = query.where(HuntJob.status == status)
            result = await session.execute(query)
            return [self._to_dict(j) for j in result.scalars().all()]

    async def update_status(
        self,
        organization_id: str,
        job_id: int,
        new_status: str,
        total_endpoints: Optional[int] = None,
        matches_found: Optional[int] = None,
        error_message: Optional[str] = None,
        indicator_ids: Optional[list[int]] = None,
    ) -> dict:
        """Apply a lifecycle transition, stamping timestamps and aggregates.

        ``indicator_ids`` on the move to running replaces the stored ids with
        the set the run actually uses.
        """
        async with self._session_factory() as session:
            job = await self._load(session, organization_id, job_id)

            allowed = VALID_TRANSITIONS.get(job.status, [])
            if new_status not in allowed:
                raise ConflictError(
                    f"Cannot transition hunt {job_id} from {job.status} to {new_status}. Allowed: {allowed}"
                )

            old_status = job.status
            job.status = new_status
            now = datetime.now(timezone.utc)

            if new_status == "running":
                job.started_at = now
                # Aggregates are recomputed from scratch for every run
                job.total_endpoints = 0
                job.matches_found = 0
                job.error_message = None
                if indicator_ids is not None:
                    job.indicator_ids_json = json.dumps(list(indicator_ids))
            else:
                job.completed_at = now
                if total_endpoints is not None:
                    job.total_endpoints = total_endpoints
                if matches_found is not None:
                    job.matches_found = matches_found
                if new_status == "failed":
                    job.error_message = error_message

            await session.commit()
            result = self._to_dict(job)

        logger.info("hunt_job_status_updated", id=job_id, old=old_status, new=new_status)
        return result

    async def delete(self, organization_id: str, job_id: int) -> None:
        """Delete a job and its matches. Running jobs cannot be deleted."""
        async with self._session_factory() as session:
            job = await self._load(session, organization_id, job_id)
            if job.status == "running":
                raise ConflictError(f"Hunt {job_id} is running and cannot be deleted")

            await session.execute(sa_delete(HuntMatch).where(HuntMatch.hunt_job_id == job_id))
            await session.delete(job)
            await session.commit()

        logger.info("hunt_job_deleted", id=job_id, org=organization_id)

    async def get_stats(self, organization_id: str) -> dict:
        """Hunt job counts by status."""
        async with self._session_factory() as session:
            rows = (await session.execute(
                select(HuntJob.status, sa_func.count(HuntJob.id))
                .where(HuntJob.organization_id == organization_id)
                .group_by(HuntJob.status)
            )).all()

        by_status = {s: 0 for s in HUNT_STATUSES}
        for status, count in rows:
            by_status[status] = count
        return {"total": sum(by_status.values()), "by_status": by_status}

    @staticmethod
    async def _load(session, organization_id: str, job_id: int) -> HuntJob:
        job = (await session.execute(
            select(HuntJob).where(
                HuntJob.id == job_id,
                HuntJob.organization_id == organization_id,
            )
        )).scalar_one_or_none()
        if job is None:
            raise NotFoundError(f"Hunt job {job_id} not found")
        return job

    @staticmethod
    def _to_dict(job: HuntJob) -> dict:
        return {
            "id": job.id,
            "organization_id": job.organization_id,
            "name": job.name,
            "description": job.description,
            "status": job.status,
            "hunt_kind": job.hunt_kind,
            "indicator_ids": json.loads(job.indicator_ids_json) if job.indicator_ids_json else [],
            "parameters": json.loads(job.parameters_json) if job.parameters_json else {},
            "started_at": job.started_at.isoformat() if job.started_at else None,
            "completed_at": job.completed_at.isoformat() if job.completed_at else None,
            "total_endpoints": job.total_endpoints,
            "matches_found": job.matches_found,
            "error_message": job.error_message,
            "created_by": job.created_by,
            "created_at": job.created_at.isoformat() if job.created_at else None,
        }
