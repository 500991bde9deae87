"""Hunt job routes — create, inspect, execute, delete, and list matches."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ...dependencies import (
    get_hunt_executor,
    get_hunt_job_store,
    get_match_store,
    get_organization_id,
)

router = APIRouter(prefix="/hunts", tags=["hunts"])


class HuntCreate(BaseModel):
    name: str
    description: str | None = None
    hunt_kind: str = "ioc_sweep"
    indicator_ids: list[int] = []
    parameters: dict | None = None
    created_by: str | None = None


class HuntExecute(BaseModel):
    indicator_ids: list[int] | None = None


@router.get("/")
async def list_hunts(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
):
    """List hunt jobs, newest first."""
    return await jobs.list(organization_id, status=status_filter, limit=limit)


@router.get("/stats")
async def hunt_stats(
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
):
    return await jobs.get_stats(organization_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_hunt(
    body: HuntCreate,
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
):
    """Create a pending hunt job over a set of indicator ids."""
    return await jobs.create(organization_id, **body.model_dump())


@router.get("/{job_id}")
async def get_hunt(
    job_id: int,
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
):
    return await jobs.get(organization_id, job_id)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hunt(
    job_id: int,
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
):
    """Delete a finished or pending hunt and its matches (409 while running)."""
    await jobs.delete(organization_id, job_id)


@router.post("/{job_id}/execute")
async def execute_hunt(
    job_id: int,
    body: HuntExecute | None = None,
    organization_id: str = Depends(get_organization_id),
    executor=Depends(get_hunt_executor),
):
    """Run the hunt to completion and return its aggregates."""
    indicator_ids = body.indicator_ids if body else None
    summary = await executor.execute_hunt(organization_id, job_id, indicator_ids)
    return asdict(summary)


@router.get("/{job_id}/matches")
async def list_hunt_matches(
    job_id: int,
    reviewed: bool | None = None,
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
    matches=Depends(get_match_store),
):
    """List the matches a hunt produced, with endpoint hostnames."""
    await jobs.get(organization_id, job_id)
    return await matches.list_by_job(job_id, reviewed=reviewed)
