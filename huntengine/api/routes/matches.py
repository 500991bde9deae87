"""Match review routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...dependencies import get_hunt_job_store, get_match_store, get_organization_id
from ...exceptions import NotFoundError

router = APIRouter(prefix="/matches", tags=["matches"])


class MatchReview(BaseModel):
    reviewed: bool
    actor: str | None = None


@router.patch("/{match_id}/review")
async def review_match(
    match_id: int,
    body: MatchReview,
    organization_id: str = Depends(get_organization_id),
    jobs=Depends(get_hunt_job_store),
    matches=Depends(get_match_store),
):
    """Mark a match reviewed or unreviewed."""
    match = await matches.get(match_id)
    if match["hunt_job_id"] is None:
        raise NotFoundError(f"Match {match_id} not found")
    # Scope check through the owning job
    await jobs.get(organization_id, match["hunt_job_id"])
    return await matches.set_reviewed(match_id, body.reviewed, body.actor)
