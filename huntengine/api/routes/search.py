"""Quick search route — ad-hoc lookup with no persisted history."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...dependencies import get_organization_id, get_quick_search

router = APIRouter(prefix="/search", tags=["search"])


class QuickSearchRequest(BaseModel):
    value: str = Field(..., max_length=2048)


@router.post("/quick")
async def quick_search(
    body: QuickSearchRequest,
    organization_id: str = Depends(get_organization_id),
    search=Depends(get_quick_search),
):
    """Classify a value and search inventory and logs for it."""
    results = await search.search(organization_id, body.value)
    return {"count": len(results), "results": results}
