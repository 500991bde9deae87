"""Indicator library routes — CRUD, bulk create and text import."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ...dependencies import get_indicator_store, get_organization_id
from ...intel.importer import parse_indicator_import

router = APIRouter(prefix="/indicators", tags=["indicators"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class IndicatorCreate(BaseModel):
    value: str
    kind: str | None = None  # omitted or "auto" → classified from value
    severity: str = "medium"
    source: str = "manual"
    threat_name: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    is_active: bool = True
    created_by: str | None = None


class IndicatorUpdate(BaseModel):
    value: str | None = None
    kind: str | None = None
    severity: str | None = None
    source: str | None = None
    threat_name: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None


class IndicatorBulkCreate(BaseModel):
    items: list[IndicatorCreate]


class IndicatorImport(BaseModel):
    text: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("/")
async def list_indicators(
    active_only: bool = False,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    """List the organization's indicators, newest first."""
    return await store.list(organization_id, active_only=active_only)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_indicator(
    body: IndicatorCreate,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    """Add a single indicator."""
    return await store.create(organization_id, **body.model_dump())


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_create_indicators(
    body: IndicatorBulkCreate,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    """Create many indicators; the batch is rejected as a whole on a bad entry."""
    created = await store.bulk_create(organization_id, [i.model_dump() for i in body.items])
    return {"created": len(created), "items": created}


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_indicators(
    body: IndicatorImport,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    """Import indicators from pasted JSON or one-per-line CSV text."""
    entries = parse_indicator_import(body.text)
    created = await store.bulk_create(organization_id, entries)
    return {"created": len(created), "items": created}


@router.get("/{indicator_id}")
async def get_indicator(
    indicator_id: int,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    return await store.get_one(organization_id, indicator_id)


@router.patch("/{indicator_id}")
async def update_indicator(
    indicator_id: int,
    body: IndicatorUpdate,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    """Update indicator fields that were supplied in the body."""
    return await store.update(organization_id, indicator_id, **body.model_dump(exclude_unset=True))


@router.delete("/{indicator_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_indicator(
    indicator_id: int,
    organization_id: str = Depends(get_organization_id),
    store=Depends(get_indicator_store),
):
    await store.delete(organization_id, indicator_id)
