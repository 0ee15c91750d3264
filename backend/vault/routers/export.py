from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from vault.auth import get_current_user_id
from vault.database import get_gateway
from vault.gateway import PersistenceGateway
from vault.schemas import StatsOut
from vault.services.export import ExportEngine
from vault.services.stats import compute_stats

router = APIRouter(tags=["export"])


@router.get("/export/{fmt}")
def export_data(
    fmt: str,
    sections: Optional[str] = Query(None, description="Comma-separated, e.g. travel,flights"),
    user_id: str = Depends(get_current_user_id),
    gateway: PersistenceGateway = Depends(get_gateway),
):
    """Download the caller's data as pdf, csv, excel (.xlsx) or json."""
    requested = sections.split(",") if sections else None
    artifact = ExportEngine(gateway).export(user_id, fmt, requested)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f"attachment; filename={artifact.filename}"},
    )


@router.get("/stats", response_model=StatsOut, tags=["stats"])
def stats(
    user_id: str = Depends(get_current_user_id),
    gateway: PersistenceGateway = Depends(get_gateway),
):
    return compute_stats(gateway, user_id)
