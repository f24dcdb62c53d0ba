"""
Recent Analyses Router
The caller's bounded most-recent-first analysis cache shown on the dashboard.
"""

from fastapi import APIRouter, Depends, HTTPException

from legallens.routers.auth import require_auth
from legallens.schemas.domain import Contract, RecentAnalysis, User
from legallens.services.contract_service import ContractService
from legallens.services.storage_service import StorageService, get_storage


router = APIRouter()


@router.get("", response_model=list[RecentAnalysis])
async def list_recent(
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    return storage.get_recent_analyses(current_user.id)


@router.get("/{analysis_id}", response_model=Contract)
async def open_recent(
    analysis_id: str,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Rebuild a viewable contract from a cached entry."""
    recent = next((r for r in storage.get_recent_analyses(current_user.id) if r.id == analysis_id), None)
    if not recent:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return ContractService.recent_to_contract(recent, current_user.id)


@router.delete("")
async def clear_recent(
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    storage.clear_recent_analyses(current_user.id)
    return {"success": True}
