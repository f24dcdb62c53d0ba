"""
Contracts Router
Stored contracts, clause questions and report export.
"""

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from legallens.core.errors import LegalLensError, status_code_for
from legallens.core.view_state import InvalidTransition
from legallens.routers.auth import require_auth
from legallens.schemas.contract import ClauseQuestionRequest, ClauseQuestionResponse
from legallens.schemas.domain import Contract, User
from legallens.services.ai_service import AIService, get_ai_service
from legallens.services.contract_service import SORT_ORDERS, ContractService
from legallens.services.report_service import build_report, report_filename
from legallens.services.session_service import AppSession
from legallens.services.storage_service import StorageService, get_storage


router = APIRouter()


def _get_owned_contract(service: ContractService, user: User, contract_id: str) -> Contract:
    contract = service.get_contract(user.id, contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract


@router.get("", response_model=list[Contract])
async def list_contracts(
    q: str = Query("", description="Search file names and summaries"),
    sort: str = Query("newest", description=f"One of: {', '.join(SORT_ORDERS)}"),
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """List the user's contracts for the dashboard."""
    return ContractService(storage).list_contracts(current_user.id, q, sort)


@router.get("/{contract_id}", response_model=Contract)
async def get_contract(
    contract_id: str,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Get a single analyzed contract."""
    return _get_owned_contract(ContractService(storage), current_user, contract_id)


@router.post("/{contract_id}/clauses/{clause_id}/questions", response_model=ClauseQuestionResponse)
async def ask_clause_question(
    contract_id: str,
    clause_id: str,
    request: ClauseQuestionRequest,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Ask about a clause; the Q&A is appended to the clause history."""
    session = AppSession(storage, ai_service)
    session.resume(current_user)
    contract = _get_owned_contract(session.contracts, current_user, contract_id)

    try:
        session.select_contract(contract)
        updated, saved = await session.ask_clause(clause_id, request.question)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except LegalLensError as e:
        raise HTTPException(status_code=status_code_for(e.kind), detail=e.message)

    return ClauseQuestionResponse(saved=saved, contract=updated)


@router.get("/{contract_id}/report")
async def download_report(
    contract_id: str,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Download the analysis report as PDF."""
    contract = _get_owned_contract(ContractService(storage), current_user, contract_id)
    if not contract.analysis:
        raise HTTPException(status_code=404, detail="No analysis available")

    return Response(
        content=build_report(contract),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_filename(contract)}"'},
    )


@router.get("/{contract_id}/file")
async def download_original(
    contract_id: str,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage)
):
    """Download the originally uploaded document."""
    contract = _get_owned_contract(ContractService(storage), current_user, contract_id)
    if not contract.file_data or not contract.mime_type:
        raise HTTPException(status_code=404, detail="Original file not available")

    try:
        content = base64.b64decode(contract.file_data, validate=True)
    except binascii.Error:
        raise HTTPException(status_code=500, detail="Stored file is corrupted")

    return Response(
        content=content,
        media_type=contract.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{contract.file_name}"'},
    )
