"""
Comparison Router
Compare 2-3 analyzed contracts and discuss individual differences.
"""

from fastapi import APIRouter, Depends, HTTPException

from legallens.core.errors import LegalLensError, status_code_for
from legallens.core.view_state import InvalidTransition
from legallens.routers.auth import require_auth
from legallens.schemas.chat import (
    ChatReply,
    CompareRequest,
    ComparisonResponse,
    DifferenceRequest,
)
from legallens.schemas.domain import ChatMessage, User
from legallens.services.ai_service import BRIEFING_REQUEST, AIService, get_ai_service
from legallens.services.comparison_service import ComparisonState
from legallens.services.contract_service import ContractService
from legallens.services.session_service import AppSession
from legallens.services.storage_service import StorageService, get_storage


router = APIRouter()


@router.post("", response_model=ComparisonResponse)
async def compare_contracts(
    request: CompareRequest,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Recommend the safest contract and list the key differences."""
    session = AppSession(storage, ai_service)
    session.resume(current_user)
    try:
        comparison = session.compare(request.contract_ids)
    except LegalLensError as e:
        raise HTTPException(status_code=status_code_for(e.kind), detail=e.message)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    await comparison.load()

    if comparison.state == ComparisonState.FAILED:
        raise HTTPException(status_code=502, detail=comparison.error or "Comparison failed")

    return ComparisonResponse(
        result=comparison.result,
        recommended=comparison.recommended,
        contracts=comparison.contracts,
    )


@router.post("/difference", response_model=ChatReply)
async def query_difference(
    request: DifferenceRequest,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Discuss one key difference. Without a message, returns the opening briefing."""
    try:
        contracts = ContractService(storage).select_for_comparison(current_user.id, request.contract_ids)
    except LegalLensError as e:
        raise HTTPException(status_code=status_code_for(e.kind), detail=e.message)

    message = (request.message or "").strip()
    if message:
        history = request.history
    else:
        history, message = [], BRIEFING_REQUEST

    text = await ai_service.query_comparison_difference(history, message, contracts, request.difference)
    return ChatReply(reply=ChatMessage(role="model", text=text))
