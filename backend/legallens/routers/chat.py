"""
Assistant Chat Router
General legal Q&A, optionally scoped to one stored contract.
"""

from fastapi import APIRouter, Depends, HTTPException

from legallens.core.view_state import InvalidTransition
from legallens.routers.auth import require_auth
from legallens.schemas.chat import ChatRequest, ChatReply
from legallens.schemas.domain import ChatMessage, User
from legallens.services.ai_service import AIService, get_ai_service
from legallens.services.session_service import AppSession
from legallens.services.storage_service import StorageService, get_storage


router = APIRouter()


@router.post("", response_model=ChatReply)
async def chat(
    request: ChatRequest,
    current_user: User = Depends(require_auth),
    storage: StorageService = Depends(get_storage),
    ai_service: AIService = Depends(get_ai_service)
):
    """Send a chat message. Backend failures come back as an apology, not an error."""
    message = request.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    session = AppSession(storage, ai_service)
    session.resume(current_user)
    if request.contract_id:
        contract = storage.get_contract(current_user.id, request.contract_id)
        if not contract:
            raise HTTPException(status_code=404, detail="Contract not found")
        try:
            session.select_contract(contract)
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))

    text = await session.chat(request.history, message)
    return ChatReply(reply=ChatMessage(role="model", text=text))
