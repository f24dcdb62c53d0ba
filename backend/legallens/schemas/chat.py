"""
Chat Pydantic Schemas
Request/response models for assistant chat and comparison endpoints.
"""

from pydantic import Field

from legallens.schemas.domain import CamelModel, ChatMessage, ComparisonResult, Contract


class ChatRequest(CamelModel):
    """Request model for an assistant chat message."""
    message: str = Field(..., min_length=1)
    history: list[ChatMessage] = []
    contract_id: str | None = None


class ChatReply(CamelModel):
    reply: ChatMessage


class CompareRequest(CamelModel):
    contract_ids: list[str] = Field(..., min_length=2)


class ComparisonResponse(CamelModel):
    result: ComparisonResult
    recommended: Contract
    contracts: list[Contract] = []


class DifferenceRequest(CamelModel):
    """Follow-up about one key difference; no message asks for the briefing."""
    contract_ids: list[str] = Field(..., min_length=2)
    difference: str = Field(..., min_length=1)
    history: list[ChatMessage] = []
    message: str | None = None
