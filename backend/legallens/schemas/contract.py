"""
Contract Pydantic Schemas
Request/response models for contract, upload and recent-analysis endpoints.
"""

from pydantic import BaseModel, Field

from legallens.schemas.domain import CamelModel, Contract


class ClauseQuestionRequest(BaseModel):
    """Request model for a question about one clause."""
    question: str = Field(..., min_length=1)


class ClauseQuestionResponse(CamelModel):
    saved: bool = True
    contract: Contract


class UploadItemResponse(CamelModel):
    id: str
    file_name: str
    mime_type: str
    size: int
    status: str
    error: str | None = None
    contract: Contract | None = None


class UploadBatchResponse(CamelModel):
    """Snapshot of a batch upload."""
    id: str
    items: list[UploadItemResponse] = []
    validation_error: str | None = None
    has_processing: bool = False
    all_success: bool = False
    has_errors: bool = False
    completed_contract: Contract | None = None
