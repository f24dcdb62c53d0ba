"""
Pydantic Schemas
Domain entities and request/response models for API validation.
"""

from legallens.schemas.domain import (
    User,
    RiskLevel,
    ContractStatus,
    QAPair,
    Clause,
    ContractAnalysis,
    Contract,
    RecentAnalysis,
    ComparisonResult,
    ChatMessage,
)
from legallens.schemas.auth import (
    LoginRequest,
    UpdateProfileRequest,
    TokenResponse,
    ProfileStatsResponse,
    ErrorResponse,
)
from legallens.schemas.contract import (
    ClauseQuestionRequest,
    ClauseQuestionResponse,
    UploadItemResponse,
    UploadBatchResponse,
)
from legallens.schemas.chat import (
    ChatRequest,
    ChatReply,
    CompareRequest,
    ComparisonResponse,
    DifferenceRequest,
)

__all__ = [
    # Domain
    'User',
    'RiskLevel',
    'ContractStatus',
    'QAPair',
    'Clause',
    'ContractAnalysis',
    'Contract',
    'RecentAnalysis',
    'ComparisonResult',
    'ChatMessage',
    # Auth
    'LoginRequest',
    'UpdateProfileRequest',
    'TokenResponse',
    'ProfileStatsResponse',
    'ErrorResponse',
    # Contract
    'ClauseQuestionRequest',
    'ClauseQuestionResponse',
    'UploadItemResponse',
    'UploadBatchResponse',
    # Chat
    'ChatRequest',
    'ChatReply',
    'CompareRequest',
    'ComparisonResponse',
    'DifferenceRequest',
]
