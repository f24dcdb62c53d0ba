"""
Domain Schemas
Users, contracts, analyses and chat entities shared by storage and the API.
Attributes are snake_case; the JSON form uses camelCase aliases.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ContractStatus(str, Enum):
    PENDING = "pending"
    ANALYZED = "analyzed"
    ERROR = "error"


class User(CamelModel):
    """Account identified by its normalized email."""
    id: str
    email: str
    name: str


class QAPair(CamelModel):
    """One question asked about a clause and its answer."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    question: str
    answer: str
    timestamp: int = Field(default_factory=now_ms)


class Clause(CamelModel):
    id: str
    text: str
    explanation: str
    risk_level: RiskLevel
    risky_keywords: list[str] = []
    reason: str
    conversation_history: list[QAPair] | None = None


class ContractAnalysis(CamelModel):
    summary: str
    overall_risk: RiskLevel
    risk_score: int | None = Field(default=None, ge=0, le=100)
    clauses: list[Clause] = []
    full_text: str | None = None


class Contract(CamelModel):
    id: str
    user_id: str
    file_name: str
    upload_date: int
    status: ContractStatus = ContractStatus.PENDING
    analysis: ContractAnalysis | None = None
    file_data: str | None = None
    mime_type: str | None = None

    @model_validator(mode="after")
    def _analyzed_has_analysis(self):
        if self.status == ContractStatus.ANALYZED and self.analysis is None:
            raise ValueError("An analyzed contract must carry its analysis")
        return self


class RecentAnalysis(CamelModel):
    """Denormalized cache entry shown in the dashboard history."""
    id: str
    name: str
    created_at: str
    source_type: Literal["file", "text"] = "file"
    file_name: str | None = None
    raw_text: str = ""
    risk_score: int = 0
    risk_summary: str
    summary: list[str] = []
    clauses: list[Clause] = []

    @classmethod
    def from_contract(cls, contract: Contract) -> "RecentAnalysis":
        analysis = contract.analysis
        return cls(
            id=contract.id,
            name=contract.file_name,
            created_at=datetime.fromtimestamp(contract.upload_date / 1000, tz=timezone.utc).isoformat(),
            source_type="file",
            file_name=contract.file_name,
            raw_text=analysis.full_text or "",
            risk_score=analysis.risk_score or 0,
            risk_summary=analysis.overall_risk.value,
            summary=[analysis.summary],
            clauses=analysis.clauses,
        )


class ComparisonResult(CamelModel):
    recommended_id: str
    reasoning: str
    key_differences: list[str] = []


class ChatMessage(CamelModel):
    """One turn of a conversation with the assistant."""
    role: Literal["user", "model"]
    text: str
    timestamp: int = Field(default_factory=now_ms)
