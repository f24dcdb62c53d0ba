"""
Shared fixtures: in-memory storage, a scripted Claude client and sample contracts.
"""

import asyncio
import base64
import json
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from legallens.config import Settings
from legallens.core.storage import KeyValueStore
from legallens.database import Base
from legallens.models import StorageEntry  # noqa: F401
from legallens.schemas.domain import (
    Clause,
    Contract,
    ContractAnalysis,
    ContractStatus,
    RiskLevel,
    User,
)
from legallens.services.ai_service import AIService
from legallens.services.storage_service import StorageService


def text_response(text):
    """Shape of an anthropic Message with a single text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def analysis_json(
    summary="A residential lease.",
    overall_risk="Medium",
    risk_score=55,
    clauses=None,
    full_text="This lease is made between...",
):
    if clauses is None:
        clauses = [{
            "id": "clause-1",
            "text": "Tenant shall pay all repairs.",
            "explanation": "You pay for every repair.",
            "riskLevel": "High",
            "riskyKeywords": ["all repairs"],
            "reason": "Payment Risk: open-ended repair costs.",
        }]
    return json.dumps({
        "summary": summary,
        "overallRisk": overall_risk,
        "riskScore": risk_score,
        "clauses": clauses,
        "fullText": full_text,
    })


def document_bytes(call):
    """Raw bytes of the document sent in an analysis call."""
    source = call["messages"][0]["content"][0]["source"]
    return base64.standard_b64decode(source["data"])


class FakeMessages:
    """
    Stand-in for client.messages.

    Replies come from `responder(kwargs)` when set, else from the `responses`
    queue, else `default`. A reply that is an exception is raised. When `gate`
    is set, every call waits on it first.
    """

    def __init__(self):
        self.calls = []
        self.responses = []
        self.default = "OK"
        self.responder = None
        self.gate = None

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.gate is not None:
            await self.gate.wait()

        if self.responder is not None:
            reply = self.responder(kwargs)
        elif self.responses:
            reply = self.responses.pop(0)
        else:
            reply = self.default

        if isinstance(reply, BaseException):
            raise reply
        return text_response(reply)


class FakeClient:
    def __init__(self):
        self.messages = FakeMessages()


@pytest.fixture
def settings():
    return Settings(_env_file=None, anthropic_api_key="test-key")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return KeyValueStore(session_factory)


@pytest.fixture
def storage(store):
    return StorageService(store, recent_limit=10)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def ai_service(settings, fake_client):
    return AIService(settings=settings, client=fake_client)


@pytest.fixture
def user():
    return User(id="alice@example.com", email="alice@example.com", name="Alice")


@pytest.fixture
def gate():
    return asyncio.Event()


def make_contract(
    contract_id="c1",
    file_name="Lease.pdf",
    user_id="alice@example.com",
    risk_score=55,
    overall_risk=RiskLevel.MEDIUM,
    upload_date=1_700_000_000_000,
    summary="A residential lease.",
    clauses=None,
    full_text="Full lease text",
):
    if clauses is None:
        clauses = [
            Clause(
                id="clause-1",
                text="Tenant shall pay all repairs.",
                explanation="You pay for every repair.",
                risk_level=RiskLevel.HIGH,
                risky_keywords=["all repairs"],
                reason="Payment Risk: open-ended repair costs.",
            ),
            Clause(
                id="clause-2",
                text="Rent is due on the first of the month.",
                explanation="Pay rent monthly.",
                risk_level=RiskLevel.LOW,
                reason="Payment Risk: standard terms.",
            ),
        ]
    return Contract(
        id=contract_id,
        user_id=user_id,
        file_name=file_name,
        upload_date=upload_date,
        status=ContractStatus.ANALYZED,
        analysis=ContractAnalysis(
            summary=summary,
            overall_risk=overall_risk,
            risk_score=risk_score,
            clauses=clauses,
            full_text=full_text,
        ),
    )
