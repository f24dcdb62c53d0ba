"""
Contract Service
Dashboard listing, clause Q&A and profile statistics over stored contracts.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from legallens.config import get_settings
from legallens.core.errors import InputValidationError, StorageError
from legallens.schemas.domain import (
    Contract,
    ContractAnalysis,
    ContractStatus,
    QAPair,
    RecentAnalysis,
    RiskLevel,
)
from legallens.services.ai_service import AIService
from legallens.services.storage_service import StorageService


logger = logging.getLogger(__name__)

SORT_ORDERS = ("newest", "oldest", "risk_high", "risk_low", "name_asc", "name_desc")


def _score(contract: Contract) -> int:
    return (contract.analysis.risk_score or 0) if contract.analysis else 0


class ContractService:
    """Operations on a user's stored contracts."""

    def __init__(self, storage: StorageService, ai_service: Optional[AIService] = None):
        self.storage = storage
        self.ai_service = ai_service

    def list_contracts(self, user_id: str, query: str = "", sort: str = "newest") -> List[Contract]:
        """Search file names and summaries, then sort."""
        needle = query.strip().lower()
        contracts = [
            c for c in self.storage.get_contracts(user_id)
            if not needle
            or needle in c.file_name.lower()
            or (c.analysis is not None and needle in c.analysis.summary.lower())
        ]

        if sort == "oldest":
            return sorted(contracts, key=lambda c: c.upload_date)
        if sort == "risk_high":
            return sorted(contracts, key=_score, reverse=True)
        if sort == "risk_low":
            return sorted(contracts, key=_score)
        if sort == "name_asc":
            return sorted(contracts, key=lambda c: c.file_name.lower())
        if sort == "name_desc":
            return sorted(contracts, key=lambda c: c.file_name.lower(), reverse=True)
        return sorted(contracts, key=lambda c: c.upload_date, reverse=True)

    def get_contract(self, user_id: str, contract_id: str) -> Optional[Contract]:
        return self.storage.get_contract(user_id, contract_id)

    async def ask_clause(self, contract: Contract, clause_id: str, question: str) -> Contract:
        """Ask about one clause and return a new contract with the Q&A appended."""
        if not question.strip():
            raise InputValidationError("Question is required.")
        if contract.analysis is None:
            raise InputValidationError("Contract has no analysis.")

        clause = next((c for c in contract.analysis.clauses if c.id == clause_id), None)
        if clause is None:
            raise InputValidationError(f"Unknown clause: {clause_id}")

        answer = await self.ai_service.answer_clause_question(clause.text, question)
        qa = QAPair(question=question, answer=answer)
        updated_clause = clause.model_copy(update={
            "conversation_history": [*(clause.conversation_history or []), qa],
        })

        analysis = contract.analysis.model_copy(update={
            "clauses": [updated_clause if c.id == clause_id else c for c in contract.analysis.clauses],
        })
        return contract.model_copy(update={"analysis": analysis})

    async def persist_update(self, contract: Contract) -> bool:
        """Save an edited contract. Failures are logged and reported as False."""
        try:
            await self.storage.save_contract(contract)
            return True
        except StorageError:
            logger.error("Failed to save contract update %s", contract.id)
            return False

    def select_for_comparison(self, user_id: str, contract_ids: Sequence[str]) -> List[Contract]:
        """Resolve 2-3 owned, analyzed contracts in the requested order."""
        max_compare = get_settings().max_compare
        unique_ids = list(dict.fromkeys(contract_ids))
        if not 2 <= len(unique_ids) <= max_compare:
            raise InputValidationError(f"Select between 2 and {max_compare} contracts to compare.")

        owned = {c.id: c for c in self.storage.get_contracts(user_id)}
        selected = []
        for contract_id in unique_ids:
            contract = owned.get(contract_id)
            if contract is None or contract.analysis is None:
                raise InputValidationError(f"Contract {contract_id} is not available for comparison.")
            selected.append(contract)
        return selected

    @staticmethod
    def recent_to_contract(recent: RecentAnalysis, user_id: str) -> Contract:
        """Rebuild a viewable contract from a recent-analyses cache entry."""
        created = datetime.fromisoformat(recent.created_at.replace("Z", "+00:00"))
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        try:
            overall_risk = RiskLevel(recent.risk_summary)
        except ValueError:
            overall_risk = RiskLevel.LOW

        return Contract(
            id=recent.id,
            user_id=user_id,
            file_name=recent.file_name or recent.name,
            upload_date=int(created.timestamp() * 1000),
            status=ContractStatus.ANALYZED,
            analysis=ContractAnalysis(
                summary="\n".join(recent.summary),
                overall_risk=overall_risk,
                risk_score=recent.risk_score,
                clauses=recent.clauses,
                full_text=recent.raw_text,
            ),
        )

    def profile_stats(self, user_id: str) -> Dict[str, Any]:
        contracts = self.storage.get_contracts(user_id)
        last_upload = max((c.upload_date for c in contracts), default=None)
        return {
            "total": len(contracts),
            "high_risk": sum(
                1 for c in contracts
                if c.analysis is not None and c.analysis.overall_risk == RiskLevel.HIGH
            ),
            "last_upload": last_upload,
        }
