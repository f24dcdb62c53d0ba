"""
Comparison Service
Cross-contract comparison and per-difference follow-up conversations.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence

from legallens.core.errors import LegalLensError
from legallens.schemas.domain import ChatMessage, ComparisonResult, Contract
from legallens.services.ai_service import BRIEFING_REQUEST, AIService


logger = logging.getLogger(__name__)

BRIEFING_FAILED = "Sorry, I couldn't generate the briefing right now."


class ComparisonState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class DifferenceChat:
    """Conversation scoped to one key difference between the contracts."""

    def __init__(self, ai_service: AIService, contracts: Sequence[Contract], difference: str):
        self.ai_service = ai_service
        self.contracts = list(contracts)
        self.difference = difference
        self.messages: List[ChatMessage] = []
        self.is_loading = False
        self._briefed = False

    async def brief(self) -> List[ChatMessage]:
        """Request the opening briefing. Only the first call reaches the backend."""
        if self._briefed:
            return self.messages
        self._briefed = True
        self.is_loading = True
        try:
            response = await self.ai_service.query_comparison_difference(
                [], BRIEFING_REQUEST, self.contracts, self.difference
            )
        except Exception:
            logger.exception("Briefing failed for difference %r", self.difference)
            response = BRIEFING_FAILED
        finally:
            self.is_loading = False

        self.messages = [ChatMessage(role="model", text=response)]
        return self.messages

    async def ask(self, text: str) -> Optional[ChatMessage]:
        """Send a follow-up question. Blank input or a pending call is ignored."""
        if not text.strip() or self.is_loading:
            return None

        history = list(self.messages)
        self.messages = [*history, ChatMessage(role="user", text=text)]
        self.is_loading = True
        try:
            response = await self.ai_service.query_comparison_difference(
                history, text, self.contracts, self.difference
            )
        finally:
            self.is_loading = False

        reply = ChatMessage(role="model", text=response)
        self.messages = [*self.messages, reply]
        return reply


class ComparisonSession:
    """Compares 2-3 analyzed contracts and manages difference conversations."""

    def __init__(self, ai_service: AIService, contracts: Sequence[Contract], max_compare: int = 3):
        if not 2 <= len(contracts) <= max_compare:
            raise ValueError(f"Comparison needs between 2 and {max_compare} contracts")
        if any(c.analysis is None for c in contracts):
            raise ValueError("Only analyzed contracts can be compared")

        self.ai_service = ai_service
        self.contracts = list(contracts)
        self.state = ComparisonState.LOADING
        self.result: Optional[ComparisonResult] = None
        self.error: Optional[str] = None
        self._chats: Dict[str, DifferenceChat] = {}
        self.active_difference: Optional[str] = None

    async def load(self) -> Optional[ComparisonResult]:
        """Issue the comparison call once. A failure is terminal."""
        if self.state != ComparisonState.LOADING:
            return self.result
        try:
            self.result = await self.ai_service.compare_contracts(self.contracts)
            self.state = ComparisonState.READY
        except LegalLensError as e:
            logger.error("Comparison failed: %s", e.message)
            self.error = e.message
            self.state = ComparisonState.FAILED
        return self.result

    @property
    def recommended(self) -> Optional[Contract]:
        """The recommended contract, falling back to the first one on no match."""
        if self.result is None:
            return None
        return next(
            (c for c in self.contracts if c.id == self.result.recommended_id),
            self.contracts[0],
        )

    async def focus(self, difference: str) -> DifferenceChat:
        """Open (or reopen) the conversation for a difference and brief it once."""
        chat = self._chats.get(difference)
        if chat is None:
            chat = DifferenceChat(self.ai_service, self.contracts, difference)
            self._chats[difference] = chat
        self.active_difference = difference
        await chat.brief()
        return chat

    def close_focus(self) -> None:
        self.active_difference = None
