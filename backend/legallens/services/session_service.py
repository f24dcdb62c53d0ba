"""
Session Service
Application controller binding the view state machine to storage and the
upload, contract and comparison services.
"""

import logging
from typing import Optional, Sequence, Tuple

from legallens.config import get_settings
from legallens.core.view_state import (
    Compare,
    GoHome,
    InvalidTransition,
    Login,
    Logout,
    OpenProfile,
    OpenUpload,
    Screen,
    SelectContract,
    UpdateContract,
    UpdateUser,
    UploadComplete,
    ViewState,
    ViewStateMachine,
)
from legallens.schemas.domain import ChatMessage, Contract, User
from legallens.services.ai_service import AIService, build_contract_context
from legallens.services.comparison_service import ComparisonSession
from legallens.services.contract_service import ContractService
from legallens.services.storage_service import StorageService
from legallens.services.upload_service import BatchUpload


logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AppSession:
    """One user's in-memory session. Every change is set in memory, then persisted."""

    def __init__(self, storage: StorageService, ai_service: AIService):
        self.storage = storage
        self.ai_service = ai_service
        self.contracts = ContractService(storage, ai_service)
        self.view = ViewStateMachine(max_compare=get_settings().max_compare)

    @property
    def state(self) -> ViewState:
        return self.view.state

    @property
    def user(self) -> Optional[User]:
        return self.view.state.user

    def resume(self, user: User) -> ViewState:
        """Bind an already authenticated user without touching the stored marker."""
        return self.view.dispatch(Login(user))

    def restore(self) -> ViewState:
        """Resume the stored current user, if any."""
        current = self.storage.get_current_user()
        if current:
            return self.view.dispatch(Login(current))
        return self.state

    def login(self, email: str, name: Optional[str] = None) -> User:
        """Unverified login: the normalized email is the user id."""
        user_id = normalize_email(email)
        existing = self.storage.get_user(user_id)
        display_name = (name or "").strip() or (existing.name if existing else "User")

        user = User(id=user_id, email=user_id, name=display_name)
        self.storage.set_current_user(user)
        self.storage.save_user(user)
        self.view.dispatch(Login(user))
        return user

    def logout(self) -> ViewState:
        self.storage.set_current_user(None)
        return self.view.dispatch(Logout())

    def go_home(self) -> ViewState:
        return self.view.dispatch(GoHome())

    def open_profile(self) -> ViewState:
        return self.view.dispatch(OpenProfile())

    def new_upload(self) -> BatchUpload:
        self.view.dispatch(OpenUpload())
        return BatchUpload(
            self.user,
            self.ai_service,
            self.storage,
            on_complete=self.upload_complete,
        )

    def upload_complete(self, contract: Contract) -> ViewState:
        return self.view.dispatch(UploadComplete(contract))

    def select_contract(self, contract: Contract) -> ViewState:
        return self.view.dispatch(SelectContract(contract))

    async def update_contract(self, contract: Contract) -> bool:
        """Replace the selection, then persist it. Returns whether the save succeeded."""
        self.view.dispatch(UpdateContract(contract))
        return await self.contracts.persist_update(contract)

    async def ask_clause(self, clause_id: str, question: str) -> Tuple[Contract, bool]:
        contract = self.state.selected_contract
        if contract is None:
            raise InvalidTransition("Select a contract before asking about its clauses")
        updated = await self.contracts.ask_clause(contract, clause_id, question)
        saved = await self.update_contract(updated)
        return updated, saved

    def update_profile(self, name: str) -> User:
        updated = self._require_user().model_copy(update={"name": name.strip()})
        self.storage.save_user(updated)
        self.storage.set_current_user(updated)
        self.view.dispatch(UpdateUser(updated))
        return updated

    def compare(self, contract_ids: Sequence[str]) -> ComparisonSession:
        contracts = self.contracts.select_for_comparison(self._require_user().id, contract_ids)
        self.view.dispatch(Compare(tuple(contracts)))
        return ComparisonSession(self.ai_service, contracts, max_compare=self.view.max_compare)

    def _require_user(self) -> User:
        if self.user is None:
            raise InvalidTransition("This action requires a logged-in user")
        return self.user

    async def chat(self, history: Sequence[ChatMessage], message: str) -> str:
        """Assistant chat, scoped to the selected contract on the analysis screen."""
        contract = self.state.selected_contract if self.state.screen == Screen.ANALYSIS else None
        context = build_contract_context(contract) if contract else ""
        return await self.ai_service.send_chat_message(history, message, context)
