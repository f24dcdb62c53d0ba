"""
Storage Service
Namespaced persistence for users, contracts, the current-user marker and the
recent-analyses cache. Reads never fail: broken data is treated as empty.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from legallens.config import get_settings
from legallens.core.errors import StorageError
from legallens.core.storage import KeyValueStore
from legallens.schemas.domain import Contract, RecentAnalysis, User


logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "USERS": "legallens_users",
    "CONTRACTS": "legallens_contracts",
    "CURRENT_USER": "legallens_current_user",
    "RECENT_ANALYSES": "legallens_recent_analyses",
}

# Failures treated as "empty" on read and swallowed on best-effort writes
STORAGE_FAILURES = (SQLAlchemyError, ValueError, TypeError)


class StorageService:
    """Persistence adapter over a KeyValueStore."""

    def __init__(self, store: Optional[KeyValueStore] = None, recent_limit: Optional[int] = None):
        self.store = store or KeyValueStore()
        self.recent_limit = recent_limit or get_settings().recent_analyses_limit

    # Users

    def get_users(self) -> List[User]:
        try:
            raw = self.store.get(STORAGE_KEYS["USERS"]) or []
            return [User.model_validate(item) for item in raw]
        except STORAGE_FAILURES:
            logger.exception("Failed to load users from storage")
            return []

    def get_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.get_users() if u.id == user_id), None)

    def save_user(self, user: User) -> None:
        """Insert or update a user by id. Failures are logged only."""
        try:
            users = self.get_users()
            for index, existing in enumerate(users):
                if existing.id == user.id:
                    users[index] = existing.model_copy(update=user.model_dump())
                    break
            else:
                users.append(user)
            self.store.set(STORAGE_KEYS["USERS"], [u.model_dump(mode="json", by_alias=True) for u in users])
        except STORAGE_FAILURES:
            logger.exception("Failed to save user %s", user.id)

    def get_current_user(self) -> Optional[User]:
        try:
            raw = self.store.get(STORAGE_KEYS["CURRENT_USER"])
            return User.model_validate(raw) if raw else None
        except STORAGE_FAILURES:
            logger.exception("Failed to load current user")
            return None

    def set_current_user(self, user: Optional[User]) -> None:
        try:
            if user:
                self.store.set(STORAGE_KEYS["CURRENT_USER"], user.model_dump(mode="json", by_alias=True))
            else:
                self.store.remove(STORAGE_KEYS["CURRENT_USER"])
        except STORAGE_FAILURES:
            logger.exception("Failed to set current user")

    # Contracts

    def _load_all_contracts(self) -> List[Contract]:
        raw = self.store.get(STORAGE_KEYS["CONTRACTS"]) or []
        return [Contract.model_validate(item) for item in raw]

    def get_contracts(self, user_id: str) -> List[Contract]:
        """All contracts owned by user_id, in stored order."""
        try:
            return [c for c in self._load_all_contracts() if c.user_id == user_id]
        except STORAGE_FAILURES:
            logger.exception("Failed to load contracts")
            return []

    def get_contract(self, user_id: str, contract_id: str) -> Optional[Contract]:
        return next((c for c in self.get_contracts(user_id) if c.id == contract_id), None)

    async def save_contract(self, contract: Contract) -> None:
        """
        Insert or replace a contract by id.
        Unlike every other write, a failure here is raised as StorageError.
        """
        try:
            contracts = self._load_all_contracts()
            for index, existing in enumerate(contracts):
                if existing.id == contract.id:
                    contracts[index] = contract
                    break
            else:
                contracts.append(contract)
            self.store.set(
                STORAGE_KEYS["CONTRACTS"],
                [c.model_dump(mode="json", by_alias=True) for c in contracts],
            )
        except STORAGE_FAILURES as e:
            logger.exception("Failed to save contract %s", contract.id)
            raise StorageError(f"Failed to save contract: {e}") from e

    # Recent analyses, one list per user

    @staticmethod
    def recent_key(user_id: str) -> str:
        return f"{STORAGE_KEYS['RECENT_ANALYSES']}:{user_id}"

    def get_recent_analyses(self, user_id: str) -> List[RecentAnalysis]:
        try:
            raw = self.store.get(self.recent_key(user_id)) or []
            return [RecentAnalysis.model_validate(item) for item in raw]
        except STORAGE_FAILURES:
            logger.exception("Failed to load recent analyses for %s", user_id)
            return []

    def save_recent_analysis(self, user_id: str, analysis: RecentAnalysis) -> None:
        """Put analysis at the front of the user's list, dropping any older entry with its id."""
        try:
            recent = [r for r in self.get_recent_analyses(user_id) if r.id != analysis.id]
            updated = [analysis, *recent][:self.recent_limit]
            self.store.set(
                self.recent_key(user_id),
                [r.model_dump(mode="json", by_alias=True) for r in updated],
            )
        except STORAGE_FAILURES:
            logger.exception("Failed to save recent analysis %s", analysis.id)

    def clear_recent_analyses(self, user_id: str) -> None:
        try:
            self.store.remove(self.recent_key(user_id))
        except STORAGE_FAILURES:
            logger.exception("Failed to clear recent analyses for %s", user_id)


def get_storage() -> StorageService:
    """FastAPI dependency returning the default storage service."""
    return StorageService()
