"""
View State Machine
Which screen is active and what data it shows. All transitions go through
ViewStateMachine.dispatch so a screen never exists without its data.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from legallens.schemas.domain import Contract, ContractStatus, User


class Screen(str, Enum):
    AUTH = "auth"
    DASHBOARD = "dashboard"
    UPLOAD = "upload"
    ANALYSIS = "analysis"
    PROFILE = "profile"
    COMPARE = "compare"


class InvalidTransition(Exception):
    """Action not allowed from the current state."""


@dataclass(frozen=True)
class ViewState:
    screen: Screen = Screen.AUTH
    user: Optional[User] = None
    selected_contract: Optional[Contract] = None
    comparison_set: Tuple[Contract, ...] = field(default_factory=tuple)

    @property
    def selected_contract_id(self) -> Optional[str]:
        return self.selected_contract.id if self.selected_contract else None


# Actions

@dataclass(frozen=True)
class Login:
    user: User


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class GoHome:
    pass


@dataclass(frozen=True)
class OpenUpload:
    pass


@dataclass(frozen=True)
class OpenProfile:
    pass


@dataclass(frozen=True)
class SelectContract:
    contract: Contract


@dataclass(frozen=True)
class UploadComplete:
    contract: Contract


@dataclass(frozen=True)
class UpdateContract:
    contract: Contract


@dataclass(frozen=True)
class UpdateUser:
    user: User


@dataclass(frozen=True)
class Compare:
    contracts: Tuple[Contract, ...]


class ViewStateMachine:
    """Holds the current ViewState and applies actions to it."""

    def __init__(self, max_compare: int = 3):
        self.max_compare = max_compare
        self.state = ViewState()

    def dispatch(self, action) -> ViewState:
        self.state = self._reduce(self.state, action)
        return self.state

    def _reduce(self, state: ViewState, action) -> ViewState:
        if isinstance(action, Login):
            return ViewState(screen=Screen.DASHBOARD, user=action.user)

        if isinstance(action, Logout):
            return ViewState()

        if state.user is None:
            raise InvalidTransition(f"{type(action).__name__} requires a logged-in user")

        if isinstance(action, GoHome):
            return replace(state, screen=Screen.DASHBOARD)

        if isinstance(action, OpenUpload):
            return replace(state, screen=Screen.UPLOAD)

        if isinstance(action, OpenProfile):
            return replace(state, screen=Screen.PROFILE)

        if isinstance(action, (SelectContract, UploadComplete)):
            self._require_analyzed(action.contract)
            return replace(state, screen=Screen.ANALYSIS, selected_contract=action.contract)

        if isinstance(action, UpdateContract):
            if state.selected_contract_id != action.contract.id:
                raise InvalidTransition("Only the selected contract can be updated")
            self._require_analyzed(action.contract)
            return replace(state, selected_contract=action.contract)

        if isinstance(action, UpdateUser):
            if action.user.id != state.user.id:
                raise InvalidTransition("Cannot switch users through a profile update")
            return replace(state, user=action.user)

        if isinstance(action, Compare):
            contracts = tuple(action.contracts)
            if not 2 <= len(contracts) <= self.max_compare:
                raise InvalidTransition(
                    f"Comparison needs between 2 and {self.max_compare} contracts"
                )
            for contract in contracts:
                self._require_analyzed(contract)
            return replace(state, screen=Screen.COMPARE, comparison_set=contracts)

        raise InvalidTransition(f"Unknown action: {action!r}")

    @staticmethod
    def _require_analyzed(contract: Contract):
        if contract.status != ContractStatus.ANALYZED or contract.analysis is None:
            raise InvalidTransition(f"Contract {contract.id} has no analysis")
