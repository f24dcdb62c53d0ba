import pytest

from conftest import make_contract
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
from legallens.schemas.domain import Contract, User


@pytest.fixture
def machine(user):
    machine = ViewStateMachine()
    machine.dispatch(Login(user))
    return machine


def test_starts_on_auth_screen():
    assert ViewStateMachine().state == ViewState(screen=Screen.AUTH)


def test_actions_require_a_user():
    with pytest.raises(InvalidTransition):
        ViewStateMachine().dispatch(GoHome())


def test_login_lands_on_dashboard(machine, user):
    assert machine.state.screen == Screen.DASHBOARD
    assert machine.state.user == user


@pytest.mark.parametrize("action, screen", [
    (GoHome(), Screen.DASHBOARD),
    (OpenUpload(), Screen.UPLOAD),
    (OpenProfile(), Screen.PROFILE),
])
def test_navigation(machine, action, screen):
    assert machine.dispatch(action).screen == screen


@pytest.mark.parametrize("action_type", [SelectContract, UploadComplete])
def test_opening_a_contract_shows_analysis(machine, action_type):
    contract = make_contract("c1")
    state = machine.dispatch(action_type(contract))
    assert state.screen == Screen.ANALYSIS
    assert state.selected_contract_id == "c1"


def test_pending_contract_cannot_be_opened(machine):
    pending = Contract(id="p1", user_id="alice@example.com", file_name="x.pdf", upload_date=0)
    with pytest.raises(InvalidTransition):
        machine.dispatch(SelectContract(pending))


def test_update_contract_replaces_selection(machine):
    machine.dispatch(SelectContract(make_contract("c1", summary="old")))

    state = machine.dispatch(UpdateContract(make_contract("c1", summary="new")))

    assert state.screen == Screen.ANALYSIS
    assert state.selected_contract.analysis.summary == "new"


def test_update_contract_must_match_selection(machine):
    machine.dispatch(SelectContract(make_contract("c1")))
    with pytest.raises(InvalidTransition):
        machine.dispatch(UpdateContract(make_contract("c2")))


def test_update_user_keeps_identity(machine, user):
    renamed = user.model_copy(update={"name": "Alice Smith"})
    assert machine.dispatch(UpdateUser(renamed)).user.name == "Alice Smith"

    with pytest.raises(InvalidTransition):
        machine.dispatch(UpdateUser(User(id="bob@example.com", email="bob@example.com", name="Bob")))


def test_compare_needs_two_or_three(machine):
    with pytest.raises(InvalidTransition):
        machine.dispatch(Compare((make_contract("c1"),)))

    contracts = tuple(make_contract(f"c{i}") for i in range(3))
    state = machine.dispatch(Compare(contracts))

    assert state.screen == Screen.COMPARE
    assert state.comparison_set == contracts


def test_logout_resets_everything(machine):
    machine.dispatch(SelectContract(make_contract("c1")))
    assert machine.dispatch(Logout()) == ViewState()
