import pytest

from conftest import analysis_json, make_contract
from legallens.core.view_state import InvalidTransition, Screen
from legallens.services.session_service import AppSession, normalize_email
from legallens.services.upload_service import IncomingFile


@pytest.fixture
def session(storage, ai_service):
    return AppSession(storage, ai_service)


def test_normalize_email():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


def test_login_creates_user_with_default_name(session, storage):
    user = session.login("Alice@Example.com")

    assert user.id == "alice@example.com"
    assert user.name == "User"
    assert session.state.screen == Screen.DASHBOARD
    assert storage.get_current_user() == user
    assert storage.get_user("alice@example.com") == user


def test_login_keeps_stored_name(session):
    session.login("alice@example.com", "Alice")
    session.logout()

    assert session.login("ALICE@example.com").name == "Alice"
    assert session.login("alice@example.com", "Alice Smith").name == "Alice Smith"


def test_restore_resumes_current_user(storage, ai_service):
    AppSession(storage, ai_service).login("alice@example.com", "Alice")

    restored = AppSession(storage, ai_service)
    state = restored.restore()

    assert state.screen == Screen.DASHBOARD
    assert state.user.name == "Alice"


def test_logout_clears_marker(session, storage):
    session.login("alice@example.com")
    session.logout()

    assert session.state.screen == Screen.AUTH
    assert storage.get_current_user() is None
    assert AppSession(storage, session.ai_service).restore().screen == Screen.AUTH


def test_update_profile(session, storage):
    session.login("alice@example.com", "Alice")
    session.open_profile()

    session.update_profile("  Alice Smith ")

    assert session.user.name == "Alice Smith"
    assert session.state.screen == Screen.PROFILE
    assert storage.get_user("alice@example.com").name == "Alice Smith"
    assert storage.get_current_user().name == "Alice Smith"


async def test_single_upload_opens_analysis(session, fake_client):
    fake_client.messages.default = analysis_json()
    session.login("alice@example.com")

    batch = session.new_upload()
    assert session.state.screen == Screen.UPLOAD

    batch.add_files([IncomingFile(name="lease.pdf", mime_type="application/pdf", data=b"%PDF")])
    contract = await batch.analyze_all()

    assert session.state.screen == Screen.ANALYSIS
    assert session.state.selected_contract == contract


async def test_ask_clause_updates_selection_and_storage(session, storage, fake_client):
    contract = make_contract("c1")
    await storage.save_contract(contract)
    session.login("alice@example.com")
    session.select_contract(contract)
    fake_client.messages.responses = ["You do."]

    updated, saved = await session.ask_clause("clause-1", "Who pays?")

    assert saved is True
    assert session.state.selected_contract == updated

    selected = session.state.selected_contract.analysis.clauses[0]
    assert selected.conversation_history[0].answer == "You do."
    stored = storage.get_contract("alice@example.com", "c1").analysis.clauses[0]
    assert stored.conversation_history[0].question == "Who pays?"


async def test_chat_uses_selected_contract_only_on_analysis_screen(session, fake_client):
    session.login("alice@example.com")
    session.select_contract(make_contract("c1", "Office Lease.pdf"))

    await session.chat([], "Is this fair?")
    session.go_home()
    await session.chat([], "What is an NDA?")

    first, second = fake_client.messages.calls
    assert "Office Lease.pdf" in first["system"]
    assert "Office Lease.pdf" not in second["system"]


async def test_compare_switches_screen(session, storage):
    session.login("alice@example.com")
    await storage.save_contract(make_contract("c1"))
    await storage.save_contract(make_contract("c2"))

    comparison = session.compare(["c1", "c2"])

    assert session.state.screen == Screen.COMPARE
    assert [c.id for c in session.state.comparison_set] == ["c1", "c2"]
    assert [c.id for c in comparison.contracts] == ["c1", "c2"]


async def test_ask_clause_without_selection(session, fake_client):
    session.login("alice@example.com")

    with pytest.raises(InvalidTransition):
        await session.ask_clause("clause-1", "Who pays?")
    assert fake_client.messages.calls == []


def test_actions_require_login(session):
    with pytest.raises(InvalidTransition):
        session.update_profile("Alice")
    with pytest.raises(InvalidTransition):
        session.compare(["c1", "c2"])
    with pytest.raises(InvalidTransition):
        session.new_upload()


def test_resume_leaves_current_user_marker(session, storage, user):
    state = session.resume(user)

    assert state.screen == Screen.DASHBOARD
    assert state.user == user
    assert storage.get_current_user() is None
