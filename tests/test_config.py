from datetime import timezone

from legallens.config import Settings
from legallens.models import StorageEntry
from legallens.models.storage_entry import utc_now


def test_defaults_fit_model_output_limits():
    settings = Settings(_env_file=None)
    assert settings.analysis_max_tokens <= 8192
    assert settings.chat_max_tokens <= settings.analysis_max_tokens


def test_settings_read_env_file_and_ignore_unknown_keys(monkeypatch):
    monkeypatch.setenv("UNRELATED_VARIABLE", "x")
    monkeypatch.setenv("RECENT_ANALYSES_LIMIT", "4")

    settings = Settings(_env_file=None)

    assert Settings.model_config["env_file"] == ".env"
    assert Settings.model_config["extra"] == "ignore"
    assert settings.recent_analyses_limit == 4


def test_storage_entries_are_timestamped(store, session_factory):
    store.set("k", 1)

    with session_factory() as db:
        entry = db.get(StorageEntry, "k")
        assert entry.updated_at is not None

    assert utc_now().tzinfo is timezone.utc
