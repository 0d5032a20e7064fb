"""Settings load/save."""

from watchgpt.config import Settings, load_settings, save_settings
from watchgpt.models.mode import ConversationMode


def test_missing_file_gives_defaults(tmp_path):
    assert load_settings(tmp_path / "config.json") == Settings()


def test_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.json"
    save_settings(Settings(chat_model="gpt-5-mini", default_mode=ConversationMode.STUDY), path)

    loaded = load_settings(path)
    assert loaded.chat_model == "gpt-5-mini"
    assert loaded.default_mode == ConversationMode.STUDY


def test_invalid_json_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{nope")
    assert load_settings(path) == Settings()


def test_invalid_values_give_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"temperature": "warm"}')
    assert load_settings(path) == Settings()


def test_unreadable_path_gives_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.mkdir()
    assert load_settings(path) == Settings()


def test_undecodable_bytes_give_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    assert load_settings(path) == Settings()


def test_paths_follow_watchgpt_home(tmp_path, monkeypatch):
    monkeypatch.setenv("WATCHGPT_HOME", str(tmp_path))
    settings = Settings()
    assert settings.db_path == tmp_path / "conversations.db"
    assert settings.credentials_path == tmp_path / "credentials.json"
    assert settings.outbox_path == tmp_path / "keysync_outbox.json"
