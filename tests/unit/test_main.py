"""Unit tests for the entry point."""

from unittest.mock import MagicMock

from kozytrack import main as entry


def test_main_applies_validated_log_level(monkeypatch, mock_settings):
    """Test the configured log level replaces the bootstrap level once settings load."""
    mock_settings.log_level = "DEBUG"
    set_log_level = MagicMock()
    monkeypatch.setattr(entry, "load_dotenv", MagicMock())
    monkeypatch.setattr(entry, "setup_logging", MagicMock())
    monkeypatch.setattr(entry, "set_log_level", set_log_level)
    monkeypatch.setattr(entry, "get_settings", lambda: mock_settings)
    monkeypatch.setattr(entry, "acquire_lock", MagicMock(return_value=False))

    assert entry.main() == 1

    set_log_level.assert_called_once_with("DEBUG")


def test_main_invalid_settings_exits_before_lock(monkeypatch, tmp_path):
    """Test a settings validation error ends startup with status 1."""
    monkeypatch.setattr(entry, "load_dotenv", MagicMock())
    monkeypatch.setattr(entry, "setup_logging", MagicMock())
    monkeypatch.setattr(entry, "set_log_level", MagicMock())
    monkeypatch.setattr(entry, "get_settings", entry.Settings)
    monkeypatch.setattr(entry, "acquire_lock", MagicMock())
    for name in ("DISCORD_BOT_TOKEN", "SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(entry.Settings.model_config, "env_file", None)

    assert entry.main() == 1

    entry.acquire_lock.assert_not_called()
