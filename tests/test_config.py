"""Settings parsing."""

from icebot.config import Settings


def test_admin_ids_from_comma_separated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("ADMIN_IDS", "11, 22,33")
    settings = Settings(telegram_bot_token="1:T", data_dir=tmp_path)
    assert settings.admin_ids == [11, 22, 33]
    assert settings.announce_chat_id == 11


def test_admin_ids_from_json_env(monkeypatch):
    monkeypatch.setenv("ADMIN_IDS", "[5]")
    assert Settings(telegram_bot_token="1:T").admin_ids == [5]


def test_admin_chat_overrides_first_admin():
    settings = Settings(telegram_bot_token="1:T", admin_ids=[1, 2], admin_chat_id=-100)
    assert settings.announce_chat_id == -100


def test_derived_urls(tmp_path):
    settings = Settings(
        telegram_bot_token="1:T",
        data_dir=tmp_path,
        webhook_base_url="https://bot.example/",
    )
    assert settings.db_url == f"sqlite+aiosqlite:///{tmp_path / 'icebot.db'}"
    assert settings.webhook_url == "https://bot.example/telegram/webhook"
    assert settings.exports_dir == tmp_path / "exports"
    assert Settings(telegram_bot_token="1:T").webhook_url is None
