from unittest.mock import AsyncMock, MagicMock

import pytest

import artbot.main
from artbot.config import Settings


def configured(**overrides):
    values = dict(bot_token="123:TEST", openai_api_key="sk-test", owner_ids=frozenset({1}), use_fake_db=True)
    values.update(overrides)
    return Settings(**values)


async def test_main_exits_when_configuration_is_missing(monkeypatch):
    monkeypatch.setattr(artbot.main, "settings", configured(bot_token="", openai_api_key=""))
    get_db = AsyncMock()
    monkeypatch.setattr(artbot.main, "get_db", get_db)

    with pytest.raises(SystemExit) as exc:
        await artbot.main.main()

    assert "BOT_TOKEN" in str(exc.value.code)
    assert "OPENAI_API_KEY" in str(exc.value.code)
    get_db.assert_not_awaited()


async def test_main_exits_when_database_is_unreachable(monkeypatch):
    monkeypatch.setattr(artbot.main, "settings", configured())
    monkeypatch.setattr(artbot.main, "get_db", AsyncMock(side_effect=OSError("connection refused")))
    bot = MagicMock()
    monkeypatch.setattr(artbot.main, "Bot", bot)

    with pytest.raises(SystemExit) as exc:
        await artbot.main.main()

    assert exc.value.code == 1
    bot.assert_not_called()
