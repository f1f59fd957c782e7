from unittest.mock import AsyncMock

from profit_ladder.portfolio.credentials import (
    AlpacaProvider,
    FinnhubProvider,
    NoProvider,
    resolve_provider,
    save_credentials,
)
from profit_ladder.portfolio.store import StorageError


async def test_no_credentials_selects_nothing(store):
    assert await resolve_provider(store) == NoProvider()


async def test_alpaca_preferred_when_complete(store):
    await save_credentials(store, alpaca_key="id", alpaca_secret="secret", finnhub_key="token")
    assert await resolve_provider(store) == AlpacaProvider(key="id", secret="secret")


async def test_incomplete_alpaca_falls_back_to_finnhub(store):
    await save_credentials(store, alpaca_key="id", finnhub_key="token")
    assert await resolve_provider(store) == FinnhubProvider(key="token")


async def test_environment_used_when_nothing_stored(store, monkeypatch):
    monkeypatch.setenv("FINNHUB_API_KEY", "env-token")
    assert await resolve_provider(store) == FinnhubProvider(key="env-token")

    await save_credentials(store, finnhub_key="stored-token")
    assert await resolve_provider(store) == FinnhubProvider(key="stored-token")


async def test_empty_values_keep_stored_credentials(store):
    await save_credentials(store, finnhub_key="token")
    written = await save_credentials(store, alpaca_key="  ", finnhub_key="")

    assert written == 0
    assert await store.get_setting("finnhubApiKey") == "token"


async def test_unreadable_settings_select_nothing():
    store = AsyncMock()
    store.get_setting.side_effect = StorageError("disk gone")
    assert await resolve_provider(store) == NoProvider()


def test_provider_repr_hides_secrets():
    assert "secret" not in repr(AlpacaProvider(key="id", secret="secret"))
    assert "token" not in repr(FinnhubProvider(key="token"))
