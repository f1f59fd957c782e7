import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from profit_ladder.portfolio.commands import PortfolioCommands
from profit_ladder.portfolio.manager import PortfolioManager
from profit_ladder.portfolio.store import POSITIONS


@pytest.fixture
def portfolio_commands(store, price_service):
    manager = PortfolioManager(store, price_service=price_service)
    yield PortfolioCommands(manager)
    manager.stop_auto_refresh()


async def test_add_position_replies_with_ladder(portfolio_commands, mock_context):
    await portfolio_commands.handle_add_position(mock_context, "aapl", "100", "10", "5", "2")

    assert mock_context.sent_texts()[0].startswith("✅ Position saved: AAPL")
    embed = mock_context.sent_embeds()[0]
    assert embed.title == "Profit Ladder: AAPL"


async def test_invalid_input_reports_error(portfolio_commands, mock_context, store):
    await portfolio_commands.handle_add_position(mock_context, "AAPL", "abc", "10")

    assert mock_context.sent_texts()[0].startswith("❌")
    assert await store.get_all(POSITIONS) == []


async def test_show_portfolio(portfolio_commands, mock_context):
    await portfolio_commands.manager.save_position("AAPL", 100, 10)

    await portfolio_commands.handle_show_portfolio(mock_context)

    embed = mock_context.sent_embeds()[0]
    assert "AAPL" in embed.description
    assert portfolio_commands.display_message is not None


async def test_portfolio_update_edits_last_message(portfolio_commands):
    message = MagicMock()
    message.edit = AsyncMock()
    portfolio_commands.display_message = message
    channel = MagicMock()
    channel.send = AsyncMock()

    await portfolio_commands.send_portfolio_update(portfolio_commands.manager.state, channel)

    message.edit.assert_awaited_once()
    channel.send.assert_not_awaited()


async def test_delete_unknown_position(portfolio_commands, mock_context):
    await portfolio_commands.handle_delete_position(mock_context, "42")
    assert mock_context.sent_texts() == ["❌ No position with id 42"]


async def test_hide_unknown_ticker(portfolio_commands, mock_context):
    await portfolio_commands.handle_set_hidden(mock_context, "abc", True)
    assert mock_context.sent_texts() == ["❌ No saved positions for ABC"]


async def test_set_keys_deletes_command_message(portfolio_commands, mock_context, store):
    await portfolio_commands.handle_set_keys(mock_context, "finnhub", "token")

    mock_context.message.delete.assert_awaited_once()
    assert await store.get_setting("finnhubApiKey") == "token"
    assert "token" not in mock_context.sent_texts()[0]


async def test_set_keys_alpaca_requires_secret(portfolio_commands, mock_context, store):
    await portfolio_commands.handle_set_keys(mock_context, "alpaca", "key-id")

    assert mock_context.sent_texts()[0].startswith("❌")
    assert await store.get_setting("APCA_API_KEY_ID") is None


async def test_refresh_interval_command(portfolio_commands, mock_context):
    await portfolio_commands.handle_refresh(mock_context, "30")
    assert mock_context.sent_texts() == ["✅ Auto-refresh set to every 30 seconds"]

    await portfolio_commands.handle_refresh(mock_context, "0")
    assert mock_context.sent_texts()[-1] == "✅ Auto-refresh stopped"


async def test_export_sends_json_file(portfolio_commands, mock_context):
    await portfolio_commands.manager.save_position("AAPL", 100, 10)

    await portfolio_commands.handle_export(mock_context)

    file = mock_context.send.call_args.kwargs["file"]
    assert file.filename == "positions.json"
    assert json.loads(file.fp.read())[0]["tickerSymbol"] == "AAPL"


async def test_import_with_bad_numbers_reports_error(portfolio_commands, mock_context, store, monkeypatch):
    payload = [{"tickerSymbol": "ABC", "avgPrice": "n/a", "numShares": 10}]
    monkeypatch.setattr("profit_ladder.portfolio.transfer.async_request", AsyncMock(return_value=payload))

    await portfolio_commands.handle_import(mock_context, "https://example.com/positions.json")

    assert mock_context.sent_texts()[0].startswith("❌ Error importing positions: Entry 0")
    assert await store.get_all(POSITIONS) == []
