from unittest.mock import AsyncMock, patch

from profit_ladder.api.alpaca import AsyncAlpacaAPI
from profit_ladder.api.finnhub import AsyncFinnhubAPI


def test_alpaca_api_initialization():
    """Test that the Alpaca client sends its key pair as headers"""
    api = AsyncAlpacaAPI("key-id", "secret-key", base_url="https://data.example.com")

    assert api.base_url == "https://data.example.com"
    assert api.default_headers["APCA-API-KEY-ID"] == "key-id"
    assert api.default_headers["APCA-API-SECRET-KEY"] == "secret-key"


async def test_alpaca_snapshots_single_batched_request():
    api = AsyncAlpacaAPI("key-id", "secret-key", base_url="https://data.example.com")
    payload = {"AAPL": {"latestTrade": {"p": 101.5}}}

    with patch("profit_ladder.api.base.async_request", new=AsyncMock(return_value=payload)) as mock_request:
        result = await api.get_snapshots(["AAPL", "MSFT"])

    assert result == payload
    assert mock_request.await_count == 1
    kwargs = mock_request.await_args.kwargs
    assert kwargs["url"] == "https://data.example.com/v2/stocks/snapshots?symbols=AAPL,MSFT"
    assert kwargs["headers"]["APCA-API-KEY-ID"] == "key-id"


async def test_alpaca_snapshots_unexpected_payload():
    api = AsyncAlpacaAPI("key-id", "secret-key")
    with patch("profit_ladder.api.base.async_request", new=AsyncMock(return_value=["not", "a", "dict"])):
        assert await api.get_snapshots(["AAPL"]) == {}


async def test_finnhub_quote_and_candles_pass_token():
    api = AsyncFinnhubAPI("finnhub-token", base_url="https://finnhub.example.com/api/v1")

    with patch("profit_ladder.api.base.async_request", new=AsyncMock(return_value={"c": 10})) as mock_request:
        quote = await api.get_quote("AAPL")
        await api.get_daily_candles("AAPL")

    assert quote == {"c": 10}
    quote_url = mock_request.await_args_list[0].kwargs["url"]
    candle_url = mock_request.await_args_list[1].kwargs["url"]
    assert quote_url == "https://finnhub.example.com/api/v1/quote?symbol=AAPL&token=finnhub-token"
    assert "/stock/candle?" in candle_url
    assert "resolution=D" in candle_url
    assert "count=2" in candle_url
