import json
import pytest
from unittest.mock import AsyncMock, patch

from profit_ladder.api.request_utilities import NetworkError
from profit_ladder.portfolio.store import POSITIONS
from profit_ladder.portfolio.transfer import (
    FormatError,
    export_positions,
    import_positions_from_payload,
    import_positions_from_url,
)


async def test_export_is_pretty_printed_array(store):
    await store.put(POSITIONS, {"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 10})

    text = await export_positions(store)

    assert json.loads(text) == [{"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 10, "id": 1}]
    assert "\n  " in text


async def test_import_upserts_by_existing_key(store):
    await store.put(POSITIONS, {"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 10})

    count = await import_positions_from_payload(store, [
        {"id": 1, "tickerSymbol": "AAPL", "avgPrice": 90, "numShares": 10, "profit": 123},
        {"tickerSymbol": "msft", "avgPrice": 50, "numShares": 5},
    ])
    records = await store.get_all(POSITIONS)

    assert count == 2
    assert records[0] == {"id": 1, "tickerSymbol": "AAPL", "avgPrice": 90, "numShares": 10}
    assert records[1]["tickerSymbol"] == "MSFT"


async def test_import_object_payload_rejected_without_changes(store):
    await store.put(POSITIONS, {"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 10})
    before = await store.get_all(POSITIONS)

    with pytest.raises(FormatError):
        await import_positions_from_payload(store, {"tickerSymbol": "MSFT"})

    assert await store.get_all(POSITIONS) == before


async def test_import_bad_element_rejected_before_any_write(store):
    with pytest.raises(FormatError):
        await import_positions_from_payload(store, [
            {"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 1},
            "not a position",
        ])

    assert await store.get_all(POSITIONS) == []


async def test_import_from_url(store):
    payload = [{"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 1}]
    with patch("profit_ladder.portfolio.transfer.async_request", new=AsyncMock(return_value=payload)) as mock_request:
        count = await import_positions_from_url(store, "https://example.com/positions.json")

    mock_request.assert_awaited_once_with("GET", "https://example.com/positions.json")
    assert count == 1


async def test_import_from_unreachable_url(store):
    with patch("profit_ladder.portfolio.transfer.async_request",
               new=AsyncMock(side_effect=NetworkError("HTTP 404", status_code=404))):
        with pytest.raises(NetworkError):
            await import_positions_from_url(store, "https://example.com/missing.json")

    assert await store.get_all(POSITIONS) == []


async def test_import_non_numeric_price_rejected_before_any_write(store):
    with pytest.raises(FormatError, match="Entry 1"):
        await import_positions_from_payload(store, [
            {"tickerSymbol": "AAPL", "avgPrice": 100, "numShares": 1},
            {"tickerSymbol": "ABC", "avgPrice": "n/a", "numShares": 10},
        ])

    assert await store.get_all(POSITIONS) == []


@pytest.mark.parametrize("ticker", ["   ", "", None, "NOT A TICKER"])
async def test_import_invalid_ticker_rejected(store, ticker):
    with pytest.raises(FormatError):
        await import_positions_from_payload(store, [{"tickerSymbol": ticker, "avgPrice": 100, "numShares": 1}])

    assert await store.get_all(POSITIONS) == []


async def test_import_converts_numeric_text(store):
    await import_positions_from_payload(store, [
        {"tickerSymbol": " abc ", "avgPrice": "12.5", "numShares": "4", "priceStep": "0.5", "levels": "3"},
    ])

    record = (await store.get_all(POSITIONS))[0]
    assert record["tickerSymbol"] == "ABC"
    assert record["avgPrice"] == 12.5
    assert record["numShares"] == 4
    assert record["priceStep"] == 0.5
    assert record["levels"] == 3
