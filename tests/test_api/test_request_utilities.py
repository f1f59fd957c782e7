import pytest
import requests
from unittest.mock import MagicMock, patch

from profit_ladder.api.request_utilities import (
    NetworkError,
    async_request,
    build_url_with_params,
    redact,
)


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


def test_build_url_with_params_joins_and_encodes():
    """Endpoint slashes are normalized and None params dropped"""
    url = build_url_with_params("https://example.com/", "/v2/stocks/snapshots",
                                {"symbols": "AAPL,MSFT", "feed": None})
    assert url == "https://example.com/v2/stocks/snapshots?symbols=AAPL,MSFT"

    assert build_url_with_params("https://example.com", "quote") == "https://example.com/quote"


def test_redact_masks_tokens():
    text = "Max retries exceeded with url: /quote?symbol=AAPL&token=secret123"
    assert "secret123" not in redact(text)
    assert "token=***" in redact(text)


async def test_async_request_returns_json():
    with patch("profit_ladder.api.request_utilities.requests.request",
               return_value=make_response(payload={"c": 1.5})) as mock_request:
        result = await async_request("GET", "https://example.com/quote", params={"symbol": "AAPL"})

    assert result == {"c": 1.5}
    assert mock_request.call_args.kwargs["params"] == {"symbol": "AAPL"}


async def test_async_request_http_error_hides_query():
    """Non-2xx responses raise NetworkError without the query string"""
    with patch("profit_ladder.api.request_utilities.requests.request",
               return_value=make_response(status_code=401, payload={"error": "bad token"})):
        with pytest.raises(NetworkError) as exc_info:
            await async_request("GET", "https://example.com/quote?symbol=AAPL&token=secret123")

    assert exc_info.value.status_code == 401
    assert exc_info.value.response == {"error": "bad token"}
    assert "secret123" not in exc_info.value.message


async def test_async_request_transport_error():
    error = requests.exceptions.ConnectionError("unreachable: /quote?token=secret123")
    with patch("profit_ladder.api.request_utilities.requests.request", side_effect=error):
        with pytest.raises(NetworkError) as exc_info:
            await async_request("GET", "https://example.com/quote")

    assert exc_info.value.status_code is None
    assert "secret123" not in str(exc_info.value)


async def test_async_request_is_not_retried():
    with patch("profit_ladder.api.request_utilities.requests.request",
               side_effect=requests.exceptions.Timeout("timed out")) as mock_request:
        with pytest.raises(NetworkError):
            await async_request("GET", "https://example.com/quote")

    assert mock_request.call_count == 1
