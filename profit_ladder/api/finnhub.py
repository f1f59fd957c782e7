"""
Asynchronous client for the Finnhub stock API.
Finnhub has no batch quote endpoint, so every call covers a single symbol.
"""

from typing import Dict, Any
from loguru import logger

from profit_ladder.config import FINNHUB_API_URL
from .base import AsyncBaseAPI


class AsyncFinnhubAPI(AsyncBaseAPI):
    """
    Asynchronous client for Finnhub quote and candle data.
    Authenticates with a token query parameter.
    """

    def __init__(self, api_key: str, base_url: str = FINNHUB_API_URL):
        """
        Initialize the Finnhub API client.

        Args:
            api_key: Finnhub API token
            base_url: API base URL
        """
        super().__init__(base_url=base_url)
        self.api_key = api_key
        logger.debug("Initialized AsyncFinnhubAPI")

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        """
        Get the real-time quote for a symbol.

        Args:
            symbol: Stock ticker symbol

        Returns:
            Quote object (c = current, o = open, pc = previous close, t = unix time)
        """
        response = await self.get("/quote", params={"symbol": symbol, "token": self.api_key})
        return response if isinstance(response, dict) else {}

    async def get_daily_candles(self, symbol: str, count: int = 2) -> Dict[str, Any]:
        """
        Get the most recent daily candles for a symbol.

        Args:
            symbol: Stock ticker symbol
            count: Number of daily samples

        Returns:
            Candle object with parallel arrays (c = closes, o = opens, t = times)
        """
        response = await self.get(
            "/stock/candle",
            params={
                "symbol": symbol,
                "resolution": "D",
                "count": count,
                "token": self.api_key
            }
        )
        return response if isinstance(response, dict) else {}
