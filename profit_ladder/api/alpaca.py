"""
Asynchronous client for the Alpaca market data API.
Only the batched stock snapshot endpoint is used.
"""

from typing import Dict, Any, Iterable
from loguru import logger

from profit_ladder.config import ALPACA_DATA_URL
from .base import AsyncBaseAPI


class AsyncAlpacaAPI(AsyncBaseAPI):
    """
    Asynchronous client for Alpaca market data.
    Authenticates with the key id / secret key header pair.
    """

    def __init__(self, api_key: str, api_secret: str, base_url: str = ALPACA_DATA_URL):
        """
        Initialize the Alpaca API client.

        Args:
            api_key: Alpaca API key id
            api_secret: Alpaca API secret key
            base_url: Market data base URL
        """
        super().__init__(
            base_url=base_url,
            default_headers={
                "APCA-API-KEY-ID": api_key,
                "APCA-API-SECRET-KEY": api_secret,
            }
        )
        logger.debug("Initialized AsyncAlpacaAPI")

    async def get_snapshots(self, symbols: Iterable[str]) -> Dict[str, Any]:
        """
        Get snapshots for several symbols in one request.

        Args:
            symbols: Stock ticker symbols

        Returns:
            Mapping of symbol -> snapshot object with latestTrade, dailyBar and prevDailyBar
        """
        response = await self.get(
            "/v2/stocks/snapshots",
            params={"symbols": ",".join(symbols)}
        )

        if not isinstance(response, dict):
            logger.warning("Unexpected snapshot payload from Alpaca")
            return {}

        return response
