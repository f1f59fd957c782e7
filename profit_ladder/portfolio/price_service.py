"""
Price service for portfolio tracking.
Retrieves current prices for portfolio positions from the selected provider.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Dict, Any, Iterable, Optional
from loguru import logger

from profit_ladder.api.alpaca import AsyncAlpacaAPI
from profit_ladder.api.finnhub import AsyncFinnhubAPI
from profit_ladder.api.request_utilities import NetworkError
from .credentials import AlpacaProvider, FinnhubProvider, ProviderSelection
from .models import PriceInfo


_FRACTION = re.compile(r"\.(\d+)")


def parse_trade_time(value: Any) -> Optional[datetime]:
    """
    Parse a provider trade timestamp into an aware datetime.

    Accepts RFC 3339 strings (nanosecond precision is truncated to
    microseconds) and unix seconds.

    Args:
        value: Timestamp as reported by the provider

    Returns:
        Aware datetime or None when the value is missing or unparseable
    """
    if value is None or value == "" or value == 0:
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Unparseable trade time: {value}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class PortfolioPriceService:
    """Service for retrieving portfolio position prices"""

    def __init__(self, alpaca_factory=AsyncAlpacaAPI, finnhub_factory=AsyncFinnhubAPI):
        """
        Initialize the price service.

        Args:
            alpaca_factory: Callable building an Alpaca client from (key, secret)
            finnhub_factory: Callable building a Finnhub client from (key)
        """
        self.alpaca_factory = alpaca_factory
        self.finnhub_factory = finnhub_factory
        logger.debug("Initialized PortfolioPriceService")

    async def fetch_prices(
        self,
        tickers: Iterable[str],
        provider: ProviderSelection
    ) -> Dict[str, PriceInfo]:
        """
        Fetch current price data for a set of tickers.

        Never raises: a failure of the whole call degrades to an empty mapping
        so callers fall back to last-known prices.

        Args:
            tickers: Ticker symbols
            provider: Provider chosen by the credential resolver

        Returns:
            Mapping of ticker -> PriceInfo
        """
        symbols = sorted({t for t in tickers if t})
        if not symbols:
            return {}

        try:
            if isinstance(provider, AlpacaProvider):
                prices = await self._fetch_from_alpaca(symbols, provider)
            elif isinstance(provider, FinnhubProvider):
                prices = await self._fetch_from_finnhub(symbols, provider)
            else:
                logger.warning("No price provider available, skipping price fetch")
                return {}

        except NetworkError as e:
            logger.error(f"Error fetching current prices: {e.message}")
            return {}
        except Exception as e:
            logger.error(f"Unexpected error fetching current prices: {str(e)}")
            return {}

        logger.debug(f"Fetched prices for {len(prices)} of {len(symbols)} tickers")
        return prices

    async def _fetch_from_alpaca(self, symbols, provider: AlpacaProvider) -> Dict[str, PriceInfo]:
        """One batched snapshot request for all symbols"""
        api = self.alpaca_factory(provider.key, provider.secret)
        snapshots = await api.get_snapshots(symbols)

        prices = {}
        for symbol, snapshot in snapshots.items():
            snapshot = snapshot or {}
            latest_trade = snapshot.get("latestTrade") or {}
            daily_bar = snapshot.get("dailyBar") or {}
            prev_daily_bar = snapshot.get("prevDailyBar") or {}

            prices[symbol] = PriceInfo(
                price=_number(latest_trade.get("p")),
                time=parse_trade_time(latest_trade.get("t")),
                open=_number(daily_bar.get("o")),
                prev_close=_number(prev_daily_bar.get("c")),
            )

        logger.info(f"Fetched prices from Alpaca for {len(prices)} symbols")
        return prices

    async def _fetch_from_finnhub(self, symbols, provider: FinnhubProvider) -> Dict[str, PriceInfo]:
        """Quote and candle requests per symbol, all symbols concurrently"""
        api = self.finnhub_factory(provider.key)

        results = await asyncio.gather(
            *(self._fetch_finnhub_symbol(api, symbol) for symbol in symbols)
        )

        prices = dict(zip(symbols, results))
        logger.info(f"Fetched prices from Finnhub for {len(prices)} symbols")
        return prices

    async def _fetch_finnhub_symbol(self, api: AsyncFinnhubAPI, symbol: str) -> PriceInfo:
        """Fetch one symbol; a failed quote yields an empty PriceInfo for that symbol only"""
        quote, candles = await asyncio.gather(
            api.get_quote(symbol),
            api.get_daily_candles(symbol, count=2),
            return_exceptions=True
        )

        if isinstance(quote, BaseException):
            logger.error(f"Failed to fetch quote data for {symbol} from Finnhub: {str(quote)}")
            return PriceInfo()

        prev_close = 0.0
        if isinstance(candles, BaseException):
            logger.warning(f"Failed to fetch previous close data for {symbol} from Finnhub: {str(candles)}")
        else:
            closes = candles.get("c") or []
            if len(closes) > 1:
                prev_close = _number(closes[-2])

        trade_time = parse_trade_time(quote.get("t")) or datetime.now(timezone.utc)

        return PriceInfo(
            price=_number(quote.get("c")),
            time=trade_time,
            open=_number(quote.get("o")),
            prev_close=prev_close,
        )
