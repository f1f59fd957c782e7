"""
Manager for the portfolio working set.
Coordinates storage, price refreshes, valuation and the persisted view preferences.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from loguru import logger

from profit_ladder.utils.validation_utilities import (
    ValidationError,
    parse_position_input,
    validate_interval,
    validate_ticker,
)
from . import state as portfolio_state
from .calculator import PortfolioCalculator
from .columns import AVAILABLE_COLUMNS, DEFAULT_VISIBLE_COLUMNS, SORT_ASC, normalize_columns
from .credentials import resolve_provider, save_credentials
from .models import Position, PriceInfo, LadderRow
from .price_service import PortfolioPriceService
from .state import PortfolioState
from .store import LocalStore, StorageError, POSITIONS
from .transfer import export_positions, import_positions_from_url

# Settings keys
VISIBLE_COLUMNS_SETTING = "visibleColumns"
SORT_COLUMN_SETTING = "sortColumn"
SORT_DIRECTION_SETTING = "sortDirection"
REFRESH_INTERVAL_SETTING = "refreshInterval"

TICKER_INDEX = "tickerSymbol"

RefreshListener = Callable[[PortfolioState, bool], Awaitable[None]]


def positions_from_records(records: Iterable[Dict[str, Any]]) -> List[Position]:
    """
    Convert store records to positions, skipping records that do not hold valid numbers.

    Args:
        records: Records read from the Positions collection

    Returns:
        Positions for every readable record, in store order
    """
    positions = []
    for record in records:
        try:
            positions.append(Position.from_record(record))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable position record {record.get('id')}: {e}")
    return positions


class PortfolioManager:
    """Manager for the portfolio working set and its auto-refresh timer"""

    def __init__(
        self,
        store: LocalStore,
        price_service: Optional[PortfolioPriceService] = None,
        calculator: Optional[PortfolioCalculator] = None,
        default_refresh_interval: int = 0
    ):
        """
        Initialize the portfolio manager.

        Args:
            store: Local store holding positions and settings
            price_service: Service used to fetch live prices
            calculator: Valuation engine
            default_refresh_interval: Interval used until one is stored (seconds, 0 = off)
        """
        self.store = store
        self.price_service = price_service or PortfolioPriceService()
        self.calculator = calculator or PortfolioCalculator()
        self.state = PortfolioState(refresh_interval=default_refresh_interval)
        self.last_known_prices: Dict[str, PriceInfo] = {}
        self._refresh_task: Optional[asyncio.Task] = None
        self._listeners: List[RefreshListener] = []
        logger.debug("Initialized PortfolioManager")

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Register a coroutine called after every load with the new state and whether the timer triggered it"""
        self._listeners.append(listener)

    async def _read_setting(self, key: str, default: Any = None) -> Any:
        try:
            return await self.store.get_setting(key, default)
        except StorageError as e:
            logger.error(f"Error reading setting {key}: {e}")
            return default

    async def _write_preference(self, key: str, value: Any) -> None:
        """Persist a view preference; failures are logged, the in-memory change stands"""
        try:
            await self.store.put_setting(key, value)
        except StorageError as e:
            logger.error(f"Error saving setting {key}: {e}")

    async def initialize(self) -> PortfolioState:
        """
        Open the store and restore the persisted columns, sort and refresh interval.

        Returns:
            The restored (not yet loaded) state
        """
        try:
            await self.store.open()
        except StorageError as e:
            logger.error(f"Error opening portfolio store: {e}")
            return self.state

        columns = normalize_columns(await self._read_setting(VISIBLE_COLUMNS_SETTING, []) or [])
        sort_column = await self._read_setting(SORT_COLUMN_SETTING)
        sort_direction = await self._read_setting(SORT_DIRECTION_SETTING, SORT_ASC)
        interval = await self._read_setting(REFRESH_INTERVAL_SETTING, self.state.refresh_interval)

        state = self.state
        if columns:
            state = portfolio_state.with_visible_columns(state, columns)
        if sort_column not in AVAILABLE_COLUMNS:
            sort_column = None
        state = portfolio_state.with_sort(state, sort_column, sort_direction)
        try:
            state = portfolio_state.with_refresh_interval(state, interval)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid stored refresh interval: {interval}")
        self.state = state

        logger.info(
            f"Restored portfolio settings: {len(state.visible_columns)} columns, "
            f"sort={state.sort_column} {state.sort_direction}, refresh={state.refresh_interval}s"
        )
        return self.state

    # ------------------------------------------------------------------ #
    # Load / refresh
    # ------------------------------------------------------------------ #

    def _remember_prices(self, fetched: Dict[str, PriceInfo]) -> None:
        for ticker, info in fetched.items():
            if info.price:
                self.last_known_prices[ticker] = info

    def _price_data(self, fetched: Dict[str, PriceInfo]) -> Dict[str, PriceInfo]:
        """Fetched prices where available, last-known prices elsewhere"""
        data = dict(self.last_known_prices)
        data.update({ticker: info for ticker, info in fetched.items() if info.price})
        return data

    async def load(self, scheduled: bool = False) -> PortfolioState:
        """
        Rebuild the working set from storage with fresh prices.

        Hidden positions and unreadable records are left out. Storage and
        network failures degrade to an empty working set or cached prices.

        Args:
            scheduled: True when the auto-refresh timer triggered the load

        Returns:
            The new state
        """
        try:
            records = await self.store.get_all(POSITIONS)
        except StorageError as e:
            logger.error(f"Error fetching visible positions: {e}")
            records = []

        positions = positions_from_records(record for record in records if not record.get("hide"))

        provider = await resolve_provider(self.store)
        fetched = await self.price_service.fetch_prices({p.ticker for p in positions}, provider)
        self._remember_prices(fetched)

        valued, totals = self.calculator.valuate(positions, self._price_data(fetched))
        self.state = portfolio_state.with_positions(self.state, valued, totals)
        logger.debug(f"Loaded {len(valued)} visible positions")

        await self._notify(scheduled)
        return self.state

    async def _notify(self, scheduled: bool) -> None:
        for listener in list(self._listeners):
            try:
                await listener(self.state, scheduled)
            except Exception as e:
                logger.error(f"Error in portfolio refresh listener: {str(e)}")

    # ------------------------------------------------------------------ #
    # View preferences
    # ------------------------------------------------------------------ #

    async def toggle_sort(self, column: str) -> PortfolioState:
        """
        Sort by a column, flipping the direction when it is already active.

        Raises:
            ValidationError: If the column is unknown
        """
        if column not in AVAILABLE_COLUMNS:
            raise ValidationError(f"Unknown column: {column}")

        self.state = portfolio_state.toggle_sort(self.state, column)
        await self._write_preference(SORT_COLUMN_SETTING, self.state.sort_column)
        await self._write_preference(SORT_DIRECTION_SETTING, self.state.sort_direction)
        logger.info(f"Sorted portfolio by {column} {self.state.sort_direction}")
        return self.state

    async def set_visible_columns(self, columns: Iterable[str]) -> PortfolioState:
        """
        Set which columns render and in what order.

        Raises:
            ValidationError: If no known column remains
        """
        cleaned = normalize_columns(columns)
        if not cleaned:
            raise ValidationError(
                f"No valid columns given. Available: {', '.join(AVAILABLE_COLUMNS)}"
            )

        self.state = portfolio_state.with_visible_columns(self.state, cleaned)
        await self._write_preference(VISIBLE_COLUMNS_SETTING, list(self.state.visible_columns))
        logger.info(f"Updated visible columns: {cleaned}")
        return self.state

    def set_ticker_filter(self, text: str) -> PortfolioState:
        """Set the ticker text filter applied by the view (not persisted)"""
        self.state = portfolio_state.with_ticker_filter(self.state, text)
        return self.state

    async def set_ticker_hidden(self, ticker: str, hide: bool) -> int:
        """
        Set the hide flag on every stored position of a ticker, then reload.

        Returns:
            Number of positions updated

        Raises:
            StorageError: If a position cannot be written
        """
        ticker = ticker.strip().upper()
        records = await self.store.get_all_by_index(POSITIONS, TICKER_INDEX, ticker)

        # One write at a time so the ticker never ends up half updated by this operation
        for record in records:
            record["hide"] = hide
            await self.store.put(POSITIONS, record)

        logger.info(f"Set hide={hide} for tickerSymbol={ticker} ({len(records)} positions)")
        await self.load()
        return len(records)

    async def list_tickers(self) -> List[Tuple[str, bool]]:
        """
        List every stored ticker with its hidden state.

        A ticker counts as hidden only when all of its positions are hidden.
        """
        try:
            tickers = await self.store.list_distinct_indexed_values(POSITIONS, TICKER_INDEX)
            result = []
            for ticker in tickers:
                records = await self.store.get_all_by_index(POSITIONS, TICKER_INDEX, ticker)
                result.append((ticker, all(r.get("hide") for r in records)))
            return result
        except StorageError as e:
            logger.error(f"Error fetching all tickers: {e}")
            return []

    # ------------------------------------------------------------------ #
    # Auto-refresh
    # ------------------------------------------------------------------ #

    @property
    def auto_refresh_active(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _refresh_loop(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            logger.debug("Auto-refreshing prices...")
            try:
                await self.load(scheduled=True)
            except Exception as e:
                logger.error(f"Error during auto-refresh: {str(e)}")

    def start_auto_refresh(self) -> bool:
        """
        Arm the refresh timer with the current interval, cancelling any running one.

        Returns:
            Whether a timer is now running
        """
        self.stop_auto_refresh()

        interval = self.state.refresh_interval
        if interval <= 0:
            logger.info("Auto-refresh stopped")
            return False

        self._refresh_task = asyncio.create_task(self._refresh_loop(interval))
        logger.info(f"Auto-refresh set to every {interval} seconds")
        return True

    def stop_auto_refresh(self) -> None:
        """Cancel the refresh timer if one is running"""
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

    async def set_refresh_interval(self, seconds: Any) -> PortfolioState:
        """
        Persist a new refresh interval and re-arm the timer.

        Raises:
            ValidationError: If the interval is invalid
            StorageError: If the setting cannot be written
        """
        is_valid, error = validate_interval(seconds)
        if not is_valid:
            raise ValidationError(error)

        interval = int(seconds)
        await self.store.put_setting(REFRESH_INTERVAL_SETTING, interval)
        self.state = portfolio_state.with_refresh_interval(self.state, interval)
        self.start_auto_refresh()
        return self.state

    # ------------------------------------------------------------------ #
    # Positions
    # ------------------------------------------------------------------ #

    async def save_position(
        self,
        ticker: str,
        avg_price: Any,
        num_shares: Any,
        price_step: Optional[Any] = None,
        levels: Optional[Any] = None
    ) -> Position:
        """
        Create a position, or update the existing one for the same ticker.

        Returns:
            The stored position with its id

        Raises:
            ValidationError: If a field is missing or invalid
            StorageError: If the position cannot be written
        """
        ticker, price, shares, step, level_count = parse_position_input(
            ticker, avg_price, num_shares, price_step, levels
        )

        records = await self.store.get_all_by_index(POSITIONS, TICKER_INDEX, ticker)
        existing = positions_from_records(records)
        if existing:
            position = existing[0]
            position.avg_price = price
            position.num_shares = shares
            position.price_step = step or price * 0.01
            position.levels = level_count or 5
            action = "updated"
        else:
            position = Position(
                ticker=ticker,
                avg_price=price,
                num_shares=shares,
                price_step=step,
                levels=level_count,
                # An unreadable record for the ticker is overwritten
                id=records[0].get("id") if records else None,
            )
            action = "saved"

        position.id = await self.store.put(POSITIONS, position.to_record())
        logger.info(f"Position {action}: {ticker} (id {position.id})")
        return position

    async def delete_position(self, position_id: int) -> Optional[Position]:
        """
        Delete a stored position by id.

        Returns:
            The deleted position or None if no position has that id

        Raises:
            StorageError: If the store cannot be read or written
        """
        record = await self.store.get(POSITIONS, position_id)
        if record is None:
            return None

        await self.store.delete(POSITIONS, position_id)
        logger.info(f"Deleted position {position_id} ({record.get('tickerSymbol')})")
        deleted = positions_from_records([record])
        if deleted:
            return deleted[0]
        return Position(ticker=str(record.get("tickerSymbol", "")), avg_price=0.0, num_shares=0, id=position_id)

    async def list_positions(self) -> List[Position]:
        """Every stored position, hidden ones included"""
        try:
            records = await self.store.get_all(POSITIONS)
        except StorageError as e:
            logger.error(f"Error loading saved positions: {e}")
            return []
        return positions_from_records(records)

    # ------------------------------------------------------------------ #
    # Ladder
    # ------------------------------------------------------------------ #

    async def _current_price(self, position: Position) -> float:
        known = self.last_known_prices.get(position.ticker)
        if known is None:
            provider = await resolve_provider(self.store)
            fetched = await self.price_service.fetch_prices([position.ticker], provider)
            self._remember_prices(fetched)
            known = self.last_known_prices.get(position.ticker)
        if known is not None:
            return known.price
        return position.last_price or position.avg_price

    async def ladder(self, ticker: str) -> Tuple[Position, float, List[LadderRow]]:
        """
        Build the profit ladder of a saved position.

        Returns:
            Tuple of (position, current price used for highlighting, ladder rows)

        Raises:
            ValidationError: If the ticker is invalid or has no saved position
            StorageError: If the store cannot be read
        """
        is_valid, error = validate_ticker(ticker)
        if not is_valid:
            raise ValidationError(error)

        ticker = ticker.strip().upper()
        records = await self.store.get_all_by_index(POSITIONS, TICKER_INDEX, ticker)
        positions = positions_from_records(records)
        if not positions:
            raise ValidationError(f"No saved position for {ticker}.")

        position = positions[0]
        current_price = await self._current_price(position)
        rows = self.calculator.build_ladder(
            position.avg_price,
            position.num_shares,
            position.price_step,
            position.levels,
            current_price,
        )
        return position, current_price, rows

    def calculate_ladder(
        self,
        ticker: str,
        avg_price: Any,
        num_shares: Any,
        price_step: Optional[Any] = None,
        levels: Optional[Any] = None,
        current_price: Optional[float] = None
    ) -> Tuple[Position, float, List[LadderRow]]:
        """
        Build a ladder from form values without saving anything.

        Returns:
            Tuple of (position, current price used for highlighting, ladder rows)

        Raises:
            ValidationError: If a field is missing or invalid
        """
        ticker, price, shares, step, level_count = parse_position_input(
            ticker, avg_price, num_shares, price_step, levels
        )
        position = Position(ticker=ticker, avg_price=price, num_shares=shares,
                            price_step=step, levels=level_count)
        if current_price is None:
            known = self.last_known_prices.get(ticker)
            current_price = known.price if known else price
        rows = self.calculator.build_ladder(
            position.avg_price, position.num_shares, position.price_step, position.levels, current_price
        )
        return position, current_price, rows

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    async def save_credentials(
        self,
        alpaca_key: Optional[str] = None,
        alpaca_secret: Optional[str] = None,
        finnhub_key: Optional[str] = None
    ) -> int:
        """Store API credentials; raises StorageError on failure"""
        return await save_credentials(self.store, alpaca_key, alpaca_secret, finnhub_key)

    async def reset_settings(self) -> PortfolioState:
        """
        Restore the default columns and sort, and unhide every position.

        Raises:
            StorageError: If a setting or position cannot be written
        """
        await self.store.put_setting(VISIBLE_COLUMNS_SETTING, list(DEFAULT_VISIBLE_COLUMNS))
        await self.store.put_setting(SORT_COLUMN_SETTING, None)
        await self.store.put_setting(SORT_DIRECTION_SETTING, SORT_ASC)

        for record in await self.store.get_all(POSITIONS):
            if record.get("hide"):
                record["hide"] = False
                await self.store.put(POSITIONS, record)

        state = portfolio_state.with_visible_columns(self.state, DEFAULT_VISIBLE_COLUMNS)
        self.state = portfolio_state.with_sort(state, None, SORT_ASC)
        logger.info("Settings reset to default")
        return await self.load()

    # ------------------------------------------------------------------ #
    # Import / export
    # ------------------------------------------------------------------ #

    async def export_positions(self) -> str:
        """Pretty-printed JSON array of every stored position"""
        return await export_positions(self.store)

    async def import_positions(self, url: str) -> int:
        """
        Import positions from a JSON URL and reload.

        Raises:
            ValidationError: If no URL is given
            NetworkError: If the file cannot be fetched
            FormatError: If the payload is not an array of positions
            StorageError: If a write fails
        """
        url = (url or "").strip()
        if not url:
            raise ValidationError("Please enter a valid URL for JSON data.")

        count = await import_positions_from_url(self.store, url)
        await self.load()
        return count
