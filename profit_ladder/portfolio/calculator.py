"""
Calculator for portfolio statistics.
Derives per-position and aggregate values from stored positions and price data.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Iterable

from profit_ladder.utils.validation_utilities import MAX_LADDER_LEVELS
from .models import Position, PriceInfo, ValuedPosition, PortfolioTotals, LadderRow


NOT_AVAILABLE = "N/A"

# Largest unit first; months and years are calendar approximations
TIME_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def format_time_since(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Render the time elapsed since a trade as relative text.

    Args:
        timestamp: Trade time, None when the provider reported none
        now: Reference time (defaults to the current UTC time)

    Returns:
        Text such as "3 hours ago" or "N/A"
    """
    if timestamp is None:
        return NOT_AVAILABLE

    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = max(0, int((now - timestamp).total_seconds()))

    for unit, length in TIME_UNITS:
        count = seconds // length
        if count:
            suffix = "" if count == 1 else "s"
            return f"{count} {unit}{suffix} ago"

    return "0 seconds ago"


def _percent(numerator: float, denominator: float) -> float:
    return (numerator / denominator) * 100 if denominator != 0 else 0.0


class PortfolioCalculator:
    """Calculator for portfolio valuation and the profit ladder"""

    def valuate(
        self,
        positions: Iterable[Position],
        price_data: Dict[str, PriceInfo],
        now: Optional[datetime] = None
    ) -> Tuple[List[ValuedPosition], PortfolioTotals]:
        """
        Compute the derived fields of every position and the portfolio totals.

        The current price is the fetched price, else the position's cached last
        price, else 0.

        Args:
            positions: Stored positions
            price_data: Mapping of ticker -> fetched PriceInfo
            now: Reference time for the last-trade text

        Returns:
            Tuple of (valued positions in input order, totals)
        """
        now = now or datetime.now(timezone.utc)
        valued = []
        totals = PortfolioTotals()
        prev_close_value = 0.0
        day_change_value = 0.0
        gap_value = 0.0

        for position in positions:
            info = price_data.get(position.ticker) or PriceInfo()
            current_price = info.price or position.last_price or 0.0
            prev_close = info.prev_close or 0.0
            open_price = info.open or 0.0
            shares = position.num_shares

            cost_basis = position.avg_price * shares
            total_value = current_price * shares
            profit = total_value - cost_basis
            change_today = current_price - prev_close

            valued.append(ValuedPosition(
                position=position,
                last_price=current_price,
                cost_basis=cost_basis,
                total_value=total_value,
                profit=profit,
                profit_pct=_percent(profit, cost_basis),
                change_today=change_today,
                change_pct_today=_percent(change_today, prev_close),
                gap_pct=_percent(current_price - open_price, prev_close),
                time_since_last_trade=format_time_since(info.time, now),
            ))

            totals.cost_basis += cost_basis
            totals.total_value += total_value
            totals.profit += profit
            totals.change_today += change_today

            # Position-weighted bases for the day percentages
            if prev_close != 0:
                prev_close_value += prev_close * shares
                day_change_value += change_today * shares
                gap_value += (current_price - open_price) * shares

        totals.position_count = len(valued)
        totals.profit_pct = _percent(totals.profit, totals.cost_basis)
        totals.change_pct_today = _percent(day_change_value, prev_close_value)
        totals.gap_pct = _percent(gap_value, prev_close_value)

        return valued, totals

    def build_ladder(
        self,
        avg_price: float,
        num_shares: int,
        price_step: float,
        levels: int,
        current_price: Optional[float] = None
    ) -> List[LadderRow]:
        """
        Project profit/loss at price levels spaced around the average price.

        Args:
            avg_price: Average price per share
            num_shares: Number of shares (negative for short positions)
            price_step: Spacing between levels
            levels: Number of levels on each side of the average price (capped)
            current_price: Market price used to highlight the nearest level

        Returns:
            Ladder rows from the lowest to the highest price level
        """
        levels = max(0, min(int(levels), MAX_LADDER_LEVELS))
        rows = []
        for i in range(-levels, levels + 1):
            price_level = avg_price + i * price_step
            if price_level < 0:
                continue
            rows.append(LadderRow(
                price_level=price_level,
                profit_loss=(price_level - avg_price) * num_shares,
                percent_change=_percent(price_level - avg_price, avg_price),
            ))

        if rows:
            target = avg_price if current_price is None else current_price
            nearest = None
            smallest_difference = float("inf")
            for row in rows:
                difference = abs(row.price_level - target)
                # Strict comparison keeps the first-seen row on ties
                if difference < smallest_difference:
                    smallest_difference = difference
                    nearest = row
            nearest.highlighted = True

        return rows
