"""
Working-set state for the portfolio view.
Every change returns a new PortfolioState so sort/filter logic can be exercised without a bot.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional, Tuple

from .columns import DEFAULT_VISIBLE_COLUMNS, SORT_ASC, SORT_DESC, normalize_columns
from .models import ValuedPosition, PortfolioTotals


@dataclass(frozen=True)
class PortfolioState:
    """Snapshot of the working set and the view preferences applied to it"""
    positions: Tuple[ValuedPosition, ...] = ()
    totals: PortfolioTotals = field(default_factory=PortfolioTotals)
    visible_columns: Tuple[str, ...] = tuple(DEFAULT_VISIBLE_COLUMNS)
    sort_column: Optional[str] = None
    sort_direction: str = SORT_ASC
    ticker_filter: str = ""
    refresh_interval: int = 0


def sort_key(value: Any) -> Tuple[int, Any]:
    """
    Coerce a column value into a comparable key.

    Missing values compare as the empty string and strings compare
    case-insensitively. Numbers order before strings.
    """
    if value is None:
        value = ""
    if isinstance(value, str):
        return (1, value.lower())
    if isinstance(value, bool):
        return (0, int(value))
    return (0, value)


def sort_positions(
    positions: Iterable[ValuedPosition],
    column: Optional[str],
    direction: str = SORT_ASC
) -> List[ValuedPosition]:
    """
    Sort valued positions by a column.

    Ascending order is a stable sort; descending order is exactly the reverse
    of ascending order.

    Args:
        positions: Positions to sort
        column: Column identifier, None keeps the input order
        direction: "asc" or "desc"

    Returns:
        New sorted list
    """
    positions = list(positions)
    if not column:
        return positions

    ordered = sorted(positions, key=lambda p: sort_key(p.to_dict().get(column)))
    if direction == SORT_DESC:
        ordered.reverse()
    return ordered


def filter_positions(positions: Iterable[ValuedPosition], text: str) -> List[ValuedPosition]:
    """Keep positions whose ticker contains the filter text (case-insensitive)"""
    text = (text or "").strip().lower()
    if not text:
        return list(positions)
    return [p for p in positions if text in p.ticker.lower()]


def with_positions(
    state: PortfolioState,
    positions: Iterable[ValuedPosition],
    totals: PortfolioTotals
) -> PortfolioState:
    """Replace the working set, applying the current sort"""
    ordered = sort_positions(positions, state.sort_column, state.sort_direction)
    return replace(state, positions=tuple(ordered), totals=totals)


def with_sort(state: PortfolioState, column: Optional[str], direction: str = SORT_ASC) -> PortfolioState:
    """Apply an explicit sort column and direction"""
    if direction not in (SORT_ASC, SORT_DESC):
        direction = SORT_ASC
    ordered = sort_positions(state.positions, column, direction)
    return replace(state, positions=tuple(ordered), sort_column=column, sort_direction=direction)


def toggle_sort(state: PortfolioState, column: str) -> PortfolioState:
    """
    Sort by a column as a header click would.

    Clicking the active column flips the direction; a new column starts ascending.
    """
    if state.sort_column == column:
        direction = SORT_DESC if state.sort_direction == SORT_ASC else SORT_ASC
    else:
        direction = SORT_ASC
    return with_sort(state, column, direction)


def with_visible_columns(state: PortfolioState, columns: Iterable[str]) -> PortfolioState:
    """Set the ordered visible columns (unknown identifiers dropped, duplicates collapsed)"""
    return replace(state, visible_columns=tuple(normalize_columns(columns)))


def with_ticker_filter(state: PortfolioState, text: str) -> PortfolioState:
    return replace(state, ticker_filter=(text or "").strip())


def with_refresh_interval(state: PortfolioState, seconds: int) -> PortfolioState:
    return replace(state, refresh_interval=max(0, int(seconds)))


def visible_positions(state: PortfolioState) -> List[ValuedPosition]:
    """Positions the view should render, after the ticker text filter"""
    return filter_positions(state.positions, state.ticker_filter)
