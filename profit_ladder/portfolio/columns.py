"""
Column definitions for the portfolio table.
"""

from typing import List, Iterable

# Column identifier -> display name, in default display order
AVAILABLE_COLUMNS = {
    "tickerSymbol": "Ticker",
    "avgPrice": "Average Price",
    "numShares": "Shares",
    "lastPrice": "Current Price",
    "costBasis": "Cost Basis",
    "totalValue": "Total Value",
    "profit": "Profit",
    "profitPct": "Profit %",
    "changeToday": "Change Today",
    "changePctToday": "Change % Today",
    "gapPct": "Gap %",
    "lastTime": "Time Since Last Trade",
}

DEFAULT_VISIBLE_COLUMNS = list(AVAILABLE_COLUMNS)

PERCENT_COLUMNS = frozenset({"profitPct", "changePctToday", "gapPct"})
TEXT_COLUMNS = frozenset({"tickerSymbol", "lastTime"})
TOTAL_COLUMNS = frozenset({
    "costBasis", "totalValue", "profit", "profitPct",
    "changeToday", "changePctToday", "gapPct",
})

SORT_ASC = "asc"
SORT_DESC = "desc"


def get_column_display_name(column: str) -> str:
    """Display name for a column identifier, falling back to the identifier"""
    return AVAILABLE_COLUMNS.get(column, column)


def normalize_columns(columns: Iterable[str]) -> List[str]:
    """
    Drop unknown identifiers and collapse duplicates to their first occurrence.

    Args:
        columns: Column identifiers in display order

    Returns:
        Cleaned list of column identifiers
    """
    seen = set()
    result = []
    for column in columns:
        if column in AVAILABLE_COLUMNS and column not in seen:
            seen.add(column)
            result.append(column)
    return result
