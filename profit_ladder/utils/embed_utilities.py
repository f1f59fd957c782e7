"""
Utility functions for creating standardized Discord embeds across the bot.
This module centralizes number formatting and table layout so every embed reads the same.
"""

from typing import Any, List, Optional, Sequence

# Discord limits
EMBED_DESCRIPTION_LIMIT = 4096


def format_currency(value: Optional[float]) -> str:
    """
    Format a money amount with two decimals and a leading dollar sign.

    Args:
        value: Amount to format

    Returns:
        Text such as "$1,234.50" or "-$12.00"
    """
    if value is None:
        return "N/A"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: Optional[float], signed: bool = False) -> str:
    """
    Format a percentage with two decimals.

    Args:
        value: Percentage to format
        signed: Prefix non-negative values with "+"

    Returns:
        Text such as "12.34%" or "+1.00%"
    """
    if value is None:
        return "N/A"
    sign = "+" if signed and value >= 0 else ""
    return f"{sign}{value:.2f}%"


def truncate(text: str, limit: int) -> str:
    """Cut text to a Discord length limit, marking the cut"""
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def create_table_block(headers: Sequence[str], rows: List[Sequence[Any]], limit: int = EMBED_DESCRIPTION_LIMIT) -> str:
    """
    Lay out rows as a monospaced table inside a code block.

    Args:
        headers: Column headers
        rows: Cell values, one sequence per row
        limit: Maximum length of the returned text

    Returns:
        Table text wrapped in a ``` block; rows that do not fit are dropped
    """
    cells = [[str(h) for h in headers]] + [[str(c) for c in row] for row in rows]
    widths = [max(len(row[i]) for row in cells) for i in range(len(headers))]

    def render(row: List[str]) -> str:
        # First column left aligned, numbers right aligned
        parts = [row[0].ljust(widths[0])] + [cell.rjust(widths[i]) for i, cell in enumerate(row) if i > 0]
        return "  ".join(parts).rstrip()

    lines = [render(cells[0]), "-" * len(render(cells[0]))]
    budget = limit - len("```\n\n```") - 1
    used = sum(len(line) + 1 for line in lines)

    for row in cells[1:]:
        line = render(row)
        if used + len(line) + 1 > budget:
            lines.append("...")
            break
        lines.append(line)
        used += len(line) + 1

    return "```\n" + "\n".join(lines) + "\n```"

