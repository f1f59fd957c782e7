"""
Embed builder for portfolio data.
Creates formatted Discord embeds for the portfolio table, the profit ladder and settings views.
"""

import discord
from typing import Any, List, Optional, Tuple
from datetime import datetime

from profit_ladder.utils.embed_utilities import (
    EMBED_DESCRIPTION_LIMIT,
    create_table_block,
    format_currency,
    format_percent,
    truncate,
)
from .columns import (
    AVAILABLE_COLUMNS,
    PERCENT_COLUMNS,
    TEXT_COLUMNS,
    TOTAL_COLUMNS,
    SORT_ASC,
    get_column_display_name,
)
from .models import Position, LadderRow
from .state import PortfolioState, visible_positions


def format_cell(column: str, value: Any) -> str:
    """
    Format one table cell according to its column.

    Args:
        column: Column identifier
        value: Raw value

    Returns:
        Display text
    """
    if value is None:
        return ""
    if column in TEXT_COLUMNS:
        return str(value)
    if column == "numShares":
        return str(int(value))
    if column in PERCENT_COLUMNS:
        return format_percent(value)
    return f"{value:.2f}"


class PortfolioEmbedBuilder:
    """Builder for portfolio embeds"""

    def __init__(self, max_positions: int = 20):
        self.max_positions = max_positions

    def build_portfolio_embed(
        self,
        state: PortfolioState,
        title: str = "Portfolio Summary",
        description: Optional[str] = None
    ) -> discord.Embed:
        """
        Build the portfolio table embed.

        Columns follow the visible column order; the last row holds the totals.

        Args:
            state: Current working set and view preferences
            title: Embed title
            description: Optional text shown above the table

        Returns:
            Formatted Discord embed
        """
        totals = state.totals
        color = discord.Color.green() if totals.profit >= 0 else discord.Color.red()
        embed = discord.Embed(title=title, color=color, timestamp=datetime.now())

        positions = visible_positions(state)
        columns = list(state.visible_columns)

        if not positions:
            embed.description = description or "No positions to display."
        else:
            headers = [get_column_display_name(c) for c in columns]
            rows = []
            for position in positions[:self.max_positions]:
                values = position.to_dict()
                rows.append([format_cell(c, values.get(c)) for c in columns])

            total_values = totals.to_dict()
            total_row = [format_cell(c, total_values[c]) if c in TOTAL_COLUMNS else "" for c in columns]
            if columns[0] not in TOTAL_COLUMNS:
                total_row[0] = "TOTAL"
            rows.append(total_row)

            table = create_table_block(headers, rows)
            embed.description = f"{description}\n{table}" if description else table

            if len(positions) > self.max_positions:
                embed.add_field(
                    name="Note",
                    value=f"Showing {self.max_positions} of {len(positions)} positions",
                    inline=False
                )

        embed.add_field(name="Total Value", value=format_currency(totals.total_value), inline=True)
        embed.add_field(
            name="Total Profit",
            value=f"{format_currency(totals.profit)} ({format_percent(totals.profit_pct, signed=True)})",
            inline=True
        )
        embed.add_field(
            name="Today",
            value=f"{format_currency(totals.change_today)} ({format_percent(totals.change_pct_today, signed=True)})",
            inline=True
        )

        embed.set_footer(text=self._footer_text(state))
        return embed

    def _footer_text(self, state: PortfolioState) -> str:
        parts = []
        if state.sort_column:
            arrow = "▲" if state.sort_direction == SORT_ASC else "▼"
            parts.append(f"Sorted by {get_column_display_name(state.sort_column)} {arrow}")
        if state.ticker_filter:
            parts.append(f"Filter: {state.ticker_filter}")
        if state.refresh_interval:
            parts.append(f"Auto-refresh every {state.refresh_interval}s")
        return " | ".join(parts) or "Auto-refresh off"

    def build_ladder_embed(
        self,
        position: Position,
        rows: List[LadderRow],
        current_price: Optional[float] = None
    ) -> discord.Embed:
        """
        Build the profit ladder embed for one position.

        Args:
            position: Position the ladder was built for
            rows: Ladder rows from lowest to highest price level
            current_price: Price used to pick the highlighted row

        Returns:
            Formatted Discord embed
        """
        embed = discord.Embed(
            title=f"Profit Ladder: {position.ticker}",
            color=discord.Color.blue(),
            timestamp=datetime.now()
        )
        embed.add_field(
            name="Position",
            value=(
                f"{position.num_shares} shares @ {format_currency(position.avg_price)}, "
                f"step {position.price_step:.2f}, {position.levels} levels"
            ),
            inline=False
        )

        if current_price is not None:
            embed.add_field(name="Current Price", value=format_currency(current_price), inline=True)

        if not rows:
            embed.description = "No price levels to display."
            return embed

        table_rows = []
        for row in rows:
            marker = "►" if row.highlighted else " "
            table_rows.append([
                f"{marker}{row.price_level:.2f}",
                f"{row.profit_loss:.2f}",
                format_percent(row.percent_change),
            ])
        # The description holds every row of the largest allowed ladder
        embed.description = create_table_block([" Price Level", "Profit/Loss", "% Change"], table_rows)
        return embed

    def build_positions_list_embed(self, positions: List[Position]) -> discord.Embed:
        """
        Build the list of every saved position, hidden ones included.

        Args:
            positions: Stored positions

        Returns:
            Formatted Discord embed
        """
        embed = discord.Embed(title="Saved Positions", color=discord.Color.blue())
        if not positions:
            embed.description = "No saved positions."
            return embed

        rows = [
            [
                str(p.id),
                p.ticker,
                f"{p.avg_price:.2f}",
                str(p.num_shares),
                f"{p.price_step:.2f}",
                str(p.levels),
                "yes" if p.hide else "",
            ]
            for p in positions
        ]
        embed.description = create_table_block(
            ["ID", "Ticker", "Avg Price", "Shares", "Step", "Levels", "Hidden"], rows
        )
        return embed

    def build_tickers_embed(self, tickers: List[Tuple[str, bool]]) -> discord.Embed:
        """Build the ticker visibility list"""
        embed = discord.Embed(title="Tickers", color=discord.Color.blue())
        if not tickers:
            embed.description = "No saved positions."
            return embed

        lines = [f"{'🙈' if hidden else '👁️'} {ticker}" for ticker, hidden in tickers]
        embed.description = truncate("\n".join(lines), EMBED_DESCRIPTION_LIMIT)
        embed.set_footer(text="Use !hide TICKER or !show TICKER")
        return embed

    def build_columns_embed(self, visible_columns: List[str]) -> discord.Embed:
        """Build the column picker view with the visible columns checked"""
        embed = discord.Embed(title="Columns", color=discord.Color.blue())
        lines = []
        for column, name in AVAILABLE_COLUMNS.items():
            check = "☑" if column in visible_columns else "☐"
            lines.append(f"{check} `{column}` {name}")
        embed.description = "\n".join(lines)
        embed.add_field(name="Order", value=", ".join(visible_columns) or "None", inline=False)
        embed.set_footer(text="Use !columns col1 col2 ... to choose and order columns")
        return embed
