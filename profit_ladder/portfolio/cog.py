"""
Discord cog for the profit ladder portfolio.
Registers the portfolio commands and drives auto-refresh updates.
"""

from discord.ext import commands
from typing import Optional
from loguru import logger

from profit_ladder.config import (
    PORTFOLIO_DB_PATH,
    PORTFOLIO_CHANNEL_ID,
    DEFAULT_REFRESH_INTERVAL,
    MAX_EMBED_POSITIONS,
)
from .commands import PortfolioCommands
from .embed_builder import PortfolioEmbedBuilder
from .manager import PortfolioManager
from .state import PortfolioState
from .store import LocalStore


class PortfolioTracker(commands.Cog):
    """Discord cog for tracking portfolio value and profit ladders"""

    def __init__(self, bot, manager: Optional[PortfolioManager] = None):
        """Initialize the portfolio tracker cog"""
        self.bot = bot
        self.manager = manager or PortfolioManager(
            LocalStore(PORTFOLIO_DB_PATH),
            default_refresh_interval=DEFAULT_REFRESH_INTERVAL,
        )
        self.commands = PortfolioCommands(self.manager, PortfolioEmbedBuilder(MAX_EMBED_POSITIONS))
        self.manager.add_refresh_listener(self.on_portfolio_refresh)
        logger.info("Portfolio tracker initialized")

    async def cog_load(self):
        """Restore persisted settings and arm the refresh timer"""
        await self.manager.initialize()
        self.manager.start_auto_refresh()

    async def cog_unload(self):
        """Clean up when the cog is unloaded"""
        self.manager.stop_auto_refresh()
        logger.info("Portfolio tracker stopped")

    async def on_portfolio_refresh(self, state: PortfolioState, scheduled: bool):
        """Push timer-driven refreshes to the portfolio message or channel"""
        # Command-driven loads already reply with their own embed
        if not scheduled or not self.manager.auto_refresh_active:
            return
        channel = self.bot.get_channel(PORTFOLIO_CHANNEL_ID) if PORTFOLIO_CHANNEL_ID else None
        await self.commands.send_portfolio_update(state, channel)

    @commands.command(name="portfolio")
    async def show_portfolio(self, ctx):
        """Show the portfolio table with fresh prices"""
        await self.commands.handle_show_portfolio(ctx)

    @commands.command(name="addposition")
    async def add_position(self, ctx, ticker: str, avg_price: str, num_shares: str,
                           price_step: Optional[str] = None, levels: Optional[str] = None):
        """
        Save a position, or update the saved one for the ticker

        Example: !addposition AAPL 150 10 1.5 5
        """
        await self.commands.handle_add_position(ctx, ticker, avg_price, num_shares, price_step, levels)

    @commands.command(name="deleteposition")
    async def delete_position(self, ctx, position_id: str):
        """Delete a saved position by id (see !positions)"""
        await self.commands.handle_delete_position(ctx, position_id)

    @commands.command(name="positions")
    async def list_positions(self, ctx):
        """List every saved position, hidden ones included"""
        await self.commands.handle_list_positions(ctx)

    @commands.command(name="ladder")
    async def ladder(self, ctx, ticker: str, *values: str):
        """
        Show a profit ladder

        Example: !ladder AAPL  or  !ladder AAPL 150 10 1.5 5
        """
        await self.commands.handle_ladder(ctx, ticker, *values)

    @commands.command(name="sort")
    async def sort(self, ctx, column: str):
        """Sort by a column; repeat to flip the direction"""
        await self.commands.handle_sort(ctx, column)

    @commands.command(name="columns")
    async def columns(self, ctx, *columns: str):
        """Show or set the visible columns in display order"""
        await self.commands.handle_columns(ctx, list(columns))

    @commands.command(name="filter")
    async def filter(self, ctx, text: str = ""):
        """Filter the portfolio by ticker text"""
        await self.commands.handle_filter(ctx, text)

    @commands.command(name="tickers")
    async def tickers(self, ctx):
        """List saved tickers and whether they are hidden"""
        await self.commands.handle_tickers(ctx)

    @commands.command(name="hide")
    async def hide(self, ctx, ticker: str):
        """Hide every position of a ticker from the portfolio"""
        await self.commands.handle_set_hidden(ctx, ticker, True)

    @commands.command(name="show")
    async def show(self, ctx, ticker: str):
        """Show every position of a ticker in the portfolio"""
        await self.commands.handle_set_hidden(ctx, ticker, False)

    @commands.command(name="refresh")
    async def refresh(self, ctx, interval: Optional[str] = None):
        """
        Refresh prices now, or set the auto-refresh interval in seconds

        Example: !refresh 60  (0 stops auto-refresh)
        """
        await self.commands.handle_refresh(ctx, interval)

    @commands.command(name="setkeys")
    async def set_keys(self, ctx, provider: str, key: str, secret: Optional[str] = None):
        """
        Store price provider API keys

        Example: !setkeys alpaca KEY SECRET  or  !setkeys finnhub KEY
        """
        await self.commands.handle_set_keys(ctx, provider, key, secret)

    @commands.command(name="export")
    async def export(self, ctx):
        """Export saved positions as a JSON file"""
        await self.commands.handle_export(ctx)

    @commands.command(name="import")
    async def import_positions(self, ctx, url: Optional[str] = None):
        """Import positions from a JSON URL or attachment"""
        await self.commands.handle_import(ctx, url)

    @commands.command(name="resetsettings")
    async def reset_settings(self, ctx):
        """Reset columns and sort, and unhide every ticker"""
        await self.commands.handle_reset_settings(ctx)


async def setup(bot):
    """Add the PortfolioTracker cog to the bot"""
    portfolio_tracker = PortfolioTracker(bot)
    await bot.add_cog(portfolio_tracker)
    return portfolio_tracker
