"""
Command handlers for portfolio commands.
Coordinates the manager and the embed builder to process user commands.
"""

import io
import discord
from discord.ext import commands
from typing import List, Optional
from loguru import logger

from profit_ladder.api.request_utilities import NetworkError
from profit_ladder.utils.validation_utilities import ValidationError, parse_int
from .embed_builder import PortfolioEmbedBuilder
from .manager import PortfolioManager
from .state import PortfolioState
from .store import StorageError
from .transfer import FormatError

# Errors reported back to the user instead of bubbling up to discord.py
USER_ERRORS = (ValidationError, StorageError, NetworkError, FormatError)


class PortfolioCommands:
    """Command handlers for the portfolio tracker"""

    def __init__(self, manager: PortfolioManager, embed_builder: Optional[PortfolioEmbedBuilder] = None):
        """
        Initialize with required services.

        Args:
            manager: Portfolio manager
            embed_builder: Builder for the reply embeds
        """
        self.manager = manager
        self.embed_builder = embed_builder or PortfolioEmbedBuilder()
        self.display_message: Optional[discord.Message] = None
        logger.debug("Initialized PortfolioCommands")

    async def _report_error(self, ctx: commands.Context, action: str, error: Exception) -> None:
        logger.error(f"Error {action}: {str(error)}")
        await ctx.send(f"❌ Error {action}: {str(error)}")

    # ------------------------------------------------------------------ #
    # Portfolio view
    # ------------------------------------------------------------------ #

    async def handle_show_portfolio(self, ctx: commands.Context) -> None:
        """
        Load the working set with fresh prices and send the portfolio table.

        Args:
            ctx: Discord context
        """
        async with ctx.typing():
            state = await self.manager.load()
        self.display_message = await ctx.send(embed=self.embed_builder.build_portfolio_embed(state))
        logger.info(f"Portfolio sent to channel {ctx.channel.id}")

    async def send_portfolio_update(self, state: PortfolioState, channel=None) -> None:
        """
        Push a refreshed portfolio table.

        Edits the last portfolio message when there is one, otherwise sends to the channel.

        Args:
            state: New state
            channel: Fallback channel
        """
        embed = self.embed_builder.build_portfolio_embed(state)
        if self.display_message is not None:
            try:
                await self.display_message.edit(embed=embed)
                return
            except discord.NotFound:
                logger.warning("Portfolio message was deleted, sending a new one")
                self.display_message = None

        if channel is not None:
            self.display_message = await channel.send(embed=embed)

    async def handle_sort(self, ctx: commands.Context, column: str) -> None:
        """Toggle the sort on a column and show the result"""
        try:
            state = await self.manager.toggle_sort(column)
        except USER_ERRORS as e:
            await self._report_error(ctx, "sorting portfolio", e)
            return
        self.display_message = await ctx.send(embed=self.embed_builder.build_portfolio_embed(state))

    async def handle_columns(self, ctx: commands.Context, columns: List[str]) -> None:
        """
        Show the column picker, or set the visible columns in the given order.

        Args:
            ctx: Discord context
            columns: Column identifiers; empty to show the picker
        """
        if not columns:
            await ctx.send(embed=self.embed_builder.build_columns_embed(list(self.manager.state.visible_columns)))
            return

        try:
            state = await self.manager.set_visible_columns(columns)
        except USER_ERRORS as e:
            await self._report_error(ctx, "updating columns", e)
            return
        await ctx.send(embed=self.embed_builder.build_columns_embed(list(state.visible_columns)))

    async def handle_filter(self, ctx: commands.Context, text: str = "") -> None:
        """Filter the table by ticker text; no text clears the filter"""
        state = self.manager.set_ticker_filter(text)
        self.display_message = await ctx.send(embed=self.embed_builder.build_portfolio_embed(state))

    # ------------------------------------------------------------------ #
    # Positions
    # ------------------------------------------------------------------ #

    async def handle_add_position(
        self,
        ctx: commands.Context,
        ticker: str,
        avg_price: str,
        num_shares: str,
        price_step: Optional[str] = None,
        levels: Optional[str] = None
    ) -> None:
        """
        Save a position (or update the existing one for the ticker) and show its ladder.

        Args:
            ctx: Discord context
            ticker: Ticker symbol
            avg_price: Average price per share
            num_shares: Share count
            price_step: Optional ladder spacing
            levels: Optional ladder range
        """
        try:
            position = await self.manager.save_position(ticker, avg_price, num_shares, price_step, levels)
            _, current_price, rows = await self.manager.ladder(position.ticker)
        except USER_ERRORS as e:
            await self._report_error(ctx, "saving position", e)
            return

        await ctx.send(f"✅ Position saved: {position.ticker} (id {position.id})")
        await ctx.send(embed=self.embed_builder.build_ladder_embed(position, rows, current_price))

    async def handle_delete_position(self, ctx: commands.Context, position_id: str) -> None:
        """Delete a saved position by id"""
        try:
            deleted = await self.manager.delete_position(parse_int(position_id, "Position id"))
        except USER_ERRORS as e:
            await self._report_error(ctx, "deleting position", e)
            return

        if deleted is None:
            await ctx.send(f"❌ No position with id {position_id}")
            return
        await ctx.send(f"✅ Deleted position {deleted.id} ({deleted.ticker})")

    async def handle_list_positions(self, ctx: commands.Context) -> None:
        positions = await self.manager.list_positions()
        await ctx.send(embed=self.embed_builder.build_positions_list_embed(positions))

    async def handle_ladder(self, ctx: commands.Context, ticker: str, *values: str) -> None:
        """
        Show the profit ladder of a saved position, or of the given values.

        Args:
            ctx: Discord context
            ticker: Ticker symbol
            values: Optional avg_price, num_shares, price_step, levels for an unsaved ladder
        """
        try:
            if values:
                if len(values) < 2:
                    raise ValidationError("Average price and number of shares are required.")
                position, current_price, rows = self.manager.calculate_ladder(ticker, *values[:4])
            else:
                position, current_price, rows = await self.manager.ladder(ticker)
        except USER_ERRORS as e:
            await self._report_error(ctx, "building ladder", e)
            return

        await ctx.send(embed=self.embed_builder.build_ladder_embed(position, rows, current_price))

    # ------------------------------------------------------------------ #
    # Ticker visibility
    # ------------------------------------------------------------------ #

    async def handle_tickers(self, ctx: commands.Context) -> None:
        tickers = await self.manager.list_tickers()
        await ctx.send(embed=self.embed_builder.build_tickers_embed(tickers))

    async def handle_set_hidden(self, ctx: commands.Context, ticker: str, hide: bool) -> None:
        """Hide or show every position of a ticker"""
        action = "hiding" if hide else "showing"
        try:
            count = await self.manager.set_ticker_hidden(ticker, hide)
        except USER_ERRORS as e:
            await self._report_error(ctx, f"{action} ticker", e)
            return

        if count == 0:
            await ctx.send(f"❌ No saved positions for {ticker.upper()}")
            return
        await ctx.send(f"✅ {'Hidden' if hide else 'Showing'} {ticker.upper()} ({count} positions)")

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    async def handle_refresh(self, ctx: commands.Context, interval: Optional[str] = None) -> None:
        """
        Refresh prices now, or set the auto-refresh interval.

        Args:
            ctx: Discord context
            interval: Seconds between refreshes (0 stops auto-refresh); omit to refresh once
        """
        if interval is None:
            await self.handle_show_portfolio(ctx)
            return

        try:
            state = await self.manager.set_refresh_interval(interval)
        except USER_ERRORS as e:
            await self._report_error(ctx, "setting refresh interval", e)
            return

        if state.refresh_interval:
            await ctx.send(f"✅ Auto-refresh set to every {state.refresh_interval} seconds")
        else:
            await ctx.send("✅ Auto-refresh stopped")

    async def handle_set_keys(self, ctx: commands.Context, provider: str, key: str, secret: Optional[str] = None) -> None:
        """
        Store API credentials for a price provider.

        The command message is deleted so the keys do not stay in the channel.

        Args:
            ctx: Discord context
            provider: "alpaca" or "finnhub"
            key: API key
            secret: API secret (Alpaca only)
        """
        try:
            await ctx.message.delete()
        except (discord.Forbidden, discord.HTTPException) as e:
            logger.warning(f"Could not delete credentials message: {e}")

        provider = provider.lower()
        try:
            if provider == "alpaca":
                if not secret:
                    raise ValidationError("Alpaca needs both a key and a secret.")
                saved = await self.manager.save_credentials(alpaca_key=key, alpaca_secret=secret)
            elif provider == "finnhub":
                saved = await self.manager.save_credentials(finnhub_key=key)
            else:
                raise ValidationError("Provider must be alpaca or finnhub.")
        except USER_ERRORS as e:
            await self._report_error(ctx, "saving API keys", e)
            return

        await ctx.send(f"✅ Saved {saved} API key setting(s)")

    async def handle_reset_settings(self, ctx: commands.Context) -> None:
        try:
            state = await self.manager.reset_settings()
        except USER_ERRORS as e:
            await self._report_error(ctx, "resetting settings", e)
            return
        await ctx.send("✅ Settings reset to default")
        self.display_message = await ctx.send(embed=self.embed_builder.build_portfolio_embed(state))

    # ------------------------------------------------------------------ #
    # Import / export
    # ------------------------------------------------------------------ #

    async def handle_export(self, ctx: commands.Context) -> None:
        """Send every saved position as a JSON attachment"""
        try:
            data = await self.manager.export_positions()
        except USER_ERRORS as e:
            await self._report_error(ctx, "exporting positions", e)
            return

        file = discord.File(io.BytesIO(data.encode("utf-8")), filename="positions.json")
        await ctx.send("📤 Exported positions", file=file)

    async def handle_import(self, ctx: commands.Context, url: Optional[str] = None) -> None:
        """
        Import positions from a JSON URL or an attached JSON file.

        Args:
            ctx: Discord context
            url: Location of the JSON file; the first attachment is used when omitted
        """
        if not url and ctx.message.attachments:
            url = ctx.message.attachments[0].url

        try:
            count = await self.manager.import_positions(url or "")
        except USER_ERRORS as e:
            await self._report_error(ctx, "importing positions", e)
            return

        await ctx.send(f"✅ Imported {count} positions")
