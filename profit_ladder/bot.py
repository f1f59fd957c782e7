"""
Main Discord bot application.
Initializes and runs the bot with the portfolio module.
"""

import discord
from discord.ext import commands

from profit_ladder.config import DISCORD_TOKEN, COMMAND_PREFIX
from profit_ladder.logging_setup import configure_logging, get_logger
from profit_ladder.portfolio import setup as setup_portfolio_tracker

# Create module logger
logger = get_logger("bot")

# Setup bot with intents
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)


@bot.event
async def setup_hook():
    """Load the cogs before the bot connects"""
    try:
        await setup_portfolio_tracker(bot)
        logger.info("Portfolio tracker loaded!")
    except Exception as e:
        logger.error(f"Error loading portfolio tracker: {e}")


@bot.event
async def on_ready():
    """Called when bot is ready and connected to Discord"""
    logger.info(f"Bot is connected! Logged in as {bot.user}")
    logger.info(f"Bot is in {len(bot.guilds)} servers")
    for guild in bot.guilds:
        logger.debug(f"- {guild.name} (id: {guild.id})")


@bot.command(name="ping")
async def ping_command(ctx):
    """Simple ping command to test if bot is responsive"""
    logger.debug(f"Ping command received from {ctx.author}")
    await ctx.send("Pong! Bot is working!")


def main():
    configure_logging()

    if not DISCORD_TOKEN:
        logger.critical("ERROR: DISCORD_TOKEN environment variable not set!")
        raise SystemExit(1)

    logger.info("Starting bot...")
    try:
        bot.run(DISCORD_TOKEN, log_handler=None)
    except Exception as e:
        logger.critical(f"Failed to start bot: {e}")


if __name__ == "__main__":
    main()
