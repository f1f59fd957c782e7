import os

from dotenv import load_dotenv

# Load variables from .env file into environment variables
load_dotenv()

# Discord bot token and command prefix
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", "!")

# Local store file holding the Positions and Settings collections
PORTFOLIO_DB_PATH = os.getenv("PORTFOLIO_DB_PATH", "profit_ladder_db.json")

# Channel that receives auto-refresh updates (0 = reply only where the command was issued)
PORTFOLIO_CHANNEL_ID = int(os.getenv("PORTFOLIO_CHANNEL_ID", "0"))

# Refresh interval in seconds used until the user picks one (0 = disabled)
DEFAULT_REFRESH_INTERVAL = int(os.getenv("DEFAULT_REFRESH_INTERVAL", "0"))

# Market data providers
ALPACA_DATA_URL = "https://data.alpaca.markets"
FINNHUB_API_URL = "https://finnhub.io/api/v1"

# Maximum rows shown in one portfolio embed
MAX_EMBED_POSITIONS = 20
