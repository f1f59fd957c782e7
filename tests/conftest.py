import os
import pytest
from unittest.mock import AsyncMock, MagicMock
from loguru import logger

from profit_ladder.portfolio.store import LocalStore
from profit_ladder.portfolio.models import PriceInfo

# Configure logging for tests
logger.remove()
logger.add(lambda msg: print(msg, end=""), level="INFO")


class MockMessage:
    """Mock Discord Message for testing"""

    def __init__(self, content="Test message", id=12345):
        self.content = content
        self.id = id
        self.author = MagicMock()
        self.author.name = "TestUser"
        self.author.id = 987654321
        self.author.bot = False
        self.attachments = []
        self.embeds = []
        self.edit = AsyncMock()
        self.delete = AsyncMock()


class MockChannel:
    """Mock Discord channel recording what was sent"""

    def __init__(self, channel_id=12345):
        self.id = channel_id
        self.name = f"test-channel-{channel_id}"
        self.send = AsyncMock(side_effect=lambda *args, **kwargs: MockMessage())


class MockTyping:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class MockContext:
    """Mock Discord Context for testing"""

    def __init__(self, channel_id=12345):
        self.channel = MockChannel(channel_id)
        self.author = MagicMock()
        self.author.name = "TestUser"
        self.author.id = 987654321
        self.author.bot = False
        self.guild = MagicMock()
        self.guild.name = "TestGuild"
        self.message = MockMessage()
        self.send = self.channel.send

    def typing(self):
        return MockTyping()

    def sent_texts(self):
        """Plain text of every message sent through this context"""
        return [call.args[0] for call in self.send.call_args_list if call.args]

    def sent_embeds(self):
        """Embeds of every message sent through this context"""
        return [call.kwargs["embed"] for call in self.send.call_args_list if "embed" in call.kwargs]


class FakePriceService:
    """Price service returning canned prices and recording requests"""

    def __init__(self, prices=None):
        self.prices = dict(prices or {})
        self.calls = []

    async def fetch_prices(self, tickers, provider):
        tickers = sorted(set(tickers))
        self.calls.append((tickers, provider))
        return {t: self.prices[t] for t in tickers if t in self.prices}


@pytest.fixture
def mock_context():
    """Fixture for a mock Discord context"""
    return MockContext()


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "profit_ladder_db.json")


@pytest.fixture
async def store(store_path):
    """Opened local store in a temporary directory"""
    local_store = LocalStore(store_path)
    await local_store.open()
    return local_store


@pytest.fixture
def price_service():
    return FakePriceService({
        "AAPL": PriceInfo(price=110.0, open=104.0, prev_close=100.0),
        "MSFT": PriceInfo(price=50.0, open=50.0, prev_close=50.0),
    })


@pytest.fixture(autouse=True)
def clean_credential_env(monkeypatch):
    """Keep real API keys in the environment out of the tests"""
    for name in ("APCA_API_KEY_ID", "APCA_API_SECRET_KEY", "FINNHUB_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    os.environ.setdefault("DISCORD_TOKEN", "test_discord_token")
