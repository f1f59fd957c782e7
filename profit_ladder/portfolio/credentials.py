"""
Credential resolution for the market data providers.
Decides which upstream price provider is usable from the stored API keys.
"""

import os
from dataclasses import dataclass
from typing import Optional, Union
from loguru import logger

from .store import LocalStore, StorageError

# Settings keys (the same names are honoured as environment variables)
ALPACA_KEY_SETTING = "APCA_API_KEY_ID"
ALPACA_SECRET_SETTING = "APCA_API_SECRET_KEY"
FINNHUB_KEY_SETTING = "finnhubApiKey"

FINNHUB_KEY_ENV = "FINNHUB_API_KEY"


@dataclass(frozen=True)
class AlpacaProvider:
    """Alpaca selected: key id and secret key both present"""
    key: str
    secret: str

    def __repr__(self) -> str:
        return "AlpacaProvider(key=***, secret=***)"


@dataclass(frozen=True)
class FinnhubProvider:
    """Finnhub selected: token present"""
    key: str

    def __repr__(self) -> str:
        return "FinnhubProvider(key=***)"


@dataclass(frozen=True)
class NoProvider:
    """No usable credentials"""


ProviderSelection = Union[AlpacaProvider, FinnhubProvider, NoProvider]


def _clean(value: Optional[str]) -> str:
    return str(value).strip() if value else ""


async def _read_credential(store: LocalStore, setting_key: str, env_key: str) -> str:
    """Stored value first, environment variable when nothing is stored"""
    value = _clean(await store.get_setting(setting_key))
    if not value:
        value = _clean(os.getenv(env_key))
    return value


async def resolve_provider(store: LocalStore) -> ProviderSelection:
    """
    Determine which price provider the current credentials allow.

    Alpaca is preferred when both its key and secret are non-empty, then Finnhub
    when its key is non-empty. Called on every refresh so edited credentials
    take effect on the next cycle.

    Args:
        store: Local store holding the Settings collection

    Returns:
        The selected provider
    """
    try:
        alpaca_key = await _read_credential(store, ALPACA_KEY_SETTING, ALPACA_KEY_SETTING)
        alpaca_secret = await _read_credential(store, ALPACA_SECRET_SETTING, ALPACA_SECRET_SETTING)
        if alpaca_key and alpaca_secret:
            return AlpacaProvider(key=alpaca_key, secret=alpaca_secret)

        logger.debug("Alpaca credentials not available, falling back to Finnhub")
        finnhub_key = await _read_credential(store, FINNHUB_KEY_SETTING, FINNHUB_KEY_ENV)
        if finnhub_key:
            return FinnhubProvider(key=finnhub_key)

    except StorageError as e:
        logger.error(f"Error reading API credentials: {e}")
        return NoProvider()

    logger.warning("No market data API credentials configured")
    return NoProvider()


async def save_credentials(
    store: LocalStore,
    alpaca_key: Optional[str] = None,
    alpaca_secret: Optional[str] = None,
    finnhub_key: Optional[str] = None
) -> int:
    """
    Store the provided API credentials. Empty values leave the stored ones unchanged.

    Args:
        store: Local store holding the Settings collection
        alpaca_key: Alpaca API key id
        alpaca_secret: Alpaca API secret key
        finnhub_key: Finnhub API token

    Returns:
        Number of settings written

    Raises:
        StorageError: If a write fails
    """
    written = 0
    for setting_key, value in (
        (ALPACA_KEY_SETTING, alpaca_key),
        (ALPACA_SECRET_SETTING, alpaca_secret),
        (FINNHUB_KEY_SETTING, finnhub_key),
    ):
        value = _clean(value)
        if value:
            await store.put_setting(setting_key, value)
            written += 1
            logger.info(f"Saved {setting_key}")
    return written
