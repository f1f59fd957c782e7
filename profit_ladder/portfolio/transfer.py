"""
Import and export of stored positions as JSON.
"""

import json
from typing import List, Dict, Any
from loguru import logger

from profit_ladder.api.request_utilities import async_request
from profit_ladder.utils.validation_utilities import (
    ValidationError,
    parse_float,
    parse_int,
    parse_position_input,
)
from .store import LocalStore, POSITIONS
from .models import DERIVED_FIELDS


class FormatError(Exception):
    """Exception raised when an import payload has the wrong shape."""
    pass


async def export_positions(store: LocalStore) -> str:
    """
    Serialize every stored position as a pretty-printed JSON array.

    Args:
        store: Local store

    Returns:
        JSON text

    Raises:
        StorageError: If the positions cannot be read
    """
    positions = await store.get_all(POSITIONS)
    logger.info(f"Exported {len(positions)} positions")
    return json.dumps(positions, indent=2)


def validate_import_payload(payload: Any) -> List[Dict[str, Any]]:
    """
    Check that an import payload is a JSON array of valid position objects.

    Every entry goes through the same checks as a position typed in by hand,
    so the stored numbers are always numbers.

    Args:
        payload: Decoded JSON value

    Returns:
        Records ready to store, derived values removed and inputs converted

    Raises:
        FormatError: If the payload is not an array or an entry is not a valid position
    """
    if not isinstance(payload, list):
        raise FormatError("Invalid JSON format. Expected an array of positions.")

    records = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            raise FormatError(f"Entry {i} is not a position object.")

        try:
            ticker, avg_price, num_shares, price_step, levels = parse_position_input(
                str(item.get("tickerSymbol") or ""),
                item.get("avgPrice"),
                item.get("numShares"),
                item.get("priceStep"),
                item.get("levels"),
            )
            record_id = None if item.get("id") is None else parse_int(item["id"], "Position id")
            last_price = None if item.get("lastPrice") is None else parse_float(item["lastPrice"], "Last price")
        except ValidationError as e:
            raise FormatError(f"Entry {i}: {e}")

        record = {k: v for k, v in item.items() if k not in DERIVED_FIELDS}
        record.update(tickerSymbol=ticker, avgPrice=avg_price, numShares=num_shares)
        if record_id is not None:
            record["id"] = record_id
        if last_price is not None:
            record["lastPrice"] = last_price
        if price_step is not None:
            record["priceStep"] = price_step
        if levels is not None:
            record["levels"] = levels
        records.append(record)
    return records


async def import_positions_from_payload(store: LocalStore, payload: Any) -> int:
    """
    Upsert every position of a validated payload by its existing key.

    Nothing is written when the payload is malformed.

    Returns:
        Number of positions stored

    Raises:
        FormatError: If the payload is malformed
        StorageError: If a write fails
    """
    records = validate_import_payload(payload)
    for record in records:
        await store.put(POSITIONS, record)
    logger.info(f"Imported {len(records)} positions")
    return len(records)


async def import_positions_from_url(store: LocalStore, url: str) -> int:
    """
    Fetch a JSON array of positions from a URL and store it.

    Args:
        store: Local store
        url: Location of the JSON file

    Returns:
        Number of positions stored

    Raises:
        NetworkError: If the file cannot be fetched or decoded
        FormatError: If the payload is malformed
        StorageError: If a write fails
    """
    logger.debug(f"Importing positions from {url}")
    payload = await async_request("GET", url)
    return await import_positions_from_payload(store, payload)
