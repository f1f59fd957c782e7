"""
Data models for portfolio tracking.
Defines stored positions, fetched price data and the values derived from them.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime


# Keys computed on every valuation pass; never written back to the store
DERIVED_FIELDS = frozenset({
    "costBasis",
    "totalValue",
    "profit",
    "profitPct",
    "changeToday",
    "changePctToday",
    "gapPct",
    "timeSinceLastTrade",
    "lastTime",
})

_RECORD_FIELDS = ("id", "tickerSymbol", "avgPrice", "numShares", "priceStep", "levels", "hide", "lastPrice")

DEFAULT_LEVELS = 5
DEFAULT_STEP_RATIO = 0.01


@dataclass
class Position:
    """Data model for a tracked holding as stored in the Positions collection"""
    ticker: str
    avg_price: float
    num_shares: int
    price_step: Optional[float] = None
    levels: int = DEFAULT_LEVELS
    hide: bool = False
    id: Optional[int] = None
    last_price: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Fill ladder defaults when not provided"""
        self.ticker = self.ticker.strip().upper()
        if not self.price_step:
            self.price_step = self.avg_price * DEFAULT_STEP_RATIO
        if not self.levels:
            self.levels = DEFAULT_LEVELS

    def to_record(self) -> Dict[str, Any]:
        """Convert to a store record (camelCase keys, derived values excluded)"""
        record = dict(self.extra)
        record.update({
            "tickerSymbol": self.ticker,
            "avgPrice": self.avg_price,
            "numShares": self.num_shares,
            "priceStep": self.price_step,
            "levels": self.levels,
            "hide": self.hide,
        })
        if self.id is not None:
            record["id"] = self.id
        if self.last_price is not None:
            record["lastPrice"] = self.last_price
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Position":
        """Create from a store record, dropping any derived values it carries"""
        extra = {
            key: value for key, value in record.items()
            if key not in _RECORD_FIELDS and key not in DERIVED_FIELDS
        }
        return cls(
            ticker=str(record.get("tickerSymbol", "")),
            avg_price=float(record.get("avgPrice") or 0),
            num_shares=int(record.get("numShares") or 0),
            price_step=float(record["priceStep"]) if record.get("priceStep") else None,
            levels=int(record.get("levels") or DEFAULT_LEVELS),
            hide=bool(record.get("hide", False)),
            id=record.get("id"),
            last_price=float(record["lastPrice"]) if record.get("lastPrice") is not None else None,
            extra=extra,
        )


@dataclass
class PriceInfo:
    """Normalized price data for one symbol, whichever provider supplied it"""
    price: float = 0.0
    time: Optional[datetime] = None
    open: float = 0.0
    prev_close: float = 0.0


@dataclass
class ValuedPosition:
    """A position enriched with the values derived from current price data"""
    position: Position
    last_price: float = 0.0
    cost_basis: float = 0.0
    total_value: float = 0.0
    profit: float = 0.0
    profit_pct: float = 0.0
    change_today: float = 0.0
    change_pct_today: float = 0.0
    gap_pct: float = 0.0
    time_since_last_trade: str = "N/A"

    @property
    def ticker(self) -> str:
        return self.position.ticker

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for display, keyed by column identifier"""
        return {
            "id": self.position.id,
            "tickerSymbol": self.position.ticker,
            "avgPrice": self.position.avg_price,
            "numShares": self.position.num_shares,
            "lastPrice": self.last_price,
            "costBasis": self.cost_basis,
            "totalValue": self.total_value,
            "profit": self.profit,
            "profitPct": self.profit_pct,
            "changeToday": self.change_today,
            "changePctToday": self.change_pct_today,
            "gapPct": self.gap_pct,
            "lastTime": self.time_since_last_trade,
        }


@dataclass
class PortfolioTotals:
    """Aggregate values across a set of valued positions"""
    cost_basis: float = 0.0
    total_value: float = 0.0
    profit: float = 0.0
    profit_pct: float = 0.0
    change_today: float = 0.0
    change_pct_today: float = 0.0
    gap_pct: float = 0.0
    position_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Totals keyed by column identifier"""
        return {
            "costBasis": self.cost_basis,
            "totalValue": self.total_value,
            "profit": self.profit,
            "profitPct": self.profit_pct,
            "changeToday": self.change_today,
            "changePctToday": self.change_pct_today,
            "gapPct": self.gap_pct,
        }


@dataclass
class LadderRow:
    """One hypothetical price level of a profit ladder"""
    price_level: float
    profit_loss: float
    percent_change: float
    highlighted: bool = False
