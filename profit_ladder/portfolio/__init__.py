"""
Profit ladder portfolio package.
Provides position storage, price refresh, valuation and the Discord commands on top of them.
"""

from .cog import PortfolioTracker, setup

__all__ = ["PortfolioTracker", "setup"]
