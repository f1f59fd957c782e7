"""
Profit ladder: a Discord bot that tracks stock positions and their profit ladders.
"""

__version__ = "0.1.0"
