"""
API clients for the market data providers.
"""
