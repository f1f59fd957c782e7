"""
Shared helpers for validation and embed formatting.
"""
