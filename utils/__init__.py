"""
Utility modules for the deal flow engine.
"""

from .formatting import format_currency
from .config import Config

__all__ = ["format_currency", "Config"]
