"""Service layer exports."""

from .market_analysis import MarketAnalyzer
from .token_cipher import TokenCipherService
from .token_manager import TokenManager

__all__ = [
    "MarketAnalyzer",
    "TokenCipherService",
    "TokenManager",
]
