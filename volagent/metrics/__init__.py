"""The five context metric calculators."""

from . import exhaustion, fear, options_liquidity, overpricing, tradable_structure
from .base import round_half_up

__all__ = [
    "exhaustion",
    "fear",
    "options_liquidity",
    "overpricing",
    "round_half_up",
    "tradable_structure",
]
