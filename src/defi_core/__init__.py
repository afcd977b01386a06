"""
defi_core - Pricing and Settlement Engine

Reserve pools with constant product and stable swap curves, flash loans,
and a multi-reporter price oracle guarded by per-pair circuit breakers.

Main Components:
- Pools: Reserve accounting, swaps, LP shares and flash loans
- Oracle: Reporter roster, confidence-weighted aggregation, TWAP history
- Safety: Price deviation circuit breakers and admin pause
"""

__version__ = "0.1.0"
__author__ = "defi_core Development Team"

__all__ = []
