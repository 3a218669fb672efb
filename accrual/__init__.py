"""
Time-locked interest accrual ledger.

Deposits of a stable value asset locked for 45 or 180 days, withdrawn
with fixed total interest, boosted for holders of the membership asset.
"""

__version__ = "1.0.0"
