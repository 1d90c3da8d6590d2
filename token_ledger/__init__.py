"""
MNT Token Ledger

A fungible-token ledger with supply tracking per symbol, checked int64
asset arithmetic, and a staking relay that forwards propose/vote calls to an
external governance contract inside one atomic unit of work.
"""

__version__ = "1.0.0"
