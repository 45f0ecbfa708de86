"""
InFinance - Source Package

A personal-finance ledger: income, expenses and savings goals, with every
balance derived from the transaction log.

DESIGN PRINCIPLES:
1. The transaction list is the only source of truth
2. Derived values are recomputed, never stored
3. An overspend is a result, not an exception
4. Bad data on load is defaulted and reported, never fatal
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "InFinance Team"
