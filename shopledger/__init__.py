"""
Shop Ledger - Source Package

A local bookkeeping ledger for a small business: sales, expenses,
credit (money owed to/by parties), inventory and contacts, with
real-time financial summaries.

DESIGN PRINCIPLES:
1. One user action = one explicit multi-entity transaction
2. Validate everything before anything is written
3. Derived values (credit status, balances) are always recomputed
4. The visible state never runs ahead of durable storage
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shop Ledger Team"
