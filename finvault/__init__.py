"""
finvault - Source Package

Field-level encryption for a personal-finance row store.
Transactions, accounts, cards, budgets, goals and investments are
persisted with their sensitive fields encrypted at rest.

DESIGN PRINCIPLES:
1. Sensitive fields are never written in plaintext
2. Non-sensitive fields stay queryable in the store
3. Legacy plaintext rows keep working (migration-safe reads)
4. The key is explicit - no hidden global state
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "finvault Team"
