"""
Cashbook - Source Package

A single-user cash ledger for income (kirim) and expense (chiqim) orders,
with sequential order numbers, a running-balance cash book and durable,
swappable storage.

DESIGN PRINCIPLES:
1. One authoritative collection, persisted as a whole after every change
2. Fail early, fail visibly
3. No silent corrections, no silent data loss
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cashbook Team"
