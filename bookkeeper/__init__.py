"""
Bazar Bookkeeper - Source Package

Bookkeeping for small businesses in Kyrgyzstan: accounts with
verification codes, an income/expense ledger with dashboards and
exports, and an assistant that answers questions about the owner's
own numbers.

DESIGN PRINCIPLES:
1. Figures come from the ledger, never from the model
2. Fail early, fail visibly
3. Credentials are one-way hashed; codes travel out of band only
4. Every significant step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Bazar Bookkeeper Team"
