"""
FinanceFlow - Planned Transactions Engine

Recurrence, projection and execution logic for recurring ("planned")
income and expense rules in a personal-finance tracker.

DESIGN PRINCIPLES:
1. Money is posted before the schedule moves
2. One bad record never stops a sweep
3. No silent deduplication (at-least-once is reported, not hidden)
4. Every execution is auditable
5. Storage and ledger are swappable
"""

__version__ = "1.0.0"
__author__ = "FinanceFlow Team"
