"""
Finance Tracker - Domain Core

Records expenses, invoices and budgets for a personal or small-business
finance tracker.

DESIGN PRINCIPLES:
1. Money is never mixed across currencies
2. State only changes through explicit lifecycle transitions
3. Derived totals are computed, never stored
4. Fail fast, never leave an entity half-updated
5. AI suggestions are best-effort, never blocking
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
