"""
Expense Tracker - Source Package

A personal expense tracker: record expenses, browse and filter them,
and view aggregate summaries of where the money went.

DESIGN PRINCIPLES:
1. Summary and filter engines are pure functions over a snapshot
2. Storage layer is swappable and owns the authoritative collection
3. Bad persisted data degrades to an empty list, never a crash
4. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
