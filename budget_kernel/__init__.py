"""
Budget Kernel

The stock-accounting core of the materials budget tracker:
- Entity store over SQLAlchemy with change subscriptions
- Inventory ledger with conditional, race-free stock reservations
- Priced-at-attach-time line snapshots
- Pure totals projection
"""

__version__ = "0.1.0"
