"""
Service Credit Ledger

Tracks perishable per-employee service credits earned from extra work and
consumed to offset absences:
- Lot-based credit storage with approval workflow
- FIFO (oldest-earned-first) offset allocation
- Reversible offsets with full provenance
- Cached employee balance kept in lock-step with lots
- Pessimistic per-employee locking for concurrent access
"""

__version__ = "0.1.0"
