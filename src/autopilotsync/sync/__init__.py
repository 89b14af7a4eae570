"""
autopilotsync Sync Module

Components:
- engine: ReconciliationEngine (create/cleanup passes)
- runner: one end-to-end sync run
"""

from autopilotsync.sync.engine import ReconciliationEngine
from autopilotsync.sync.runner import run_sync

__all__ = [
    "ReconciliationEngine",
    "run_sync",
]
