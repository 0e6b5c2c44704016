"""
Plan session module.

The PlanSession orchestrator and the collaborators it drives: cancellation
bridge, reset cleanup and backfill progress observer.
"""
from .orchestrator import PlanSession

__all__ = ["PlanSession"]
