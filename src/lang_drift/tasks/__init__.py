"""Refresh orchestration package."""

from .refresh import RefreshOutcome, RefreshTask, run_interval

__all__ = ["RefreshOutcome", "RefreshTask", "run_interval"]
