"""CLI helpers exposed for other modules."""

from .ui import StepTracker, print_result, select_with_arrows

__all__ = ["StepTracker", "print_result", "select_with_arrows"]
