"""
Reporting modules for the claims workflow.
"""

from .queue import QueueSummary, QueueSummaryBuilder, QueueSummaryFormatter

__all__ = [
    "QueueSummary",
    "QueueSummaryBuilder",
    "QueueSummaryFormatter",
]
