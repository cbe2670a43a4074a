"""
Services consulted by the claims workflow.
"""

from .payment_conflicts import PaymentConflictChecker
from .qa_sampler import QaSampler, below_threshold

__all__ = [
    "PaymentConflictChecker",
    "QaSampler",
    "below_threshold",
]
