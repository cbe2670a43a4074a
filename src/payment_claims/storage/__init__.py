"""
Claim storage.
"""

from .repository import ClaimRepository

__all__ = ["ClaimRepository"]
