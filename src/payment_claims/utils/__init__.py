"""
Utility modules for the claims workflow.
"""

from .logging import get_logger, setup_logging
from .personal_data import PersonalDataScrubber, RemovalResult

__all__ = [
    "PersonalDataScrubber",
    "RemovalResult",
    "get_logger",
    "setup_logging",
]
