"""
Quality assurance sampling of approved claims.

For each academic year:

1. the first claim to be approved is always flagged for QA;
2. after that, approvals are flagged whenever the share of approved claims
   already flagged is at or below the threshold percentage.

Used as each approval is recorded. Asked retrospectively, once several
claims have been approved, it answers:

1. ``True`` if none of them were flagged;
2. ``True`` if they were flagged using a lower threshold;
3. ``False`` if they were flagged using a higher threshold.

While it answers ``False`` new approvals are not flagged, so the sampled
share catches up with the threshold instead of being reset.
"""

import logging

from ..core.academic_year import AcademicYear
from ..storage.repository import ClaimRepository

logger = logging.getLogger(__name__)


def below_threshold(approved_total: int, qa_flagged: int, threshold_percent: int) -> bool:
    """Pure sampling rule over approval counts."""
    if threshold_percent == 0:
        return False
    if approved_total == 0:
        return True
    return (qa_flagged / approved_total) * 100 <= threshold_percent


class QaSampler:
    """Decides whether a newly approved claim must be flagged for QA."""

    def __init__(self, repository: ClaimRepository, min_qa_threshold: int = 10) -> None:
        if not 0 <= min_qa_threshold <= 100:
            raise ValueError("min_qa_threshold must be between 0 and 100")
        self.repository = repository
        self.min_qa_threshold = min_qa_threshold

    def below_min_qa_threshold(self, academic_year: AcademicYear | None = None) -> bool:
        """
        Evaluate the sampling rule for an academic year.

        Call inside the transaction that records the approval so the counts
        come from the same snapshot.
        """
        academic_year = academic_year or AcademicYear.for_date(self.repository.clock().date())
        approved_total, qa_flagged = self.repository.count_approved(academic_year)
        result = below_threshold(approved_total, qa_flagged, self.min_qa_threshold)
        logger.debug(
            "QA sampling for %s: %d approved, %d flagged, threshold %d%% -> %s",
            academic_year,
            approved_total,
            qa_flagged,
            self.min_qa_threshold,
            result,
        )
        return result
