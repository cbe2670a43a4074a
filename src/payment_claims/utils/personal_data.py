"""
Personal data removal for completed claims.

Once a claim has been rejected, or paid, and the retention period has
passed, the claimant's personal details are deleted and personal
identifiers are redacted from the claim's notes. Removal is terminal.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timezone

from ..core.academic_year import AcademicYear
from ..core.claim import Claim
from ..storage.repository import ClaimRepository

logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    """Outcome of one scrub run."""

    claim_ids: list[str]
    cutoff: datetime

    @property
    def count(self) -> int:
        return len(self.claim_ids)


class PersonalDataScrubber:
    """
    Deletes personal data from claims that no longer need it.

    Removes:
    - Names, date of birth and payroll gender
    - Address
    - National Insurance number
    - Bank and building society details
    - Mobile number and identity provider details
    """

    REDACTED = "[REDACTED]"

    PERSONAL_DATA_ATTRIBUTES: tuple[str, ...] = (
        "first_name",
        "middle_name",
        "surname",
        "date_of_birth",
        "address_line_1",
        "address_line_2",
        "address_line_3",
        "address_line_4",
        "postcode",
        "payroll_gender",
        "national_insurance_number",
        "bank_sort_code",
        "bank_account_number",
        "building_society_roll_number",
        "banking_name",
        "mobile_number",
    )

    # Identifiers that turn up in free-text notes
    PATTERNS: dict[str, re.Pattern[str]] = {
        "national_insurance_number": re.compile(
            r"\b[A-Z]{2}\s?\d{2}\s?\d{2}\s?\d{2}\s?[A-D]\b", re.IGNORECASE
        ),
        "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "mobile": re.compile(r"(?:\+44\s?|\b0)7\d{3}\s?\d{3}\s?\d{3}\b"),
        "sort_code": re.compile(r"\b\d{2}-\d{2}-\d{2}\b"),
        "bank_account": re.compile(r"\b\d{8}\b"),
    }

    def __init__(
        self,
        repository: ClaimRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.clock = clock or repository.clock

    def redact_string(self, value: str) -> str:
        """Replace personal identifiers in free text."""
        if not value:
            return value
        for pattern in self.PATTERNS.values():
            value = pattern.sub(self.REDACTED, value)
        return value

    def default_cutoff(self) -> datetime:
        """Start of the current academic year."""
        year = AcademicYear.for_date(self.clock().date())
        return datetime.combine(year.start_date(), time.min, tzinfo=timezone.utc)

    def scrubbable(self, claim: Claim, cutoff: datetime) -> bool:
        if claim.personal_data_removed():
            return False
        if claim.payrolled():
            return min(payment.created_at for payment in claim.payments) < cutoff
        decision = claim.latest_decision
        return (
            decision is not None
            and decision.rejected
            and decision.created_at < cutoff
        )

    def scrub_claim(self, claim: Claim) -> None:
        """Remove personal data from a claim in place."""
        for attribute in self.PERSONAL_DATA_ATTRIBUTES:
            setattr(claim, attribute, None)
        claim.teacher_id_user_info = {}
        claim.govuk_verify_fields = []
        for note in claim.notes:
            note.body = self.redact_string(note.body)
        claim.personal_data_removed_at = self.clock()

    def scrub_completed_claims(self, cutoff: datetime | None = None) -> RemovalResult:
        """Remove personal data from every eligible claim in one transaction."""
        cutoff = cutoff or self.default_cutoff()
        scrubbed: list[str] = []
        with self.repository.transaction():
            for claim in self.repository.where(lambda c: self.scrubbable(c, cutoff)):
                self.scrub_claim(claim)
                self.repository.save(claim)
                scrubbed.append(claim.id)
        logger.info("Removed personal data from %d claim(s)", len(scrubbed))
        return RemovalResult(claim_ids=scrubbed, cutoff=cutoff)
