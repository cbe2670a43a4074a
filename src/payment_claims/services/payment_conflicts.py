"""
Checks for other claims that stop a claim being paid.

Claims by the same person (matched on National Insurance number) are paid
together through payroll, so the personal details payroll relies on must
agree across every payrollable claim for that person.
"""

import logging
from collections.abc import Mapping, Sequence

from ..core.claim import Claim
from ..core.models import Policy
from ..storage.repository import ClaimRepository

logger = logging.getLogger(__name__)

PERSONAL_CHECK_ATTRIBUTES: tuple[str, ...] = (
    "date_of_birth",
    "student_loan_plan",
    "bank_sort_code",
    "bank_account_number",
    "building_society_roll_number",
)


class PaymentConflictChecker:
    """Finds payrollable claims whose details disagree with a claim's."""

    def __init__(
        self,
        repository: ClaimRepository,
        check_attributes: Sequence[str] = PERSONAL_CHECK_ATTRIBUTES,
        policy_check_attributes: Mapping[Policy, Sequence[str]] | None = None,
    ) -> None:
        """
        Args:
            repository: Claim store to search
            check_attributes: Attributes that must match across claims
            policy_check_attributes: Per-policy overrides of check_attributes
        """
        self.repository = repository
        self.check_attributes = tuple(check_attributes)
        self.policy_check_attributes = dict(policy_check_attributes or {})

    def attributes_for(self, claim: Claim) -> tuple[str, ...]:
        return tuple(self.policy_check_attributes.get(claim.policy, self.check_attributes))

    def claims_preventing_payment(self, claim: Claim) -> list[Claim]:
        if not claim.national_insurance_number:
            return []

        nino = claim.national_insurance_number.upper()
        candidates = self.repository.where(
            lambda other: other.id != claim.id
            and (other.national_insurance_number or "").upper() == nino
            and other.payrollable()
        )
        attributes = self.attributes_for(claim)
        conflicting = [
            other
            for other in candidates
            if any(_differs(claim, other, attribute) for attribute in attributes)
        ]
        if conflicting:
            logger.info(
                "Claim %s has %d claim(s) preventing payment",
                claim.id,
                len(conflicting),
            )
        return conflicting

    def blocks_payment(self, claim: Claim) -> bool:
        return bool(self.claims_preventing_payment(claim))


def _differs(claim: Claim, other: Claim, attribute: str) -> bool:
    values = {
        _comparable(getattr(claim, attribute)),
        _comparable(getattr(other, attribute)),
    }
    return len(values) > 1


def _comparable(value: object) -> str:
    if value is None:
        return ""
    return str(value).lower()
