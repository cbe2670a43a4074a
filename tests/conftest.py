"""
Shared fixtures for the claims workflow tests.
"""

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from payment_claims import (
    Claim,
    ClaimRepository,
    ClaimWorkflow,
    DecisionResult,
    Policy,
    Settings,
    build_eligibility,
)

ACADEMIC_YEAR = "2023/2024"

ELIGIBLE_ANSWERS: dict[Policy, dict[str, Any]] = {
    Policy.EARLY_CAREER_PAYMENTS: {
        "nqt_in_academic_year_after_itt": True,
        "current_school_eligible": True,
        "eligible_itt_subject": "mathematics",
        "teaching_subject_now": True,
    },
    Policy.LEVELLING_UP_PREMIUM_PAYMENTS: {
        "nqt_in_academic_year_after_itt": True,
        "current_school_eligible": True,
        "eligible_itt_subject": "physics",
        "teaching_subject_now": True,
        "current_school_award_amount": Decimal("2000"),
    },
    Policy.STUDENT_LOANS: {
        "qts_award_year_eligible": True,
        "claim_school_eligible": True,
        "employment_status": "claim_school",
        "taught_eligible_subjects": True,
        "student_loan_repayment_amount": Decimal("1000"),
    },
}

SUBMITTABLE_ATTRIBUTES: dict[str, Any] = {
    "first_name": "Jo",
    "surname": "Bloggs",
    "address_line_1": "1 Test Road",
    "address_line_3": "London",
    "postcode": "SW1A 1AA",
    "date_of_birth": date(1990, 1, 1),
    "payroll_gender": "female",
    "teacher_reference_number": "1234567",
    "national_insurance_number": "QQ123456C",
    "email_address": "jo.bloggs@example.com",
    "email_verified": True,
    "has_student_loan": False,
    "student_loan_plan": "not_applicable",
    "bank_or_building_society": "personal_bank_account",
    "banking_name": "Jo Bloggs",
    "bank_sort_code": "123456",
    "bank_account_number": "12345678",
}


class Clock:
    """Controllable clock for the store and workflow."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def build_claim(policy: Policy = Policy.EARLY_CAREER_PAYMENTS, **overrides: Any) -> Claim:
    """Build a claim that is ready to submit unless overridden."""
    eligibility_answers = dict(ELIGIBLE_ANSWERS[policy])
    eligibility_answers.update(overrides.pop("eligibility_attributes", {}))
    attributes = dict(SUBMITTABLE_ATTRIBUTES)
    if policy != Policy.STUDENT_LOANS:
        attributes["provide_mobile_number"] = False
    attributes["academic_year"] = ACADEMIC_YEAR
    attributes.update(overrides)
    return Claim(
        eligibility=build_eligibility(policy, **eligibility_answers),
        **attributes,
    )


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    """Settings with QA sampling disabled so approvals go straight to payroll."""
    return Settings(_env_file=None, min_qa_threshold=0)


@pytest.fixture
def repository(clock: Clock) -> ClaimRepository:
    return ClaimRepository(clock=clock)


@pytest.fixture
def workflow(repository: ClaimRepository, settings: Settings) -> ClaimWorkflow:
    return ClaimWorkflow(repository, settings=settings)


@pytest.fixture
def make_claim() -> Callable[..., Claim]:
    return build_claim


@pytest.fixture
def submitted_claim(workflow: ClaimWorkflow) -> Callable[..., Claim]:
    """Factory that builds and submits a claim through the workflow."""

    def factory(policy: Policy = Policy.EARLY_CAREER_PAYMENTS, **overrides: Any) -> Claim:
        return workflow.submit(build_claim(policy, **overrides))

    return factory


@pytest.fixture
def approved_claim(
    workflow: ClaimWorkflow, submitted_claim: Callable[..., Claim]
) -> Callable[..., Claim]:
    """Factory that submits and approves a claim, returning the stored copy."""

    def factory(policy: Policy = Policy.EARLY_CAREER_PAYMENTS, **overrides: Any) -> Claim:
        claim = submitted_claim(policy, **overrides)
        result = workflow.decide(claim.id, DecisionResult.APPROVED, created_by="reviewer")
        assert result.changed
        return workflow.repository.get(claim.id)

    return factory
