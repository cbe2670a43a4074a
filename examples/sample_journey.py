#!/usr/bin/env python3
"""
Sample Journey Script.
Walks a combined early-career and levelling-up claim from first answers
through submission, review, QA and payroll.
"""

from datetime import date
from decimal import Decimal

from payment_claims import (
    Claim,
    ClaimWorkflow,
    CurrentClaim,
    DecisionResult,
    Policy,
    Settings,
    ValidationContext,
    build_eligibility,
)
from payment_claims.reporting import QueueSummaryBuilder, QueueSummaryFormatter
from payment_claims.storage import ClaimRepository
from payment_claims.utils import setup_logging


def start_journey(repository: ClaimRepository) -> CurrentClaim:
    """Create one empty claim per policy the claimant might be eligible for."""
    claims = [
        Claim(eligibility=build_eligibility(Policy.EARLY_CAREER_PAYMENTS)),
        Claim(
            eligibility=build_eligibility(
                Policy.LEVELLING_UP_PREMIUM_PAYMENTS,
                current_school_award_amount=Decimal("3000"),
            )
        ),
    ]
    return CurrentClaim(claims, repository, preferred_policy=Policy.EARLY_CAREER_PAYMENTS)


def answer_questions(journey: CurrentClaim) -> None:
    """Answer each journey page, stopping on the first page with errors."""
    pages = [
        (
            None,
            {
                "eligibility_attributes": {
                    "nqt_in_academic_year_after_itt": True,
                    "current_school_eligible": True,
                    "eligible_itt_subject": "mathematics",
                    "teaching_subject_now": True,
                }
            },
        ),
        (
            ValidationContext.PERSONAL_DETAILS,
            {
                "first_name": "Jo",
                "surname": "Bloggs",
                "date_of_birth": date(1990, 1, 1),
                "national_insurance_number": "qq 12 34 56 c",
            },
        ),
        (
            ValidationContext.ADDRESS,
            {
                "address_line_1": "1",
                "address_line_2": "Test Road",
                "address_line_3": "London",
                "address_line_4": "Greater London",
                "postcode": "SW1A 1AA",
            },
        ),
        (ValidationContext.GENDER, {"payroll_gender": "female"}),
        (ValidationContext.TEACHER_REFERENCE_NUMBER, {"teacher_reference_number": "1234567"}),
        (ValidationContext.STUDENT_LOAN, {"has_student_loan": False, "student_loan_plan": "not_applicable"}),
        (ValidationContext.EMAIL_ADDRESS, {"email_address": "jo.bloggs@example.com"}),
        # One-time password confirmed
        (None, {"email_verified": True}),
        (ValidationContext.PROVIDE_MOBILE_NUMBER, {"provide_mobile_number": False}),
        (ValidationContext.BANK_OR_BUILDING_SOCIETY, {"bank_or_building_society": "personal_bank_account"}),
        (
            ValidationContext.PERSONAL_BANK_ACCOUNT,
            {"banking_name": "Jo Bloggs", "bank_sort_code": "12-34-56", "bank_account_number": "12345678"},
        ),
    ]
    for context, answers in pages:
        journey.assign_attributes(**answers)
        journey.reset_dependent_answers()
        errors = journey.save(context)
        if errors:
            for error in errors:
                print(f"  ! {error}")
            raise SystemExit(1)


def main() -> None:
    """Run sample journey demonstration."""
    settings = Settings(min_qa_threshold=10, log_level="INFO")
    setup_logging(settings)

    print("=" * 70)
    print("TEACHER PAYMENT CLAIMS - SAMPLE JOURNEY")
    print("=" * 70)
    print()

    repository = ClaimRepository()
    workflow = ClaimWorkflow(repository, settings=settings)

    journey = start_journey(repository)
    answer_questions(journey)
    print(f"Journey claims: {', '.join(claim.policy.value for claim in journey.claims)}")
    print(f"Main claim: {journey.policy.value}")

    # Submit the claim the claimant chose
    claim = workflow.submit(journey.for_policy(Policy.LEVELLING_UP_PREMIUM_PAYMENTS))
    print(f"Submitted {claim.policy.value} claim {claim.reference} for £{claim.award_amount:,.2f}")
    print(f"Journey submitted: {journey.submitted_claim.policy.value} (main claim still {journey.policy.value})")
    print()

    # Review: first approval of the year is always sampled for QA
    first = workflow.decide(claim.id, DecisionResult.APPROVED, created_by="reviewer")
    print(f"Status after approval: {repository.get(claim.id).status.value}")
    workflow.decide(
        claim.id,
        DecisionResult.APPROVED,
        created_by="qa-reviewer",
        expected_decision_id=first.decision_id,
    )
    print(f"Status after QA: {repository.get(claim.id).status.value}")

    # Payroll and a topup
    for payrollable in repository.payrollable():
        workflow.record_payment(payrollable.id, payroll_run_id="2024-01")
    workflow.add_topup(claim.id, Decimal("500"), created_by="reviewer")
    topup = repository.get(claim.id).topups[0]
    workflow.record_topup_payment(claim.id, topup.id, payroll_run_id="2024-02")
    paid = repository.get(claim.id)
    print(f"Paid in total: £{paid.award_amount_with_topups():,.2f}")

    print()
    summary = QueueSummaryBuilder(repository, settings).build()
    print(QueueSummaryFormatter(summary).to_text())


if __name__ == "__main__":
    main()
