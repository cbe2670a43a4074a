"""
Tests for the payment conflict checker.
"""

from datetime import date

from payment_claims.core.models import DecisionResult, Policy
from payment_claims.services.payment_conflicts import PaymentConflictChecker


def store_payrollable(repository, make_claim, reference: str, policy=Policy.EARLY_CAREER_PAYMENTS, **overrides):
    claim = make_claim(policy, **overrides)
    claim.submit(reference=reference)
    claim.decisions.record(DecisionResult.APPROVED)
    repository.save(claim)
    return claim


class TestClaimsPreventingPayment:
    """Tests for claims_preventing_payment."""

    def test_matching_details_do_not_conflict(self, repository, make_claim) -> None:
        store_payrollable(repository, make_claim, "AAAAAAAA")
        claim = store_payrollable(repository, make_claim, "BBBBBBBB", Policy.STUDENT_LOANS)

        checker = PaymentConflictChecker(repository)
        assert checker.claims_preventing_payment(claim) == []
        assert not checker.blocks_payment(claim)

    def test_different_bank_details_conflict(self, repository, make_claim) -> None:
        other = store_payrollable(repository, make_claim, "AAAAAAAA", bank_account_number="87654321")
        claim = store_payrollable(repository, make_claim, "BBBBBBBB", Policy.STUDENT_LOANS)

        checker = PaymentConflictChecker(repository)
        assert [c.id for c in checker.claims_preventing_payment(claim)] == [other.id]
        assert checker.blocks_payment(claim)

    def test_comparison_ignores_case(self, repository, make_claim) -> None:
        store_payrollable(
            repository,
            make_claim,
            "AAAAAAAA",
            bank_or_building_society="building_society",
            building_society_roll_number="roll-abc",
        )
        claim = store_payrollable(
            repository,
            make_claim,
            "BBBBBBBB",
            Policy.STUDENT_LOANS,
            bank_or_building_society="building_society",
            building_society_roll_number="ROLL-ABC",
        )

        assert not PaymentConflictChecker(repository).blocks_payment(claim)

    def test_other_people_ignored(self, repository, make_claim) -> None:
        store_payrollable(
            repository,
            make_claim,
            "AAAAAAAA",
            national_insurance_number="QQ654321C",
            date_of_birth=date(1985, 5, 5),
        )
        claim = store_payrollable(repository, make_claim, "BBBBBBBB")

        assert not PaymentConflictChecker(repository).blocks_payment(claim)

    def test_only_payrollable_claims_count(self, repository, make_claim) -> None:
        other = make_claim(bank_account_number="87654321")
        other.submit(reference="AAAAAAAA")
        repository.save(other)
        claim = store_payrollable(repository, make_claim, "BBBBBBBB", Policy.STUDENT_LOANS)

        assert not PaymentConflictChecker(repository).blocks_payment(claim)

    def test_claim_without_nino(self, repository, make_claim) -> None:
        store_payrollable(repository, make_claim, "AAAAAAAA")
        claim = make_claim(national_insurance_number=None)

        assert PaymentConflictChecker(repository).claims_preventing_payment(claim) == []

    def test_policy_specific_attributes(self, repository, make_claim) -> None:
        store_payrollable(repository, make_claim, "AAAAAAAA", student_loan_plan="plan_1")
        claim = store_payrollable(repository, make_claim, "BBBBBBBB", Policy.STUDENT_LOANS)

        assert PaymentConflictChecker(repository).blocks_payment(claim)

        checker = PaymentConflictChecker(
            repository,
            policy_check_attributes={Policy.STUDENT_LOANS: ("date_of_birth", "bank_account_number")},
        )
        assert checker.attributes_for(claim) == ("date_of_birth", "bank_account_number")
        assert not checker.blocks_payment(claim)


class TestApprovalGate:
    """Tests for the checker gating approval in the workflow."""

    def test_conflicting_claim_not_approved(self, workflow, approved_claim, submitted_claim) -> None:
        approved_claim(bank_account_number="87654321")
        claim = submitted_claim(Policy.STUDENT_LOANS)

        assert workflow.payment_prevented(workflow.repository.get(claim.id))
        result = workflow.decide(claim.id, DecisionResult.APPROVED, "reviewer")
        assert not result.changed

    def test_conflicting_claim_can_be_rejected(self, workflow, approved_claim, submitted_claim) -> None:
        approved_claim(bank_account_number="87654321")
        claim = submitted_claim(Policy.STUDENT_LOANS)

        assert workflow.decide(claim.id, DecisionResult.REJECTED, "reviewer").changed
