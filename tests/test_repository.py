"""
Tests for the in-memory claim store.
"""

from datetime import timedelta

import pytest

from payment_claims.core.academic_year import AcademicYear
from payment_claims.core.models import DecisionResult, Policy
from payment_claims.exceptions import ClaimNotFound, DuplicateReference


class TestReadsAndWrites:
    """Tests for get and save."""

    def test_get_returns_detached_copy(self, repository, make_claim) -> None:
        claim = make_claim()
        repository.save(claim)

        loaded = repository.get(claim.id)
        loaded.first_name = "Changed"

        assert repository.get(claim.id).first_name == "Jo"

    def test_saved_claim_is_detached(self, repository, make_claim) -> None:
        claim = make_claim()
        repository.save(claim)
        claim.surname = "Changed"

        assert repository.get(claim.id).surname == "Bloggs"

    def test_missing_claim(self, repository) -> None:
        with pytest.raises(ClaimNotFound):
            repository.get("missing")
        assert not repository.exists("missing")

    def test_save_normalises(self, repository, make_claim) -> None:
        claim = make_claim()
        claim.assign_attributes(national_insurance_number="qq 12 34 56 c")
        repository.save(claim)

        assert repository.get(claim.id).national_insurance_number == "QQ123456C"

    def test_duplicate_reference_rejected(self, repository, make_claim) -> None:
        first = make_claim(reference="ABCDEFGH")
        repository.save(first)

        with pytest.raises(DuplicateReference):
            repository.save(make_claim(reference="ABCDEFGH"))
        assert repository.count() == 1

        # Re-saving the holder is fine.
        repository.save(first)
        assert repository.reference_exists("ABCDEFGH")


class TestTransactions:
    """Tests for transactional scopes."""

    def test_rollback_on_error(self, repository, make_claim) -> None:
        kept = make_claim()
        repository.save(kept)

        with pytest.raises(RuntimeError):
            with repository.transaction():
                repository.save(make_claim(reference="ABCDEFGH"))
                changed = repository.get(kept.id)
                changed.held = True
                repository.save(changed)
                raise RuntimeError("abort")

        assert repository.count() == 1
        assert not repository.get(kept.id).held
        assert not repository.reference_exists("ABCDEFGH")

    def test_nested_scope_rolls_back_outer_writes(self, repository, make_claim) -> None:
        with pytest.raises(RuntimeError):
            with repository.transaction():
                repository.save(make_claim())
                with repository.transaction():
                    repository.save(make_claim())
                    raise RuntimeError("abort")

        assert repository.count() == 0

    def test_save_all_is_all_or_nothing(self, repository, make_claim) -> None:
        repository.save(make_claim(reference="TAKEN234"))
        fresh = make_claim()

        with pytest.raises(DuplicateReference):
            repository.save_all([fresh, make_claim(reference="TAKEN234")])

        assert not repository.exists(fresh.id)


class TestQueries:
    """Tests for the admin queue queries."""

    def test_submission_queries(self, repository, submitted_claim, make_claim) -> None:
        draft = make_claim()
        repository.save(draft)
        claim = submitted_claim()

        assert [c.id for c in repository.unsubmitted()] == [draft.id]
        assert [c.id for c in repository.submitted()] == [claim.id]
        assert [c.id for c in repository.awaiting_decision()] == [claim.id]

    def test_held_queries(self, workflow, repository, submitted_claim) -> None:
        held = submitted_claim()
        other = submitted_claim()
        workflow.hold(held.id, "Checking", user="reviewer")

        assert [c.id for c in repository.held()] == [held.id]
        assert [c.id for c in repository.not_held()] == [other.id]

    def test_decision_queries(self, workflow, repository, approved_claim, submitted_claim) -> None:
        approved = approved_claim()
        rejected = submitted_claim()
        workflow.decide(rejected.id, DecisionResult.REJECTED, created_by="reviewer")
        automated = submitted_claim()
        workflow.decide(automated.id, DecisionResult.APPROVED)

        year = AcademicYear(2023)
        assert {c.id for c in repository.approved(year)} == {approved.id, automated.id}
        assert repository.approved(year.next()) == []
        assert [c.id for c in repository.rejected()] == [rejected.id]
        assert [c.id for c in repository.auto_approved()] == [automated.id]
        assert repository.count_approved(year) == (2, 0)

    def test_decision_deadline_queries(self, repository, clock, submitted_claim) -> None:
        deadline = timedelta(weeks=12)
        warning = timedelta(weeks=2)
        old = submitted_claim()
        clock.advance(weeks=2)
        recent = submitted_claim()

        clock.advance(weeks=9, days=1)
        assert [c.id for c in repository.approaching_decision_deadline(deadline, warning)] == [old.id]
        assert repository.passed_decision_deadline(deadline) == []

        clock.advance(weeks=2)
        assert [c.id for c in repository.passed_decision_deadline(deadline)] == [old.id]
        assert [c.id for c in repository.approaching_decision_deadline(deadline, warning)] == [recent.id]

    def test_policy_and_year_queries(self, repository, make_claim) -> None:
        ecp = make_claim()
        student_loans = make_claim(Policy.STUDENT_LOANS, academic_year="2022/2023")
        repository.save_all([ecp, student_loans])

        assert [c.id for c in repository.by_policy(Policy.STUDENT_LOANS)] == [student_loans.id]
        assert len(repository.by_policy(Policy.STUDENT_LOANS, Policy.EARLY_CAREER_PAYMENTS)) == 2
        assert [c.id for c in repository.by_academic_year(AcademicYear(2022))] == [student_loans.id]

    def test_assignment_queries(self, workflow, repository, submitted_claim) -> None:
        mine = submitted_claim()
        unassigned = submitted_claim()
        workflow.assign(mine.id, "reviewer")

        assert [c.id for c in repository.assigned_to("reviewer")] == [mine.id]
        assert [c.id for c in repository.unassigned()] == [unassigned.id]

    def test_failed_bank_validation(self, repository, make_claim) -> None:
        failed = make_claim()
        repository.save_all([failed, make_claim(hmrc_bank_validation_succeeded=True)])

        assert [c.id for c in repository.failed_bank_validation()] == [failed.id]
