"""
Tests for personal data removal.
"""

from datetime import datetime, timezone

import pytest

from payment_claims.core.models import ClaimStatus, DecisionResult
from payment_claims.utils.personal_data import PersonalDataScrubber


@pytest.fixture
def scrubber(repository) -> PersonalDataScrubber:
    return PersonalDataScrubber(repository)


class TestRedaction:
    """Tests for redacting identifiers in free text."""

    def test_redact_nino(self, scrubber) -> None:
        assert scrubber.redact_string("NI number QQ 12 34 56 C checked") == "NI number [REDACTED] checked"

    def test_redact_email_and_mobile(self, scrubber) -> None:
        text = "Emailed jo.bloggs@example.com and called 07700 900982"
        result = scrubber.redact_string(text)

        assert "jo.bloggs@example.com" not in result
        assert "07700" not in result
        assert result.count("[REDACTED]") == 2

    def test_redact_bank_details(self, scrubber) -> None:
        result = scrubber.redact_string("Sort code 12-34-56, account 12345678")
        assert result == "Sort code [REDACTED], account [REDACTED]"

    def test_no_personal_data(self, scrubber) -> None:
        text = "School confirmed employment"
        assert scrubber.redact_string(text) == text
        assert scrubber.redact_string("") == ""


class TestScrubCompletedClaims:
    """Tests for removing personal data from completed claims."""

    def test_default_cutoff_is_start_of_academic_year(self, scrubber) -> None:
        assert scrubber.default_cutoff() == datetime(2023, 9, 1, tzinfo=timezone.utc)

    def test_rejected_claim_scrubbed_next_year(
        self, workflow, repository, clock, submitted_claim, scrubber
    ) -> None:
        claim = submitted_claim()
        workflow.decide(claim.id, DecisionResult.REJECTED, "reviewer")
        workflow.add_note(claim.id, "Claimant NINO QQ123456C did not match", "reviewer")

        assert scrubber.scrub_completed_claims().count == 0

        clock.now = datetime(2024, 9, 2, tzinfo=timezone.utc)
        result = scrubber.scrub_completed_claims()

        assert result.claim_ids == [claim.id]
        stored = repository.get(claim.id)
        assert stored.status == ClaimStatus.PERSONAL_DATA_REMOVED
        assert stored.first_name is None
        assert stored.national_insurance_number is None
        assert stored.bank_account_number is None
        assert stored.date_of_birth is None
        assert stored.notes[-1].body == "Claimant NINO [REDACTED] did not match"
        assert stored.reference == claim.reference

    def test_paid_claim_scrubbed(self, workflow, repository, approved_claim, scrubber) -> None:
        claim = approved_claim()
        workflow.record_payment(claim.id, payroll_run_id="run-1")

        result = scrubber.scrub_completed_claims(cutoff=datetime(2025, 1, 1, tzinfo=timezone.utc))

        assert result.count == 1
        stored = repository.get(claim.id)
        assert stored.personal_data_removed()
        assert not stored.amendable()
        assert not stored.decision_undoable()

    def test_open_claims_kept(self, repository, approved_claim, submitted_claim, scrubber) -> None:
        approved_claim()
        submitted_claim()

        result = scrubber.scrub_completed_claims(cutoff=datetime(2025, 1, 1, tzinfo=timezone.utc))

        assert result.count == 0
        assert all(claim.first_name == "Jo" for claim in repository.all())

    def test_removal_is_terminal(self, workflow, submitted_claim, scrubber) -> None:
        claim = submitted_claim()
        workflow.decide(claim.id, DecisionResult.REJECTED, "reviewer")
        cutoff = datetime(2025, 1, 1, tzinfo=timezone.utc)

        assert scrubber.scrub_completed_claims(cutoff).count == 1
        assert scrubber.scrub_completed_claims(cutoff).count == 0
