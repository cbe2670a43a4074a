"""
Claim Workflow - Main Orchestrator.
Runs claim state transitions as single transactions against the claim store.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from .config import Settings, get_settings
from .core.claim import Claim
from .core.models import (
    Amendment,
    DecisionResult,
    FieldError,
    Note,
    Payment,
    Topup,
    TransitionResult,
    utcnow,
)
from .core.reference import generate_reference
from .core.validation import (
    ValidationContext,
    ValidationRuleSet,
    field_errors_from,
    rules_for_clock,
)
from .exceptions import ConcurrentDecisionConflict, DuplicateReference, NotSubmittable
from .services.payment_conflicts import PaymentConflictChecker
from .services.qa_sampler import QaSampler
from .storage.repository import ClaimRepository

logger = logging.getLogger(__name__)


class ClaimWorkflow:
    """
    Main orchestrator for claim submission and review.

    Each operation reads the claim, applies one transition and writes it back
    inside one store transaction. Operations that cannot apply in the claim's
    current state return a NO_CHANGE ``TransitionResult`` instead of raising.
    """

    def __init__(
        self,
        repository: ClaimRepository,
        settings: Settings | None = None,
        qa_sampler: QaSampler | None = None,
        conflict_checker: PaymentConflictChecker | None = None,
        reference_generator: Callable[[int], str] = generate_reference,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the workflow.

        Args:
            repository: Claim store
            settings: Workflow settings (defaults to the cached settings)
            qa_sampler: QA sampler; built from settings when omitted
            conflict_checker: Payment conflict checker; built when omitted
            reference_generator: Produces a candidate reference of a length
            clock: Source of the current time (defaults to the store's clock)
        """
        self.repository = repository
        self.settings = settings or get_settings()
        self.reference_generator = reference_generator
        self.clock = clock or repository.clock

        # Initialize collaborators lazily
        self._qa_sampler = qa_sampler
        self._conflict_checker = conflict_checker
        self._rules: ValidationRuleSet | None = None

    @property
    def rules(self) -> ValidationRuleSet:
        """Get or create the claim rules, dated by the workflow clock."""
        if self._rules is None:
            self._rules = rules_for_clock(self.clock)
        return self._rules

    @property
    def qa_sampler(self) -> QaSampler:
        """Get or create the QA sampler."""
        if self._qa_sampler is None:
            self._qa_sampler = QaSampler(
                self.repository, min_qa_threshold=self.settings.min_qa_threshold
            )
        return self._qa_sampler

    @property
    def conflict_checker(self) -> PaymentConflictChecker:
        """Get or create the payment conflict checker."""
        if self._conflict_checker is None:
            self._conflict_checker = PaymentConflictChecker(self.repository)
        return self._conflict_checker

    def now(self) -> datetime:
        return self.clock()

    # ------------------------------------------------------------------
    # Predicates needing collaborators
    # ------------------------------------------------------------------

    def payment_prevented(self, claim: Claim) -> bool:
        return self.conflict_checker.blocks_payment(claim)

    def approvable(self, claim: Claim) -> bool:
        return claim.approvable(payment_prevented=self.payment_prevented(claim))

    def flaggable_for_qa(self, claim: Claim) -> bool:
        return claim.flaggable_for_qa(
            self.qa_sampler.below_min_qa_threshold(claim.academic_year)
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _unique_reference(self) -> str:
        while True:
            reference = self.reference_generator(self.settings.reference_length)
            if not self.repository.reference_exists(reference):
                return reference

    def submit(self, claim: Claim) -> Claim:
        """
        Submit a claim and persist it.

        Raises:
            NotSubmittable: if the claim is not submittable, or the stored
                claim has already been submitted
        """
        with self.repository.transaction():
            if self.repository.exists(claim.id) and self.repository.get(claim.id).submitted:
                raise NotSubmittable("Claim has already been submitted", claim_id=claim.id)

            snapshot = claim.model_copy(deep=True)
            while True:
                claim.submit(
                    reference=self._unique_reference(),
                    submitted_at=self.now(),
                    rules=self.rules,
                )
                try:
                    self.repository.save(claim)
                except DuplicateReference:
                    logger.warning("Reference collision submitting claim %s, retrying", claim.id)
                    claim.restore(snapshot)
                    continue
                except Exception:
                    claim.restore(snapshot)
                    raise
                break

        logger.info("Claim %s submitted with reference %s", claim.id, claim.reference)
        return claim

    # ------------------------------------------------------------------
    # Holds
    # ------------------------------------------------------------------

    def hold(self, claim_id: str, reason: str, user: str | None) -> TransitionResult:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.hold(reason=reason, user=user, at=self.now()):
                logger.debug("Hold on claim %s made no change", claim_id)
                return TransitionResult.no_change(
                    claim_id, "Claim is already held or has a decision"
                )
            self.repository.save(claim)
        logger.info("Claim %s put on hold", claim_id)
        return TransitionResult.applied(claim_id)

    def unhold(self, claim_id: str, user: str | None) -> TransitionResult:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.unhold(user=user, at=self.now()):
                logger.debug("Unhold on claim %s made no change", claim_id)
                return TransitionResult.no_change(claim_id, "Claim is not on hold")
            self.repository.save(claim)
        logger.info("Claim %s hold removed", claim_id)
        return TransitionResult.applied(claim_id)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def decide(
        self,
        claim_id: str,
        result: DecisionResult | str,
        created_by: str | None = None,
        notes: str | None = None,
        expected_decision_id: str | None = None,
    ) -> TransitionResult:
        """
        Record a decision on a claim.

        ``expected_decision_id`` is the active decision the caller saw when
        deciding (None for an unreviewed claim). If another decision has been
        recorded since, the call fails instead of overwriting it.

        Raises:
            ConcurrentDecisionConflict: if the active decision has changed
        """
        result = DecisionResult(result)
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            active = claim.latest_decision
            active_id = active.id if active else None
            if active_id != expected_decision_id:
                logger.warning(
                    "Decision conflict on claim %s: expected %s, found %s",
                    claim_id,
                    expected_decision_id,
                    active_id,
                )
                raise ConcurrentDecisionConflict(claim_id, expected_decision_id, active_id)

            if result == DecisionResult.APPROVED:
                allowed = self.approvable(claim)
            else:
                allowed = claim.rejectable()
            if not allowed:
                return TransitionResult.no_change(
                    claim_id, f"Claim cannot be {result.value} in its current state"
                )

            now = self.now()
            completing_qa = claim.awaiting_qa()
            decision = claim.decisions.record(
                result, created_by=created_by, notes=notes, created_at=now
            )
            if completing_qa:
                claim.qa_completed_at = now
            self.repository.save(claim)

            if result == DecisionResult.APPROVED and self.flaggable_for_qa(claim):
                claim.qa_required = True
                self.repository.save(claim)
                logger.info("Claim %s flagged for QA", claim_id)

        logger.info("Claim %s %s", claim_id, result.value)
        return TransitionResult.applied(claim_id, decision_id=decision.id)

    def undo_decision(
        self,
        claim_id: str,
        decision_id: str,
        created_by: str | None,
        reason: str,
    ) -> TransitionResult:
        """
        Undo the active decision.

        Raises:
            ConcurrentDecisionConflict: if ``decision_id`` is no longer active
        """
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.decision_undoable():
                return TransitionResult.no_change(claim_id, "Decision cannot be undone")
            active_id = claim.latest_decision.id
            if active_id != decision_id:
                raise ConcurrentDecisionConflict(claim_id, decision_id, active_id)

            now = self.now()
            claim.decisions.undo(decision_id, created_by=created_by, reason=reason, created_at=now)
            claim.notes.append(
                Note(
                    body=f"Claim decision undone: {reason}",
                    created_by=created_by,
                    created_at=now,
                )
            )
            self.repository.save(claim)
        logger.info("Decision %s on claim %s undone", decision_id, claim_id)
        return TransitionResult.applied(claim_id, decision_id=decision_id)

    # ------------------------------------------------------------------
    # Amendments
    # ------------------------------------------------------------------

    def amend(
        self,
        claim_id: str,
        changes: Mapping[str, Any],
        created_by: str | None,
        notes: str,
    ) -> TransitionResult:
        """Correct restricted fields on a submitted claim, keeping the old values."""
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.amendable():
                return TransitionResult.no_change(claim_id, "Claim cannot be amended")

            errors = [
                FieldError(field=name, message="This field cannot be amended")
                for name in changes
                if name not in Claim.AMENDABLE_ATTRIBUTES
            ]
            if not notes or not notes.strip():
                errors.append(
                    FieldError(
                        field="notes",
                        message="Enter a message to explain why you are making this amendment",
                    )
                )
            if errors:
                return TransitionResult.no_change(claim_id, "Invalid amendment", errors)

            original = claim.model_copy(deep=True)
            try:
                claim.assign_attributes(**changes)
            except ValidationError as exc:
                return TransitionResult.no_change(
                    claim_id, "Invalid amendment", field_errors_from(exc)
                )
            changed = claim.changed_attributes
            claim.before_save()
            claim_changes = {
                name: (getattr(original, name), getattr(claim, name))
                for name in Claim.AMENDABLE_ATTRIBUTES
                if name in changed and getattr(original, name) != getattr(claim, name)
            }
            if not claim_changes:
                errors.append(
                    FieldError(
                        field="base",
                        message="To amend the claim you must change at least one value",
                    )
                )
            errors.extend(claim.validate_for(ValidationContext.AMENDMENT, self.rules))
            if errors:
                return TransitionResult.no_change(claim_id, "Invalid amendment", errors)

            claim.amendments.append(
                Amendment(
                    claim_changes=claim_changes,
                    notes=notes,
                    created_by=created_by,
                    created_at=self.now(),
                )
            )
            self.repository.save(claim)
        logger.info("Claim %s amended: %s", claim_id, ", ".join(sorted(claim_changes)))
        return TransitionResult.applied(claim_id)

    # ------------------------------------------------------------------
    # Payments and topups
    # ------------------------------------------------------------------

    def record_payment(
        self,
        claim_id: str,
        payroll_run_id: str,
        award_amount: Decimal | None = None,
    ) -> TransitionResult:
        """Attach a payroll payment to a payrollable claim."""
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.payrollable():
                return TransitionResult.no_change(claim_id, "Claim is not payrollable")
            if self.payment_prevented(claim):
                return TransitionResult.no_change(
                    claim_id, "Payment is prevented by other claims"
                )
            amount = award_amount if award_amount is not None else claim.award_amount
            claim.payments.append(
                Payment(
                    award_amount=amount or Decimal("0"),
                    payroll_run_id=payroll_run_id,
                    created_at=self.now(),
                )
            )
            self.repository.save(claim)
        logger.info("Claim %s payrolled in run %s", claim_id, payroll_run_id)
        return TransitionResult.applied(claim_id)

    def add_topup(
        self, claim_id: str, award_amount: Decimal, created_by: str | None
    ) -> TransitionResult:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if not claim.topupable():
                return TransitionResult.no_change(claim_id, "Claim cannot be topped up")
            claim.topups.append(
                Topup(award_amount=award_amount, created_by=created_by, created_at=self.now())
            )
            self.repository.save(claim)
        logger.info("Topup added to claim %s", claim_id)
        return TransitionResult.applied(claim_id)

    def record_topup_payment(
        self, claim_id: str, topup_id: str, payroll_run_id: str
    ) -> TransitionResult:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            topup = next((t for t in claim.topups if t.id == topup_id), None)
            if topup is None or topup.payrolled:
                return TransitionResult.no_change(claim_id, "Topup is not awaiting payment")
            payment = Payment(
                award_amount=topup.award_amount,
                payroll_run_id=payroll_run_id,
                topup_id=topup.id,
                created_at=self.now(),
            )
            claim.payments.append(payment)
            topup.payment_id = payment.id
            self.repository.save(claim)
        logger.info("Topup %s on claim %s payrolled in run %s", topup_id, claim_id, payroll_run_id)
        return TransitionResult.applied(claim_id)

    # ------------------------------------------------------------------
    # Case management
    # ------------------------------------------------------------------

    def assign(self, claim_id: str, user: str | None) -> TransitionResult:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            if claim.assigned_to == user:
                return TransitionResult.no_change(claim_id, "Claim already has this assignee")
            claim.assigned_to = user
            self.repository.save(claim)
        return TransitionResult.applied(claim_id)

    def unassign(self, claim_id: str) -> TransitionResult:
        return self.assign(claim_id, None)

    def add_note(
        self,
        claim_id: str,
        body: str,
        created_by: str | None,
        important: bool = False,
    ) -> Note:
        with self.repository.transaction():
            claim = self.repository.get(claim_id)
            note = Note(body=body, created_by=created_by, important=important, created_at=self.now())
            claim.notes.append(note)
            self.repository.save(claim)
        return note


def build_workflow(
    settings: Settings | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ClaimWorkflow:
    """Convenience constructor for a workflow over a fresh in-memory store."""
    return ClaimWorkflow(ClaimRepository(clock=clock), settings=settings)
