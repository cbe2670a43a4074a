"""
In-memory transactional claim store.

Stands at the persistence seam: callers read detached copies of claims,
mutate them and write them back with ``save``. Writes made inside a
``transaction()`` are rolled back together if the block raises. The store
enforces unique claim references.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from ..core.academic_year import AcademicYear
from ..core.claim import Claim
from ..core.models import Policy, utcnow
from ..exceptions import ClaimNotFound, DuplicateReference

logger = logging.getLogger(__name__)


class ClaimRepository:
    """Thread-safe in-memory claim store with transactional scopes."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._claims: dict[str, Claim] = {}
        self._references: dict[str, str] = {}
        self._lock = threading.RLock()
        self._depth = 0
        self.clock = clock

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["ClaimRepository"]:
        """
        Run a block atomically.

        Re-entrant. Only the outermost scope takes a snapshot; an exception
        escaping any scope restores it.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                snapshot = (dict(self._claims), dict(self._references))
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._claims, self._references = snapshot
                    logger.debug("Rolled back claim store transaction")
                raise
            finally:
                self._depth -= 1

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    def get(self, claim_id: str) -> Claim:
        """Return a detached copy of a stored claim."""
        with self._lock:
            try:
                return self._claims[claim_id].model_copy(deep=True)
            except KeyError:
                raise ClaimNotFound(claim_id) from None

    def exists(self, claim_id: str) -> bool:
        with self._lock:
            return claim_id in self._claims

    def reference_exists(self, reference: str) -> bool:
        with self._lock:
            return reference in self._references

    def save(self, claim: Claim) -> Claim:
        """
        Store a copy of ``claim``.

        Raises:
            DuplicateReference: if another claim already holds its reference
        """
        with self._lock:
            if claim.reference is not None:
                holder = self._references.get(claim.reference)
                if holder is not None and holder != claim.id:
                    raise DuplicateReference(
                        f"Reference {claim.reference} is already in use", claim_id=claim.id
                    )
            claim.before_save()
            stored = claim.model_copy(deep=True)
            previous = self._claims.get(claim.id)
            if previous is not None and previous.reference != claim.reference:
                self._references.pop(previous.reference, None)
            self._claims[claim.id] = stored
            if claim.reference is not None:
                self._references[claim.reference] = claim.id
            return claim

    def save_all(self, claims: Iterable[Claim]) -> None:
        with self.transaction():
            for claim in claims:
                self.save(claim)

    def all(self) -> list[Claim]:
        with self._lock:
            return [claim.model_copy(deep=True) for claim in self._claims.values()]

    def count(self, predicate: Callable[[Claim], bool] | None = None) -> int:
        with self._lock:
            if predicate is None:
                return len(self._claims)
            return sum(1 for claim in self._claims.values() if predicate(claim))

    def where(self, predicate: Callable[[Claim], bool]) -> list[Claim]:
        with self._lock:
            return [
                claim.model_copy(deep=True)
                for claim in self._claims.values()
                if predicate(claim)
            ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def unsubmitted(self) -> list[Claim]:
        return self.where(lambda c: not c.submitted)

    def submitted(self) -> list[Claim]:
        return self.where(lambda c: c.submitted)

    def held(self) -> list[Claim]:
        return self.where(lambda c: c.held)

    def not_held(self) -> list[Claim]:
        return self.where(lambda c: not c.held)

    def awaiting_decision(self) -> list[Claim]:
        return self.where(lambda c: c.submitted and not c.decision_made())

    def approved(self, academic_year: AcademicYear | None = None) -> list[Claim]:
        return self.where(lambda c: c.approved() and _in_year(c, academic_year))

    def rejected(self, academic_year: AcademicYear | None = None) -> list[Claim]:
        return self.where(lambda c: c.rejected() and _in_year(c, academic_year))

    def auto_approved(self) -> list[Claim]:
        return self.where(lambda c: c.approved() and c.latest_decision.automated)

    def qa_required(self) -> list[Claim]:
        return self.where(lambda c: c.qa_required)

    def awaiting_qa(self) -> list[Claim]:
        return self.where(lambda c: c.approved() and c.awaiting_qa())

    def payrollable(self) -> list[Claim]:
        """Approved, QA-cleared, unpaid claims, oldest submission first."""
        claims = self.where(lambda c: c.payrollable())
        return sorted(claims, key=lambda c: c.submitted_at)

    def approaching_decision_deadline(
        self, deadline: timedelta, warning_point: timedelta
    ) -> list[Claim]:
        now = self.clock()
        lower = now - deadline
        upper = lower + warning_point
        return self.where(
            lambda c: c.submitted
            and not c.decision_made()
            and lower < c.submitted_at < upper
        )

    def passed_decision_deadline(self, deadline: timedelta) -> list[Claim]:
        cutoff = self.clock() - deadline
        return self.where(
            lambda c: c.submitted and not c.decision_made() and c.submitted_at < cutoff
        )

    def by_policy(self, *policies: Policy) -> list[Claim]:
        return self.where(lambda c: c.policy in policies)

    def by_academic_year(self, academic_year: AcademicYear) -> list[Claim]:
        return self.where(lambda c: c.academic_year == academic_year)

    def assigned_to(self, user: str) -> list[Claim]:
        return self.where(lambda c: c.assigned_to == user)

    def unassigned(self) -> list[Claim]:
        return self.where(lambda c: c.assigned_to is None)

    def failed_bank_validation(self) -> list[Claim]:
        return self.where(lambda c: not c.hmrc_bank_validation_succeeded)

    def count_approved(self, academic_year: AcademicYear) -> tuple[int, int]:
        """Return (approved, approved and flagged for QA) for a year."""
        with self._lock:
            approved = [
                c for c in self._claims.values()
                if c.approved() and c.academic_year == academic_year
            ]
            return len(approved), sum(1 for c in approved if c.qa_required)


def _in_year(claim: Claim, academic_year: AcademicYear | None) -> bool:
    return academic_year is None or claim.academic_year == academic_year
