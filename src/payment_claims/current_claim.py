"""
One claim journey backed by several per-policy claims.

A combined journey (early-career and levelling-up payments, for example)
collects one set of answers but keeps one claim record per policy. Until the
claimant submits one of them, writes made through ``CurrentClaim`` go to
every claim so the records stay identical. Once any claim is submitted the
records may diverge and later writes go to the main claim alone.
"""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from .config import get_settings
from .core.claim import Claim
from .core.eligibility import BaseEligibility
from .core.models import FieldError, Policy
from .core.validation import ValidationContext, field_errors_from, rules_for_clock
from .storage.repository import ClaimRepository

logger = logging.getLogger(__name__)


class CurrentClaim:
    """Coordinator over the claims of a multi-policy journey."""

    def __init__(
        self,
        claims: Sequence[Claim],
        repository: ClaimRepository,
        preferred_policy: Policy | None = None,
    ) -> None:
        if not claims:
            raise ValueError("CurrentClaim needs at least one claim")
        policies = [claim.policy for claim in claims]
        if len(set(policies)) != len(policies):
            raise ValueError("CurrentClaim holds at most one claim per policy")
        self.claims = list(claims)
        self.repository = repository
        self.preferred_policy = preferred_policy or get_settings().preferred_policy
        self.rules = rules_for_clock(repository.clock)

    def for_policy(self, policy: Policy) -> Claim | None:
        return next((claim for claim in self.claims if claim.policy == policy), None)

    @property
    def main_claim(self) -> Claim:
        """The claim for the preferred policy, else the first claim."""
        return self.for_policy(self.preferred_policy) or self.claims[0]

    @property
    def submitted_claim(self) -> Claim | None:
        return next((claim for claim in self.claims if claim.submitted), None)

    @property
    def claim_ids(self) -> list[str]:
        return [claim.id for claim in self.claims]

    @property
    def policy(self) -> Policy:
        return self.main_claim.policy

    @property
    def submitted(self) -> bool:
        return self.submitted_claim is not None

    @property
    def eligibility(self) -> BaseEligibility:
        return self.main_claim.eligibility

    def read(self, attribute: str) -> Any:
        """Read an attribute from the main claim."""
        return getattr(self.main_claim, attribute)

    def _targets(self) -> list[Claim]:
        """Claims a shared write goes to: the others first, then main."""
        main = self.main_claim
        if self.submitted:
            return [main]
        return [claim for claim in self.claims if claim is not main] + [main]

    # ------------------------------------------------------------------
    # Forwarded writes
    # ------------------------------------------------------------------

    def assign_attributes(self, **attributes: Any) -> None:
        for claim in self._targets():
            values = dict(attributes)
            if "eligibility_attributes" in values:
                values["eligibility_attributes"] = dict(values["eligibility_attributes"])
            claim.assign_attributes(**values)

    def reset_dependent_answers(self) -> None:
        for claim in self._targets():
            claim.reset_dependent_answers()

    def reset_eligibility_dependent_answers(self) -> None:
        for claim in self.claims:
            claim.eligibility.reset_dependent_answers()

    def errors_for(self, context: ValidationContext | None = None) -> list[FieldError]:
        """Validation errors across every claim a save would write, without duplicates."""
        errors: list[FieldError] = []
        for claim in self._targets():
            for error in claim.validate_for(context, self.rules):
                if error not in errors:
                    errors.append(error)
        return errors

    def save(self, context: ValidationContext | None = None) -> list[FieldError]:
        """
        Validate and persist every target claim.

        Nothing is written unless all of them are valid. Returns the
        validation errors; an empty list means the claims were saved.
        """
        errors = self.errors_for(context)
        if errors:
            logger.debug("Journey save blocked by %d validation error(s)", len(errors))
            return errors
        self.repository.save_all(self._targets())
        return []

    def save_strict(self) -> None:
        """
        Persist every target claim without the validation gate.

        Storage errors propagate and leave no claim written.
        """
        self.repository.save_all(self._targets())

    def update(
        self, context: ValidationContext | None = None, **attributes: Any
    ) -> list[FieldError]:
        """
        Assign answers and save. Values that cannot be coerced to the
        field's type come back as field errors and nothing is saved.
        """
        try:
            self.assign_attributes(**attributes)
        except ValidationError as exc:
            logger.debug("Journey update rejected values for %d field(s)", exc.error_count())
            return field_errors_from(exc)
        return self.save(context)

    def update_strict(self, **attributes: Any) -> None:
        self.assign_attributes(**attributes)
        self.save_strict()
