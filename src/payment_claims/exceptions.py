"""Error types raised by the claims workflow."""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Enumeration of error codes surfaced to API and UI layers."""

    NOT_SUBMITTABLE = "NOT_SUBMITTABLE"
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"
    CONCURRENT_DECISION_CONFLICT = "CONCURRENT_DECISION_CONFLICT"
    CLAIM_NOT_FOUND = "CLAIM_NOT_FOUND"
    UNKNOWN_ATTRIBUTE = "UNKNOWN_ATTRIBUTE"


class ClaimError(Exception):
    """
    Base exception for all claim workflow errors.

    Attributes:
        error_type: Code from ErrorType
        claim_id: Claim the error relates to, when known
        details: Optional additional error details
    """

    error_type: ErrorType

    def __init__(
        self,
        message: str,
        claim_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.claim_id = claim_id
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "claim_id": self.claim_id,
            "details": self.details,
        }


class NotSubmittable(ClaimError):
    """Submission attempted while the claim is not submittable."""

    error_type = ErrorType.NOT_SUBMITTABLE


class DuplicateReference(ClaimError):
    """A generated reference is already held by another claim."""

    error_type = ErrorType.DUPLICATE_REFERENCE


class ConcurrentDecisionConflict(ClaimError):
    """The claim's active decision changed since the caller last read it."""

    error_type = ErrorType.CONCURRENT_DECISION_CONFLICT

    def __init__(
        self,
        claim_id: str,
        expected_decision_id: str | None,
        active_decision_id: str | None,
    ) -> None:
        super().__init__(
            "A decision has already been recorded for this claim",
            claim_id=claim_id,
            details={
                "expected_decision_id": expected_decision_id,
                "active_decision_id": active_decision_id,
            },
        )
        self.expected_decision_id = expected_decision_id
        self.active_decision_id = active_decision_id


class ClaimNotFound(ClaimError, LookupError):
    error_type = ErrorType.CLAIM_NOT_FOUND

    def __init__(self, claim_id: str) -> None:
        super().__init__(f"No claim with id {claim_id}", claim_id=claim_id)


class UnknownAttribute(ClaimError, AttributeError):
    """Attempt to write an attribute outside the editable allowlist."""

    error_type = ErrorType.UNKNOWN_ATTRIBUTE

    def __init__(self, attribute: str, owner: str) -> None:
        super().__init__(
            f"{owner} has no editable attribute {attribute!r}",
            details={"attribute": attribute, "owner": owner},
        )
        self.attribute = attribute
