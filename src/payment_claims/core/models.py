"""
Core data models for the payment claims workflow.
Uses Pydantic for validation and serialization.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Policy(str, Enum):
    """Payment policies a claim can be made under."""

    EARLY_CAREER_PAYMENTS = "early_career_payments"
    LEVELLING_UP_PREMIUM_PAYMENTS = "levelling_up_premium_payments"
    STUDENT_LOANS = "student_loans"


class PayrollGender(str, Enum):
    """Gender recorded on the school payroll system."""

    DONT_KNOW = "dont_know"
    FEMALE = "female"
    MALE = "male"


class BankOrBuildingSociety(str, Enum):
    PERSONAL_BANK_ACCOUNT = "personal_bank_account"
    BUILDING_SOCIETY = "building_society"


class MobileCheck(str, Enum):
    """Answer to the select-mobile question on the identity provider route."""

    USE = "use"
    ALTERNATIVE = "alternative"
    DECLINED = "declined"


class DecisionResult(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ClaimStatus(str, Enum):
    """Lifecycle state derived from the claim predicates."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    HELD = "held"
    APPROVED = "approved"
    REJECTED = "rejected"
    AWAITING_QA = "awaiting_qa"
    QA_COMPLETE = "qa_complete"
    PAYROLLED = "payrolled"
    PERSONAL_DATA_REMOVED = "personal_data_removed"


class TransitionOutcome(str, Enum):
    APPLIED = "applied"
    NO_CHANGE = "no_change"


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class TransitionResult(BaseModel):
    """
    Result of a state-changing operation on a claim.

    Operations that find the claim in a state where they cannot apply do not
    raise; they return a NO_CHANGE result with a reason and any field errors.
    """

    outcome: TransitionOutcome
    claim_id: str
    reason: str | None = None
    decision_id: str | None = None
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED

    @classmethod
    def applied(cls, claim_id: str, decision_id: str | None = None) -> "TransitionResult":
        return cls(
            outcome=TransitionOutcome.APPLIED, claim_id=claim_id, decision_id=decision_id
        )

    @classmethod
    def no_change(
        cls,
        claim_id: str,
        reason: str,
        errors: list[FieldError] | None = None,
    ) -> "TransitionResult":
        return cls(
            outcome=TransitionOutcome.NO_CHANGE,
            claim_id=claim_id,
            reason=reason,
            errors=errors or [],
        )


class Note(BaseModel):
    """Audit trail entry attached to a claim."""

    id: str = Field(default_factory=new_id)
    body: str
    created_by: str | None = None
    important: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Amendment(BaseModel):
    """Post-submission correction to a restricted set of claim fields."""

    id: str = Field(default_factory=new_id)
    claim_changes: dict[str, tuple[Any, Any]]
    notes: str
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Payment(BaseModel):
    """Payroll payment made against a claim."""

    id: str = Field(default_factory=new_id)
    award_amount: Decimal = Field(ge=0)
    payroll_run_id: str
    topup_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Topup(BaseModel):
    """Supplementary award issued against an already payrolled claim."""

    id: str = Field(default_factory=new_id)
    award_amount: Decimal = Field(gt=0)
    created_by: str | None = None
    payment_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def payrolled(self) -> bool:
        return self.payment_id is not None
