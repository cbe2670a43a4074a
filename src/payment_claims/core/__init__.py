"""
Core components for the claims workflow.
"""

from .academic_year import AcademicYear
from .claim import Claim
from .decisions import Decision, DecisionLedger, DecisionUndo
from .eligibility import (
    EarlyCareerPaymentsEligibility,
    Eligibility,
    LevellingUpPremiumPaymentsEligibility,
    StudentLoansEligibility,
    build_eligibility,
)
from .models import (
    Amendment,
    BankOrBuildingSociety,
    ClaimStatus,
    DecisionResult,
    FieldError,
    MobileCheck,
    Note,
    Payment,
    PayrollGender,
    Policy,
    Topup,
    TransitionOutcome,
    TransitionResult,
)
from .reference import generate_reference
from .validation import ValidationContext, ValidationRuleSet, validate

__all__ = [
    # Claim
    "AcademicYear",
    "Claim",
    # Decisions
    "Decision",
    "DecisionLedger",
    "DecisionUndo",
    # Eligibility
    "EarlyCareerPaymentsEligibility",
    "Eligibility",
    "LevellingUpPremiumPaymentsEligibility",
    "StudentLoansEligibility",
    "build_eligibility",
    # Models
    "Amendment",
    "BankOrBuildingSociety",
    "ClaimStatus",
    "DecisionResult",
    "FieldError",
    "MobileCheck",
    "Note",
    "Payment",
    "PayrollGender",
    "Policy",
    "Topup",
    "TransitionOutcome",
    "TransitionResult",
    # Validation
    "ValidationContext",
    "ValidationRuleSet",
    "validate",
    "generate_reference",
]
