"""
Teacher Payment Claims Workflow.

Claim lifecycle for teacher payment policies: submission, holds,
decisions, QA sampling, payment conflict checks and multi-policy journeys.
"""

from .config import Settings, get_settings
from .core.academic_year import AcademicYear
from .core.claim import Claim
from .core.decisions import Decision, DecisionLedger, DecisionUndo
from .core.eligibility import (
    EarlyCareerPaymentsEligibility,
    LevellingUpPremiumPaymentsEligibility,
    StudentLoansEligibility,
    build_eligibility,
)
from .core.models import (
    ClaimStatus,
    DecisionResult,
    FieldError,
    PayrollGender,
    Policy,
    TransitionOutcome,
    TransitionResult,
)
from .core.validation import ValidationContext, validate
from .current_claim import CurrentClaim
from .exceptions import (
    ClaimError,
    ClaimNotFound,
    ConcurrentDecisionConflict,
    DuplicateReference,
    NotSubmittable,
    UnknownAttribute,
)
from .services.payment_conflicts import PaymentConflictChecker
from .services.qa_sampler import QaSampler
from .storage.repository import ClaimRepository
from .workflow import ClaimWorkflow, build_workflow

__version__ = "0.1.0"

__all__ = [
    # Main Workflow
    "ClaimWorkflow",
    "build_workflow",
    "CurrentClaim",
    # Models
    "AcademicYear",
    "Claim",
    "ClaimStatus",
    "Decision",
    "DecisionLedger",
    "DecisionResult",
    "DecisionUndo",
    "EarlyCareerPaymentsEligibility",
    "FieldError",
    "LevellingUpPremiumPaymentsEligibility",
    "PayrollGender",
    "Policy",
    "StudentLoansEligibility",
    "TransitionOutcome",
    "TransitionResult",
    "build_eligibility",
    # Validation
    "ValidationContext",
    "validate",
    # Services
    "ClaimRepository",
    "PaymentConflictChecker",
    "QaSampler",
    # Config
    "Settings",
    "get_settings",
    # Errors
    "ClaimError",
    "ClaimNotFound",
    "ConcurrentDecisionConflict",
    "DuplicateReference",
    "NotSubmittable",
    "UnknownAttribute",
]
