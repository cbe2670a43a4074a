"""
Policy-specific eligibility records.

Each policy has one eligibility model. They share a small contract used by
the claim: ``ineligible()``, ``submit()``, ``assign_attributes()``,
``reset_dependent_answers()`` and ``award_amount``. The concrete model is
selected by the ``policy`` tag.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..exceptions import UnknownAttribute
from .models import Policy


class IttSubject(str, Enum):
    CHEMISTRY = "chemistry"
    COMPUTING = "computing"
    FOREIGN_LANGUAGES = "foreign_languages"
    MATHEMATICS = "mathematics"
    PHYSICS = "physics"
    NONE_OF_THE_ABOVE = "none_of_the_above"


class Qualification(str, Enum):
    POSTGRADUATE_ITT = "postgraduate_itt"
    UNDERGRADUATE_ITT = "undergraduate_itt"
    ASSESSMENT_ONLY = "assessment_only"
    OVERSEAS_RECOGNITION = "overseas_recognition"


class EmploymentStatus(str, Enum):
    CLAIM_SCHOOL = "claim_school"
    DIFFERENT_SCHOOL = "different_school"
    NO_SCHOOL = "no_school"


class BaseEligibility(BaseModel):
    """Fields and behaviour common to every policy's eligibility record."""

    model_config = ConfigDict(validate_assignment=True)

    # Answer name -> answers that become meaningless when it changes.
    ATTRIBUTE_DEPENDENCIES: ClassVar[dict[str, list[str]]] = {}

    award_amount: Decimal | None = None
    submitted: bool = False

    _changed: set[str] = PrivateAttr(default_factory=set)

    @property
    def changed_attributes(self) -> set[str]:
        return set(self._changed)

    def assign_attributes(self, **answers: Any) -> None:
        """Write answers, recording which ones changed."""
        for name, value in answers.items():
            if name not in type(self).model_fields or name in ("policy", "submitted"):
                raise UnknownAttribute(name, type(self).__name__)
            previous = getattr(self, name)
            setattr(self, name, value)
            if getattr(self, name) != previous:
                self._changed.add(name)

    def has_attribute(self, name: str) -> bool:
        return name in type(self).model_fields

    def reset_dependent_answers(self) -> None:
        """Clear answers whose parent answer changed since the last save."""
        for name, dependents in self.ATTRIBUTE_DEPENDENCIES.items():
            if name not in self._changed:
                continue
            for dependent in dependents:
                setattr(self, dependent, None)

    def clear_changes(self) -> None:
        self._changed.clear()

    def ineligible(self) -> bool:
        raise NotImplementedError

    def calculate_award_amount(self) -> Decimal | None:
        return self.award_amount

    def submit(self) -> None:
        """Freeze the award amount at submission."""
        self.award_amount = self.calculate_award_amount()
        self.submitted = True


class _AdditionalPaymentsEligibility(BaseEligibility):
    """Answers shared by the Early-Career and Levelling-Up journeys."""

    ATTRIBUTE_DEPENDENCIES: ClassVar[dict[str, list[str]]] = {
        "employed_as_supply_teacher": ["has_entire_term_contract", "employed_directly"],
        "qualification": ["eligible_itt_subject", "teaching_subject_now"],
        "eligible_itt_subject": ["teaching_subject_now"],
        "itt_academic_year": ["eligible_itt_subject"],
    }

    nqt_in_academic_year_after_itt: bool | None = None
    current_school_id: str | None = None
    current_school_eligible: bool | None = None
    employed_as_supply_teacher: bool | None = None
    has_entire_term_contract: bool | None = None
    employed_directly: bool | None = None
    subject_to_formal_performance_action: bool | None = None
    subject_to_disciplinary_action: bool | None = None
    qualification: Qualification | None = None
    eligible_itt_subject: IttSubject | None = None
    teaching_subject_now: bool | None = None
    itt_academic_year: str | None = None

    def ineligible(self) -> bool:
        return any(
            (
                self.nqt_in_academic_year_after_itt is False,
                self.current_school_eligible is False,
                self.ineligible_as_supply_teacher(),
                self.subject_to_formal_performance_action is True,
                self.subject_to_disciplinary_action is True,
                self.eligible_itt_subject == IttSubject.NONE_OF_THE_ABOVE,
                self.teaching_subject_now is False,
            )
        )

    def ineligible_as_supply_teacher(self) -> bool:
        if not self.employed_as_supply_teacher:
            return False
        return self.has_entire_term_contract is False or self.employed_directly is False


class EarlyCareerPaymentsEligibility(_AdditionalPaymentsEligibility):
    """Eligibility answers for early-career payments."""

    DEFAULT_AWARD_AMOUNT: ClassVar[Decimal] = Decimal("5000")
    UPLIFT_AWARD_AMOUNT: ClassVar[Decimal] = Decimal("7500")

    policy: Literal[Policy.EARLY_CAREER_PAYMENTS] = Policy.EARLY_CAREER_PAYMENTS
    school_eligible_for_uplift: bool = False

    def calculate_award_amount(self) -> Decimal | None:
        if self.award_amount is not None:
            return self.award_amount
        if self.school_eligible_for_uplift:
            return self.UPLIFT_AWARD_AMOUNT
        return self.DEFAULT_AWARD_AMOUNT


class LevellingUpPremiumPaymentsEligibility(_AdditionalPaymentsEligibility):
    """Eligibility answers for levelling-up premium payments."""

    policy: Literal[Policy.LEVELLING_UP_PREMIUM_PAYMENTS] = (
        Policy.LEVELLING_UP_PREMIUM_PAYMENTS
    )
    current_school_award_amount: Decimal | None = None

    def calculate_award_amount(self) -> Decimal | None:
        if self.award_amount is not None:
            return self.award_amount
        return self.current_school_award_amount


class StudentLoansEligibility(BaseEligibility):
    """Eligibility answers for student loan reimbursement."""

    ATTRIBUTE_DEPENDENCIES: ClassVar[dict[str, list[str]]] = {
        "claim_school_id": ["taught_eligible_subjects"],
        "employment_status": ["current_school_id"],
        "had_leadership_position": ["mostly_performed_leadership_duties"],
    }

    policy: Literal[Policy.STUDENT_LOANS] = Policy.STUDENT_LOANS
    qts_award_year_eligible: bool | None = None
    claim_school_id: str | None = None
    claim_school_eligible: bool | None = None
    current_school_id: str | None = None
    employment_status: EmploymentStatus | None = None
    taught_eligible_subjects: bool | None = None
    had_leadership_position: bool | None = None
    mostly_performed_leadership_duties: bool | None = None
    student_loan_repayment_amount: Decimal | None = None

    def ineligible(self) -> bool:
        return any(
            (
                self.qts_award_year_eligible is False,
                self.claim_school_eligible is False,
                self.employment_status == EmploymentStatus.NO_SCHOOL,
                self.taught_eligible_subjects is False,
                self.mostly_performed_leadership_duties is True,
            )
        )

    def calculate_award_amount(self) -> Decimal | None:
        return self.student_loan_repayment_amount


Eligibility = Annotated[
    Union[
        EarlyCareerPaymentsEligibility,
        LevellingUpPremiumPaymentsEligibility,
        StudentLoansEligibility,
    ],
    Field(discriminator="policy"),
]

ELIGIBILITY_BY_POLICY: dict[Policy, type[BaseEligibility]] = {
    Policy.EARLY_CAREER_PAYMENTS: EarlyCareerPaymentsEligibility,
    Policy.LEVELLING_UP_PREMIUM_PAYMENTS: LevellingUpPremiumPaymentsEligibility,
    Policy.STUDENT_LOANS: StudentLoansEligibility,
}


def build_eligibility(policy: Policy, **answers: Any) -> BaseEligibility:
    """Create an empty (or pre-filled) eligibility record for a policy."""
    return ELIGIBILITY_BY_POLICY[policy](**answers)
