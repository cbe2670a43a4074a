"""
The Claim aggregate.

A claim owns one eligibility record, its decision ledger, notes,
amendments, payments and topups. Lifecycle states are not stored as a
single column; they are derived from the predicates defined here.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..exceptions import NotSubmittable, UnknownAttribute
from .academic_year import AcademicYear
from .decisions import Decision, DecisionLedger
from .eligibility import Eligibility
from .models import (
    Amendment,
    BankOrBuildingSociety,
    ClaimStatus,
    FieldError,
    MobileCheck,
    Note,
    Payment,
    PayrollGender,
    Policy,
    Topup,
    new_id,
    utcnow,
)
from .validation import (
    ValidationContext,
    ValidationRuleSet,
    normalise_bank_detail,
    normalise_nino,
    normalise_trn,
    validate,
)

# Policies whose journeys collect (and verify) a mobile number.
MOBILE_POLICIES = frozenset(
    {Policy.EARLY_CAREER_PAYMENTS, Policy.LEVELLING_UP_PREMIUM_PAYMENTS}
)


class Claim(BaseModel):
    """One claimant's request for payment under a single policy."""

    model_config = ConfigDict(validate_assignment=True)

    ADDRESS_ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        "address_line_1",
        "address_line_2",
        "address_line_3",
        "address_line_4",
        "postcode",
    )
    EDITABLE_ATTRIBUTES: ClassVar[frozenset[str]] = frozenset(
        {
            "first_name",
            "middle_name",
            "surname",
            "address_line_1",
            "address_line_2",
            "address_line_3",
            "address_line_4",
            "postcode",
            "date_of_birth",
            "payroll_gender",
            "teacher_reference_number",
            "national_insurance_number",
            "email_address",
            "email_verified",
            "provide_mobile_number",
            "mobile_number",
            "mobile_verified",
            "has_student_loan",
            "student_loan_plan",
            "bank_or_building_society",
            "bank_sort_code",
            "bank_account_number",
            "banking_name",
            "building_society_roll_number",
            "logged_in_with_tid",
            "teacher_id_user_info",
            "details_check",
            "email_address_check",
            "mobile_check",
            "qualifications_details_check",
            "hmrc_bank_validation_succeeded",
            "submitted_using_slc_data",
        }
    )
    AMENDABLE_ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        "teacher_reference_number",
        "national_insurance_number",
        "date_of_birth",
        "student_loan_plan",
        "bank_sort_code",
        "bank_account_number",
        "building_society_roll_number",
    )
    # Changing the key invalidates the listed answers. "eligibility.x" targets
    # the eligibility record.
    ATTRIBUTE_DEPENDENCIES: ClassVar[dict[str, tuple[str, ...]]] = {
        "national_insurance_number": (
            "has_student_loan",
            "student_loan_plan",
            "eligibility.student_loan_repayment_amount",
        ),
        "date_of_birth": (
            "has_student_loan",
            "student_loan_plan",
            "eligibility.student_loan_repayment_amount",
        ),
        "bank_or_building_society": (
            "banking_name",
            "bank_account_number",
            "bank_sort_code",
            "building_society_roll_number",
        ),
        "provide_mobile_number": ("mobile_number",),
        "mobile_number": ("mobile_verified",),
        "email_address": ("email_verified",),
    }

    id: str = Field(default_factory=new_id)
    created_at: datetime = Field(default_factory=utcnow)
    academic_year: AcademicYear = Field(default_factory=lambda: AcademicYear.current())
    eligibility: Eligibility

    # Identity and contact
    first_name: str | None = None
    middle_name: str | None = None
    surname: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    address_line_3: str | None = None
    address_line_4: str | None = None
    postcode: str | None = None
    date_of_birth: date | None = None
    payroll_gender: PayrollGender | None = None
    teacher_reference_number: str | None = None
    national_insurance_number: str | None = None
    email_address: str | None = None
    email_verified: bool | None = None
    provide_mobile_number: bool | None = None
    mobile_number: str | None = None
    mobile_verified: bool | None = None
    mobile_check: MobileCheck | None = None
    logged_in_with_tid: bool = False
    teacher_id_user_info: dict[str, Any] = Field(default_factory=dict)
    govuk_verify_fields: list[str] = Field(default_factory=list)
    details_check: bool | None = None
    email_address_check: bool | None = None
    qualifications_details_check: bool | None = None

    # Student loan
    has_student_loan: bool | None = None
    student_loan_plan: str | None = None
    submitted_using_slc_data: bool | None = None

    # Payment details
    bank_or_building_society: BankOrBuildingSociety | None = None
    banking_name: str | None = None
    bank_sort_code: str | None = None
    bank_account_number: str | None = None
    building_society_roll_number: str | None = None
    hmrc_bank_validation_succeeded: bool = False

    # Workflow state
    submitted_at: datetime | None = None
    reference: str | None = None
    held: bool = False
    qa_required: bool = False
    qa_completed_at: datetime | None = None
    assigned_to: str | None = None
    personal_data_removed_at: datetime | None = None

    decisions: DecisionLedger = Field(default_factory=DecisionLedger)
    notes: list[Note] = Field(default_factory=list)
    amendments: list[Amendment] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    topups: list[Topup] = Field(default_factory=list)

    _changed: set[str] = PrivateAttr(default_factory=set)

    # ------------------------------------------------------------------
    # Attribute writes
    # ------------------------------------------------------------------

    @property
    def policy(self) -> Policy:
        return self.eligibility.policy

    @property
    def changed_attributes(self) -> set[str]:
        return set(self._changed)

    def assign_attributes(self, **attributes: Any) -> None:
        """
        Write editable attributes, recording which ones changed.

        Nested answers for the eligibility record are passed as
        ``eligibility_attributes``. Values are coerced to the field's type,
        so ISO date strings and enum values are accepted.

        Raises:
            UnknownAttribute: if an attribute is not editable
            pydantic.ValidationError: if a value cannot be coerced
        """
        eligibility_attributes = attributes.pop("eligibility_attributes", None)
        for name, value in attributes.items():
            if name not in self.EDITABLE_ATTRIBUTES:
                raise UnknownAttribute(name, type(self).__name__)
            previous = getattr(self, name)
            setattr(self, name, value)
            if getattr(self, name) != previous:
                self._changed.add(name)
        if eligibility_attributes:
            self.eligibility.assign_attributes(**eligibility_attributes)

    def reset_dependent_answers(self) -> None:
        """Clear answers that depended on an attribute changed since the last save."""
        for name, dependents in self.ATTRIBUTE_DEPENDENCIES.items():
            if name not in self._changed:
                continue
            for dependent in dependents:
                if dependent.startswith("eligibility."):
                    attribute = dependent.split(".", 1)[1]
                    if self.eligibility.has_attribute(attribute):
                        setattr(self.eligibility, attribute, None)
                else:
                    setattr(self, dependent, None)

    def before_save(self) -> None:
        """Normalise changed identifiers and reset change tracking."""
        changed = self._changed
        if "teacher_reference_number" in changed and self.teacher_reference_number:
            self.teacher_reference_number = normalise_trn(self.teacher_reference_number)
        if "national_insurance_number" in changed and self.national_insurance_number:
            self.national_insurance_number = normalise_nino(self.national_insurance_number)
        if "bank_account_number" in changed and self.bank_account_number:
            self.bank_account_number = normalise_bank_detail(self.bank_account_number)
        if "bank_sort_code" in changed and self.bank_sort_code:
            self.bank_sort_code = normalise_bank_detail(self.bank_sort_code)
        if "first_name" in changed and self.first_name:
            self.first_name = self.first_name.strip()
        if "surname" in changed and self.surname:
            self.surname = self.surname.strip()
        self._changed.clear()
        self.eligibility.clear_changes()

    def restore(self, snapshot: "Claim") -> None:
        """Return every field to the values held by ``snapshot``, leaving it reusable."""
        snapshot = snapshot.model_copy(deep=True)
        for name in type(self).model_fields:
            setattr(self, name, getattr(snapshot, name))
        self._changed = set(snapshot._changed)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_for(
        self,
        context: ValidationContext | None = None,
        rules: ValidationRuleSet | None = None,
    ) -> list[FieldError]:
        return validate(self, context, rules)

    def valid(
        self,
        context: ValidationContext | None = None,
        rules: ValidationRuleSet | None = None,
    ) -> bool:
        return not self.validate_for(context, rules)

    def _no_errors_on(self, context: ValidationContext, *fields: str) -> bool:
        return not any(error.field in fields for error in self.validate_for(context))

    def has_valid_name(self) -> bool:
        return self._no_errors_on(ValidationContext.PERSONAL_DETAILS_NAME, "first_name", "surname")

    def has_valid_date_of_birth(self) -> bool:
        return self._no_errors_on(ValidationContext.PERSONAL_DETAILS_DOB, "date_of_birth")

    def has_valid_nino(self) -> bool:
        return self._no_errors_on(ValidationContext.PERSONAL_DETAILS_NINO, "national_insurance_number")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def submitted(self) -> bool:
        return self.submitted_at is not None

    def submittable_email_details(self) -> bool:
        return bool(self.email_address) and self.email_verified is True

    def using_mobile_number_from_tid(self) -> bool:
        return (
            self.logged_in_with_tid
            and self.mobile_check == MobileCheck.USE
            and bool(self.provide_mobile_number)
            and bool(self.mobile_number)
        )

    def submittable_mobile_details(self) -> bool:
        if self.policy not in MOBILE_POLICIES:
            return True
        if self.using_mobile_number_from_tid():
            return True
        if self.provide_mobile_number and self.mobile_number and self.mobile_verified is True:
            return True
        if (
            self.provide_mobile_number is False
            and self.mobile_number is None
            and self.mobile_verified is False
        ):
            return True
        if self.provide_mobile_number is False and self.mobile_verified is None:
            return True
        return False

    def submittable(self, rules: ValidationRuleSet | None = None) -> bool:
        return (
            self.valid(ValidationContext.SUBMIT, rules)
            and not self.submitted
            and self.submittable_email_details()
            and self.submittable_mobile_details()
        )

    def submit(
        self,
        reference: str,
        submitted_at: datetime | None = None,
        rules: ValidationRuleSet | None = None,
    ) -> None:
        """
        Mark the claim submitted.

        Sets the submission time and reference and runs the eligibility
        record's submit hook. Either all three happen or none do.

        Raises:
            NotSubmittable: if the claim is not submittable
        """
        if not self.submittable(rules):
            raise NotSubmittable("Claim is not submittable", claim_id=self.id)

        snapshot = self.model_copy(deep=True)
        try:
            self.submitted_at = submitted_at or utcnow()
            self.reference = reference
            self.eligibility.submit()
        except Exception:
            self.restore(snapshot)
            raise

    # ------------------------------------------------------------------
    # Holds
    # ------------------------------------------------------------------

    def holdable(self) -> bool:
        return not self.decision_made()

    def hold(self, reason: str, user: str | None, at: datetime | None = None) -> bool:
        """Put the claim on hold. Returns False when nothing changed."""
        if self.held or not self.holdable():
            return False
        self.held = True
        self.notes.append(
            Note(body=f"Claim put on hold: {reason}", created_by=user, created_at=at or utcnow())
        )
        return True

    def unhold(self, user: str | None, at: datetime | None = None) -> bool:
        """Take the claim off hold. Returns False when nothing changed."""
        if not self.held:
            return False
        self.held = False
        self.notes.append(
            Note(body="Claim hold removed", created_by=user, created_at=at or utcnow())
        )
        return True

    # ------------------------------------------------------------------
    # Decisions and QA
    # ------------------------------------------------------------------

    @property
    def latest_decision(self) -> Decision | None:
        return self.decisions.latest()

    @property
    def previous_decision(self) -> Decision | None:
        return self.decisions.previous()

    def decision_made(self) -> bool:
        return self.latest_decision is not None

    def payroll_gender_missing(self) -> bool:
        return self.payroll_gender not in (PayrollGender.MALE, PayrollGender.FEMALE)

    def approvable(self, payment_prevented: bool = False) -> bool:
        """
        Whether the claim can be approved now.

        ``payment_prevented`` is the answer from the payment conflict check,
        which needs the other claims in the store.
        """
        return (
            self.submitted
            and not self.held
            and not self.payroll_gender_missing()
            and (not self.decision_made() or self.awaiting_qa())
            and not payment_prevented
        )

    def rejectable(self) -> bool:
        return not self.held

    def qa_completed(self) -> bool:
        return self.qa_completed_at is not None

    def awaiting_qa(self) -> bool:
        return self.qa_required and not self.qa_completed()

    def flaggable_for_qa(self, below_qa_threshold: bool) -> bool:
        decision = self.latest_decision
        return (
            decision is not None
            and decision.approved
            and below_qa_threshold
            and not self.awaiting_qa()
            and not self.qa_completed()
        )

    def approved(self) -> bool:
        decision = self.latest_decision
        return decision is not None and decision.approved

    def rejected(self) -> bool:
        decision = self.latest_decision
        return decision is not None and decision.rejected

    def decision_deadline_date(self, deadline: timedelta) -> date | None:
        if self.submitted_at is None:
            return None
        return (self.submitted_at + deadline).date()

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def payrolled(self) -> bool:
        return bool(self.payments)

    def all_payrolled(self) -> bool:
        if self.policy == Policy.LEVELLING_UP_PREMIUM_PAYMENTS:
            return self.payrolled() and all(topup.payrolled for topup in self.topups)
        return self.payrolled()

    def topupable(self) -> bool:
        return (
            self.policy == Policy.LEVELLING_UP_PREMIUM_PAYMENTS
            and self.submitted
            and self.all_payrolled()
        )

    def payrollable(self) -> bool:
        """Approved, cleared by QA and not yet paid."""
        return self.approved() and not self.awaiting_qa() and not self.payrolled()

    @property
    def award_amount(self) -> Decimal | None:
        return self.eligibility.award_amount

    def award_amount_with_topups(self) -> Decimal:
        base = self.award_amount or Decimal("0")
        return base + sum((topup.award_amount for topup in self.topups), Decimal("0"))

    def must_manually_validate_bank_details(self) -> bool:
        return not self.hmrc_bank_validation_succeeded

    def submitted_without_slc_data(self) -> bool:
        return self.submitted_using_slc_data is False

    # ------------------------------------------------------------------
    # Amendments and personal data
    # ------------------------------------------------------------------

    def personal_data_removed(self) -> bool:
        return self.personal_data_removed_at is not None

    def amendable(self) -> bool:
        return self.submitted and not self.payrolled() and not self.personal_data_removed()

    def decision_undoable(self) -> bool:
        return (
            self.decision_made()
            and not self.payrolled()
            and not self.personal_data_removed()
        )

    @property
    def status(self) -> ClaimStatus:
        """Lifecycle state derived from the predicates."""
        if self.personal_data_removed():
            return ClaimStatus.PERSONAL_DATA_REMOVED
        if self.payrolled():
            return ClaimStatus.PAYROLLED
        if not self.submitted:
            return ClaimStatus.DRAFT
        if self.held:
            return ClaimStatus.HELD
        decision = self.latest_decision
        if decision is None:
            return ClaimStatus.SUBMITTED
        if decision.rejected:
            return ClaimStatus.REJECTED
        if self.awaiting_qa():
            return ClaimStatus.AWAITING_QA
        if self.qa_completed():
            return ClaimStatus.QA_COMPLETE
        return ClaimStatus.APPROVED

    # ------------------------------------------------------------------
    # Presentation helpers and identity provider comparisons
    # ------------------------------------------------------------------

    @property
    def full_name(self) -> str:
        parts = (self.first_name, self.middle_name, self.surname)
        return " ".join(part for part in parts if part)

    def address(self, separator: str = ", ") -> str:
        values = (getattr(self, attr) for attr in self.ADDRESS_ATTRIBUTES)
        return separator.join(value for value in values if value)

    def important_notes(self) -> list[Note]:
        return [note for note in self.notes if note.important]

    def address_from_govuk_verify(self) -> bool:
        return bool(set(self.ADDRESS_ATTRIBUTES) & set(self.govuk_verify_fields))

    def payroll_gender_verified(self) -> bool:
        return "payroll_gender" in self.govuk_verify_fields

    def name_same_as_tid(self) -> bool:
        info = self.teacher_id_user_info
        return info.get("given_name") == self.first_name and info.get("family_name") == self.surname

    def dob_same_as_tid(self) -> bool:
        dob = self.date_of_birth.isoformat() if self.date_of_birth else None
        return self.teacher_id_user_info.get("birthdate") == dob

    def nino_same_as_tid(self) -> bool:
        return self.teacher_id_user_info.get("ni_number") == self.national_insurance_number

    def trn_same_as_tid(self) -> bool:
        return self.teacher_id_user_info.get("trn") == self.teacher_reference_number

    def all_personal_details_same_as_tid(self) -> bool:
        return self.name_same_as_tid() and self.dob_same_as_tid() and self.nino_same_as_tid()

    def has_all_valid_personal_details(self) -> bool:
        return self.valid(ValidationContext.PERSONAL_DETAILS) and self.all_personal_details_same_as_tid()
