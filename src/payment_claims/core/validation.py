"""
Context-keyed validation rules for claims.

Each rule applies to a set of validation contexts (the journey page or
operation being validated), or to every context when none are given.
``validate(claim, context)`` is a pure function returning the field errors.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from email_validator import EmailNotValidError, validate_email
from pydantic import ValidationError

from .models import BankOrBuildingSociety, FieldError, MobileCheck, Policy

if TYPE_CHECKING:
    from .claim import Claim


class ValidationContext(str, Enum):
    """Named validation contexts, one per journey step plus submit/amendment."""

    SUBMIT = "submit"
    AMENDMENT = "amendment"
    GENDER = "gender"
    PAYROLL_GENDER_TASK = "payroll-gender-task"
    PERSONAL_DETAILS = "personal-details"
    PERSONAL_DETAILS_NAME = "personal-details-name"
    PERSONAL_DETAILS_DOB = "personal-details-dob"
    PERSONAL_DETAILS_NINO = "personal-details-nino"
    TEACHER_DETAIL = "teacher-detail"
    QUALIFICATION_DETAILS = "qualification-details"
    SELECT_EMAIL = "select-email"
    SELECT_MOBILE = "select-mobile"
    ADDRESS = "address"
    TEACHER_REFERENCE_NUMBER = "teacher-reference-number"
    STUDENT_LOAN = "student-loan"
    EMAIL_ADDRESS = "email-address"
    PROVIDE_MOBILE_NUMBER = "provide-mobile-number"
    MOBILE_NUMBER = "mobile-number"
    BANK_OR_BUILDING_SOCIETY = "bank-or-building-society"
    PERSONAL_BANK_ACCOUNT = "personal-bank-account"
    BUILDING_SOCIETY_ACCOUNT = "building-society-account"


C = ValidationContext

TRN_LENGTH = 7
STUDENT_LOAN_PLAN_OPTIONS = ("plan_1", "plan_2", "plan_1_and_2", "plan_4", "not_applicable")

NAME_REGEX_FILTER = re.compile(r"\A[^\"=$%#&*+/\\()@?!<>0-9]*\Z")
ADDRESS_REGEX_FILTER = re.compile(r"\A[^'\"=$%#*+/\\()@?!<>]*\Z")
MOBILE_REGEX = re.compile(r"\A(\+44\s?)?(?:\d\s?){10,11}\Z")
NINO_REGEX = re.compile(r"\A[A-Z]{2}[0-9]{6}[A-D]\Z")
POSTCODE_REGEX = re.compile(
    r"\A(GIR ?0AA|[A-PR-UWYZ]([0-9]{1,2}|[A-HK-Y][0-9]{1,2}|[0-9][A-HJKS-UW]|"
    r"[A-HK-Y][0-9][ABEHMNPRV-Y]) ?[0-9][ABD-HJLNP-UW-Z]{2})\Z",
    re.IGNORECASE,
)
ROLL_NUMBER_REGEX = re.compile(r"\A[a-z0-9\-\s./]{1,18}\Z", re.IGNORECASE)


def normalise_trn(value: str) -> str:
    return re.sub(r"\D", "", value)


def normalise_nino(value: str) -> str:
    return re.sub(r"\s", "", value).upper()


def normalise_bank_detail(value: str) -> str:
    return re.sub(r"[\s-]", "", value)


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def field_errors_from(error: ValidationError) -> list[FieldError]:
    """Turn a pydantic type error on an attribute write into field errors."""
    return [
        FieldError(field=".".join(str(part) for part in item["loc"]), message=item["msg"])
        for item in error.errors()
    ]


RuleCheck = Callable[["Claim"], list[FieldError]]


@dataclass
class ValidationRule:
    """Definition of a validation rule."""

    rule_id: str
    check: RuleCheck
    contexts: frozenset[ValidationContext] | None = None
    condition: Callable[["Claim"], bool] | None = None

    def applies_to(self, context: ValidationContext | None, claim: "Claim") -> bool:
        if self.contexts is not None and context not in self.contexts:
            return False
        return self.condition is None or self.condition(claim)


@dataclass
class ValidationRuleSet:
    """Ordered collection of validation rules."""

    rules: list[ValidationRule] = field(default_factory=list)

    def add(
        self,
        rule_id: str,
        check: RuleCheck,
        contexts: tuple[ValidationContext, ...] | None = None,
        condition: Callable[["Claim"], bool] | None = None,
    ) -> None:
        self.rules.append(
            ValidationRule(
                rule_id=rule_id,
                check=check,
                contexts=frozenset(contexts) if contexts is not None else None,
                condition=condition,
            )
        )

    def presence(
        self,
        attribute: str,
        message: str,
        contexts: tuple[ValidationContext, ...],
        condition: Callable[["Claim"], bool] | None = None,
    ) -> None:
        def check(claim: "Claim") -> list[FieldError]:
            if _present(getattr(claim, attribute)):
                return []
            return [FieldError(field=attribute, message=message)]

        self.add(f"{attribute}-presence", check, contexts, condition)

    def inclusion(
        self,
        attribute: str,
        allowed: tuple[object, ...],
        message: str,
        contexts: tuple[ValidationContext, ...],
        condition: Callable[["Claim"], bool] | None = None,
    ) -> None:
        def check(claim: "Claim") -> list[FieldError]:
            if getattr(claim, attribute) in allowed:
                return []
            return [FieldError(field=attribute, message=message)]

        self.add(f"{attribute}-inclusion", check, contexts, condition)

    def validate(
        self, claim: "Claim", context: ValidationContext | None = None
    ) -> list[FieldError]:
        errors: list[FieldError] = []
        for rule in self.rules:
            if rule.applies_to(context, claim):
                errors.extend(rule.check(claim))
        return errors


def _ecp_or_lupp(claim: "Claim") -> bool:
    return claim.policy in (
        Policy.EARLY_CAREER_PAYMENTS,
        Policy.LEVELLING_UP_PREMIUM_PAYMENTS,
    )


def _name_rules(attribute: str, label: str, max_length: int) -> RuleCheck:
    def check(claim: "Claim") -> list[FieldError]:
        value = getattr(claim, attribute)
        if not _present(value):
            return []
        errors = []
        if len(value) > max_length:
            errors.append(
                FieldError(field=attribute, message=f"{label} must be {max_length} characters or less")
            )
        if not NAME_REGEX_FILTER.match(value):
            errors.append(
                FieldError(field=attribute, message=f"{label} cannot contain special characters")
            )
        return errors

    return check


def _address_length(attribute: str) -> RuleCheck:
    def check(claim: "Claim") -> list[FieldError]:
        value = getattr(claim, attribute)
        if value and len(value) > 100:
            return [FieldError(field=attribute, message="Address lines must be 100 characters or less")]
        return []

    return check


def _address_format(attribute: str) -> RuleCheck:
    def check(claim: "Claim") -> list[FieldError]:
        value = getattr(claim, attribute)
        if value and not ADDRESS_REGEX_FILTER.match(value):
            return [FieldError(field=attribute, message="Address lines cannot contain special characters")]
        return []

    return check


def _postcode_format(claim: "Claim") -> list[FieldError]:
    if not _present(claim.postcode):
        return []
    errors = []
    if len(claim.postcode) > 11:
        errors.append(FieldError(field="postcode", message="Postcode must be 11 characters or less"))
    if not POSTCODE_REGEX.match(claim.postcode.strip()):
        errors.append(FieldError(field="postcode", message="Enter a postcode in the correct format"))
    return errors


def _date_of_birth(today: Callable[[], date]) -> RuleCheck:
    def check(claim: "Claim") -> list[FieldError]:
        dob = claim.date_of_birth
        if dob is None:
            return [FieldError(field="date_of_birth", message="Enter your date of birth")]
        if dob > today():
            return [FieldError(field="date_of_birth", message="Date of birth must be in the past")]
        if dob.year <= 1900:
            return [FieldError(field="date_of_birth", message="Year must be after 1900")]
        return []

    return check


def _trn_format(claim: "Claim") -> list[FieldError]:
    trn = claim.teacher_reference_number
    if _present(trn) and len(normalise_trn(trn)) != TRN_LENGTH:
        return [
            FieldError(
                field="teacher_reference_number",
                message="Teacher reference number must be 7 digits",
            )
        ]
    return []


def _nino_format(claim: "Claim") -> list[FieldError]:
    nino = claim.national_insurance_number
    if _present(nino) and not NINO_REGEX.match(normalise_nino(nino)):
        return [
            FieldError(
                field="national_insurance_number",
                message="Enter a National Insurance number in the correct format",
            )
        ]
    return []


def _student_loan_plan_option(claim: "Claim") -> list[FieldError]:
    plan = claim.student_loan_plan
    if plan is not None and plan not in STUDENT_LOAN_PLAN_OPTIONS:
        return [FieldError(field="student_loan_plan", message="Enter a valid student loan plan")]
    return []


def _email_format(claim: "Claim") -> list[FieldError]:
    email = claim.email_address
    if not _present(email):
        return []
    if len(email) > 256:
        return [FieldError(field="email_address", message="Email address must be 256 characters or less")]
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return [
            FieldError(
                field="email_address",
                message="Enter an email address in the correct format, like name@example.com",
            )
        ]
    return []


def _mobile_format(claim: "Claim") -> list[FieldError]:
    if claim.provide_mobile_number is True and _present(claim.mobile_number):
        if not MOBILE_REGEX.match(claim.mobile_number):
            return [
                FieldError(
                    field="mobile_number",
                    message="Enter a valid mobile number, like 07700 900 982 or +44 7700 900 982",
                )
            ]
    return []


def _bank_account_number(claim: "Claim") -> list[FieldError]:
    number = claim.bank_account_number
    if _present(number) and not re.fullmatch(r"\d{8}", normalise_bank_detail(number)):
        return [FieldError(field="bank_account_number", message="Account number must be 8 digits")]
    return []


def _bank_sort_code(claim: "Claim") -> list[FieldError]:
    sort_code = claim.bank_sort_code
    if _present(sort_code) and not re.fullmatch(r"\d{6}", normalise_bank_detail(sort_code)):
        return [FieldError(field="bank_sort_code", message="Sort code must be 6 digits")]
    return []


def _roll_number(claim: "Claim") -> list[FieldError]:
    roll = claim.building_society_roll_number
    if not _present(roll):
        return []
    if len(roll) > 18:
        return [
            FieldError(
                field="building_society_roll_number",
                message="Building society roll number must be between 1 and 18 characters",
            )
        ]
    if not ROLL_NUMBER_REGEX.match(roll):
        return [
            FieldError(
                field="building_society_roll_number",
                message=(
                    "Building society roll number must only include letters a to z, numbers, "
                    "hyphens, spaces, forward slashes and full stops"
                ),
            )
        ]
    return []


def _must_not_be_ineligible(claim: "Claim") -> list[FieldError]:
    if claim.eligibility.ineligible():
        return [FieldError(field="base", message="You’re not eligible for this payment")]
    return []


def build_claim_rules(today: Callable[[], date] = date.today) -> ValidationRuleSet:
    """Build the rule set applied to every claim, dating checks against ``today``."""
    rules = ValidationRuleSet()

    rules.presence(
        "payroll_gender",
        "Select the gender recorded on your school’s payroll system or select whether you do not know",
        (C.GENDER, C.SUBMIT, C.PAYROLL_GENDER_TASK),
    )

    name_contexts = (C.PERSONAL_DETAILS_NAME, C.PERSONAL_DETAILS, C.SUBMIT)
    rules.presence("first_name", "Enter your first name", name_contexts)
    rules.add("first_name-format", _name_rules("first_name", "First name", 100), name_contexts)
    rules.add(
        "middle_name-format",
        _name_rules("middle_name", "Middle names", 61),
        (C.PERSONAL_DETAILS, C.SUBMIT),
    )
    rules.presence("surname", "Enter your last name", name_contexts)
    rules.add("surname-format", _name_rules("surname", "Last name", 100), name_contexts)

    rules.inclusion(
        "details_check",
        (True, False),
        "Select an option to whether the details are correct or not",
        (C.TEACHER_DETAIL,),
    )
    rules.inclusion(
        "qualifications_details_check",
        (True, False),
        "Select yes if your qualification details are correct",
        (C.QUALIFICATION_DETAILS,),
    )
    rules.inclusion(
        "email_address_check",
        (True, False),
        "Select an option to indicate whether the email is correct or not",
        (C.SELECT_EMAIL,),
    )
    rules.inclusion(
        "mobile_check",
        tuple(MobileCheck),
        "Select an option to indicate whether the mobile number is correct or not",
        (C.SELECT_MOBILE,),
    )

    rules.presence(
        "address_line_1", "Enter a house number or name", (C.ADDRESS,), condition=_ecp_or_lupp
    )
    rules.presence(
        "address_line_1",
        "Enter a building and street address",
        (C.ADDRESS, C.SUBMIT),
        condition=lambda claim: not _ecp_or_lupp(claim),
    )
    rules.presence(
        "address_line_2", "Enter a building and street address", (C.ADDRESS,), condition=_ecp_or_lupp
    )
    rules.presence("address_line_3", "Enter a town or city", (C.ADDRESS,))
    rules.presence("address_line_4", "Enter a county", (C.ADDRESS,))
    for attribute in ("address_line_1", "address_line_2", "address_line_3", "address_line_4"):
        rules.add(f"{attribute}-length", _address_length(attribute))
        rules.add(f"{attribute}-format", _address_format(attribute), (C.ADDRESS,))

    rules.presence("postcode", "Enter a real postcode", (C.ADDRESS, C.SUBMIT))
    rules.add("postcode-format", _postcode_format)

    rules.add(
        "date_of_birth",
        _date_of_birth(today),
        (C.PERSONAL_DETAILS_DOB, C.PERSONAL_DETAILS, C.SUBMIT, C.AMENDMENT),
    )

    rules.presence(
        "teacher_reference_number",
        "Enter your teacher reference number",
        (C.TEACHER_REFERENCE_NUMBER, C.SUBMIT, C.AMENDMENT),
    )
    rules.add("teacher_reference_number-format", _trn_format)

    rules.presence(
        "national_insurance_number",
        "Enter a National Insurance number in the correct format",
        (C.PERSONAL_DETAILS_NINO, C.PERSONAL_DETAILS, C.SUBMIT, C.AMENDMENT),
    )
    rules.add("national_insurance_number-format", _nino_format)

    rules.inclusion(
        "has_student_loan",
        (True, False),
        "Select yes if you have a student loan",
        (C.STUDENT_LOAN,),
    )
    rules.add("student_loan_plan-option", _student_loan_plan_option)
    rules.presence(
        "student_loan_plan",
        "Enter a valid student loan plan",
        (C.STUDENT_LOAN, C.AMENDMENT),
    )

    rules.presence("email_address", "Enter an email address", (C.EMAIL_ADDRESS, C.SUBMIT))
    rules.add("email_address-format", _email_format)

    rules.inclusion(
        "provide_mobile_number",
        (True, False),
        "Select yes if you would like to provide your mobile number",
        (C.PROVIDE_MOBILE_NUMBER, C.SUBMIT),
        condition=_ecp_or_lupp,
    )
    rules.presence(
        "mobile_number",
        "Enter a mobile number, like 07700 900 982 or +44 7700 900 982",
        (C.MOBILE_NUMBER, C.SUBMIT),
        condition=lambda claim: claim.provide_mobile_number is True and _ecp_or_lupp(claim),
    )
    rules.add("mobile_number-format", _mobile_format)

    bank_contexts = (C.PERSONAL_BANK_ACCOUNT, C.BUILDING_SOCIETY_ACCOUNT, C.SUBMIT, C.AMENDMENT)
    rules.presence(
        "bank_or_building_society",
        "Select if you want the money paid in to a personal bank account or building society",
        (C.BANK_OR_BUILDING_SOCIETY, C.SUBMIT),
    )
    rules.presence("banking_name", "Enter a name on the account", bank_contexts)
    rules.presence("bank_sort_code", "Enter a sort code", bank_contexts)
    rules.presence("bank_account_number", "Enter an account number", bank_contexts)
    rules.presence(
        "building_society_roll_number",
        "Enter a roll number",
        (C.BUILDING_SOCIETY_ACCOUNT, C.SUBMIT, C.AMENDMENT),
        condition=lambda claim: claim.bank_or_building_society
        == BankOrBuildingSociety.BUILDING_SOCIETY,
    )
    rules.add("bank_account_number-format", _bank_account_number)
    rules.add("bank_sort_code-format", _bank_sort_code)
    rules.add("building_society_roll_number-format", _roll_number)

    rules.add("eligibility", _must_not_be_ineligible, (C.SUBMIT,))

    return rules


_default_rules: ValidationRuleSet | None = None


def get_default_rules() -> ValidationRuleSet:
    """Get the shared claim rule set."""
    global _default_rules
    if _default_rules is None:
        _default_rules = build_claim_rules()
    return _default_rules


def rules_for_clock(clock: Callable[[], datetime]) -> ValidationRuleSet:
    """Rule set whose date checks follow an injected clock."""
    return build_claim_rules(today=lambda: clock().date())


def validate(
    claim: "Claim",
    context: ValidationContext | None = None,
    rules: ValidationRuleSet | None = None,
) -> list[FieldError]:
    """Validate a claim for a context. Context-free rules always run."""
    return (rules or get_default_rules()).validate(claim, context)
