"""
Tests for context-keyed claim validation.
"""

from datetime import date

import pytest

from payment_claims.core.models import FieldError, Policy
from payment_claims.core.validation import (
    ValidationContext,
    ValidationRuleSet,
    build_claim_rules,
    normalise_nino,
    validate,
)


def fields(errors: list[FieldError]) -> set[str]:
    return {error.field for error in errors}


class TestSubmitContext:
    """Tests for the rules applied on submission."""

    def test_complete_claim_has_no_errors(self, make_claim) -> None:
        for policy in Policy:
            assert validate(make_claim(policy), ValidationContext.SUBMIT) == []

    def test_missing_answers(self, make_claim) -> None:
        claim = make_claim(
            payroll_gender=None,
            first_name=" ",
            email_address=None,
            bank_sort_code=None,
        )
        errors = validate(claim, ValidationContext.SUBMIT)
        assert {"payroll_gender", "first_name", "email_address", "bank_sort_code"} <= fields(errors)

    def test_ineligible_claim(self, make_claim) -> None:
        claim = make_claim(eligibility_attributes={"current_school_eligible": False})
        errors = validate(claim, ValidationContext.SUBMIT)
        assert FieldError(field="base", message="You’re not eligible for this payment") in errors

    def test_eligibility_only_checked_on_submit(self, make_claim) -> None:
        claim = make_claim(eligibility_attributes={"current_school_eligible": False})
        assert validate(claim, ValidationContext.PERSONAL_DETAILS) == []

    def test_address_line_1_required_for_student_loans_only(self, make_claim) -> None:
        ecp = make_claim(address_line_1=None)
        assert "address_line_1" not in fields(validate(ecp, ValidationContext.SUBMIT))

        student_loans = make_claim(Policy.STUDENT_LOANS, address_line_1=None)
        assert "address_line_1" in fields(validate(student_loans, ValidationContext.SUBMIT))

    def test_provide_mobile_required_for_additional_payments(self, make_claim) -> None:
        claim = make_claim(provide_mobile_number=None)
        assert "provide_mobile_number" in fields(validate(claim, ValidationContext.SUBMIT))

        claim = make_claim(provide_mobile_number=True, mobile_number=None)
        assert "mobile_number" in fields(validate(claim, ValidationContext.SUBMIT))

    def test_building_society_needs_roll_number(self, make_claim) -> None:
        claim = make_claim(bank_or_building_society="building_society")
        assert "building_society_roll_number" in fields(validate(claim, ValidationContext.SUBMIT))

        claim = make_claim(
            bank_or_building_society="building_society",
            building_society_roll_number="ROLL/123-4",
        )
        assert validate(claim, ValidationContext.SUBMIT) == []


class TestFormatRules:
    """Tests for rules that run in every context."""

    def test_postcode_format(self, make_claim) -> None:
        errors = validate(make_claim(postcode="NOT A POSTCODE"))
        assert FieldError(field="postcode", message="Enter a postcode in the correct format") in errors

    def test_trn_length(self, make_claim) -> None:
        assert "teacher_reference_number" in fields(validate(make_claim(teacher_reference_number="12345")))
        assert validate(make_claim(teacher_reference_number="123 4567")) == []

    def test_nino_format(self, make_claim) -> None:
        assert "national_insurance_number" in fields(validate(make_claim(national_insurance_number="QQ12345")))
        assert validate(make_claim(national_insurance_number="qq 12 34 56 c")) == []

    def test_bank_details_format(self, make_claim) -> None:
        errors = validate(make_claim(bank_sort_code="12-34-5", bank_account_number="1234567"))
        assert {"bank_sort_code", "bank_account_number"} <= fields(errors)

    @pytest.mark.parametrize(
        "email",
        [
            "not-an-email",
            "jo@example..com",
            "jo bloggs@example.com",
            "jo@bloggs@example.com",
            "@example.com",
            "jo.@example.com",
        ],
    )
    def test_invalid_email_addresses(self, make_claim, email) -> None:
        errors = validate(make_claim(email_address=email))
        assert errors == [
            FieldError(
                field="email_address",
                message="Enter an email address in the correct format, like name@example.com",
            )
        ]

    def test_valid_email_addresses(self, make_claim) -> None:
        for email in ("jo.bloggs@example.com", "jo+claims@school.sch.uk"):
            assert validate(make_claim(email_address=email)) == []

    def test_mobile_format_only_when_provided(self, make_claim) -> None:
        assert "mobile_number" in fields(
            validate(make_claim(provide_mobile_number=True, mobile_number="12ab"))
        )
        assert validate(make_claim(provide_mobile_number=False, mobile_number="12ab")) == []

    def test_student_loan_plan_option(self, make_claim) -> None:
        assert "student_loan_plan" in fields(validate(make_claim(student_loan_plan="plan_9")))


class TestStepContexts:
    """Tests for journey-step contexts."""

    def test_name_special_characters(self, make_claim) -> None:
        errors = validate(make_claim(surname="Bl@ggs"), ValidationContext.PERSONAL_DETAILS_NAME)
        assert FieldError(field="surname", message="Last name cannot contain special characters") in errors

    def test_address_step(self, make_claim) -> None:
        """Test the address page asks for every line on additional payments claims."""
        errors = validate(make_claim(), ValidationContext.ADDRESS)
        assert fields(errors) == {"address_line_2", "address_line_4"}

    def test_date_of_birth(self, make_claim) -> None:
        errors = validate(make_claim(date_of_birth=None), ValidationContext.PERSONAL_DETAILS_DOB)
        assert errors == [FieldError(field="date_of_birth", message="Enter your date of birth")]

    def test_date_of_birth_against_injected_date(self, make_claim) -> None:
        rules = build_claim_rules(today=lambda: date(2024, 1, 15))
        claim = make_claim(date_of_birth=date(2024, 6, 1))

        errors = validate(claim, ValidationContext.PERSONAL_DETAILS_DOB, rules)
        assert errors == [
            FieldError(field="date_of_birth", message="Date of birth must be in the past")
        ]
        assert validate(claim, ValidationContext.PERSONAL_DETAILS_DOB) == []

    def test_check_answers_inclusion(self, make_claim) -> None:
        claim = make_claim()
        assert "details_check" in fields(validate(claim, ValidationContext.TEACHER_DETAIL))
        claim.details_check = False
        assert validate(claim, ValidationContext.TEACHER_DETAIL) == []

    def test_student_loan_step(self, make_claim) -> None:
        errors = validate(
            make_claim(has_student_loan=None, student_loan_plan=None),
            ValidationContext.STUDENT_LOAN,
        )
        assert fields(errors) == {"has_student_loan", "student_loan_plan"}

    def test_amendment_context(self, make_claim) -> None:
        errors = validate(make_claim(student_loan_plan=None), ValidationContext.AMENDMENT)
        assert fields(errors) == {"student_loan_plan"}


class TestValidationRuleSet:
    """Tests for building rule sets."""

    def test_conditional_presence(self, make_claim) -> None:
        rules = ValidationRuleSet()
        rules.presence(
            "middle_name",
            "Enter your middle name",
            (ValidationContext.PERSONAL_DETAILS,),
            condition=lambda claim: claim.policy == Policy.STUDENT_LOANS,
        )

        assert rules.validate(make_claim(), ValidationContext.PERSONAL_DETAILS) == []
        assert rules.validate(make_claim(Policy.STUDENT_LOANS), ValidationContext.PERSONAL_DETAILS) == [
            FieldError(field="middle_name", message="Enter your middle name")
        ]
        assert rules.validate(make_claim(Policy.STUDENT_LOANS), ValidationContext.SUBMIT) == []

    def test_normalise_nino(self) -> None:
        assert normalise_nino(" qq 12 34 56 c ") == "QQ123456C"
