"""
Admin Queue Summary Reporting Module.
Summarises the review workload held in the claim store.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..config import Settings, get_settings
from ..core.academic_year import AcademicYear
from ..core.models import ClaimStatus, utcnow
from ..storage.repository import ClaimRepository


class QueueSummary(BaseModel):
    """Counts of claims in each review queue."""

    generated_at: datetime = Field(default_factory=utcnow)
    academic_year: str
    awaiting_decision: int = 0
    approaching_decision_deadline: int = 0
    passed_decision_deadline: int = 0
    held: int = 0
    awaiting_qa: int = 0
    payrollable: int = 0
    unassigned: int = 0
    failed_bank_validation: int = 0
    by_status: dict[ClaimStatus, int] = Field(default_factory=dict)


class QueueSummaryBuilder:
    """Builds a QueueSummary from the claim store."""

    def __init__(self, repository: ClaimRepository, settings: Settings | None = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()

    def build(self) -> QueueSummary:
        settings = self.settings
        repo = self.repository
        with repo.transaction():
            submitted = repo.submitted()
            by_status: dict[ClaimStatus, int] = {}
            for claim in repo.all():
                by_status[claim.status] = by_status.get(claim.status, 0) + 1
            return QueueSummary(
                generated_at=repo.clock(),
                academic_year=str(AcademicYear.for_date(repo.clock().date())),
                awaiting_decision=len(repo.awaiting_decision()),
                approaching_decision_deadline=len(
                    repo.approaching_decision_deadline(
                        settings.decision_deadline, settings.decision_deadline_warning_point
                    )
                ),
                passed_decision_deadline=len(
                    repo.passed_decision_deadline(settings.decision_deadline)
                ),
                held=len(repo.held()),
                awaiting_qa=len(repo.awaiting_qa()),
                payrollable=len(repo.payrollable()),
                unassigned=sum(1 for claim in submitted if claim.assigned_to is None),
                failed_bank_validation=sum(
                    1 for claim in submitted if claim.must_manually_validate_bank_details()
                ),
                by_status=by_status,
            )


class QueueSummaryFormatter:
    """
    Formats queue summaries for various output formats.
    """

    LABELS = {
        "awaiting_decision": "Awaiting decision",
        "approaching_decision_deadline": "Approaching decision deadline",
        "passed_decision_deadline": "Passed decision deadline",
        "held": "On hold",
        "awaiting_qa": "Awaiting QA",
        "payrollable": "Ready for payroll",
        "unassigned": "Unassigned",
        "failed_bank_validation": "Bank details need manual checks",
    }

    def __init__(self, summary: QueueSummary) -> None:
        self.summary = summary

    def to_text(self) -> str:
        """
        Format summary as plain text report.

        Returns:
            Formatted text report
        """
        lines: list[str] = []

        lines.append("=" * 50)
        lines.append("CLAIMS QUEUE SUMMARY")
        lines.append("=" * 50)
        lines.append(f"Academic year: {self.summary.academic_year}")
        lines.append(f"Generated: {self.summary.generated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append("")

        for key, label in self.LABELS.items():
            lines.append(f"{label:<35}{getattr(self.summary, key):>8}")

        if self.summary.by_status:
            lines.append("")
            lines.append("-" * 50)
            lines.append("BY STATUS")
            lines.append("-" * 50)
            for status in ClaimStatus:
                if status in self.summary.by_status:
                    lines.append(f"{status.value:<35}{self.summary.by_status[status]:>8}")

        lines.append("=" * 50)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        data = self.summary.model_dump(mode="json")
        data["by_status"] = {
            status.value: count for status, count in self.summary.by_status.items()
        }
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
