"""
Append-only decision ledger.

Decisions are never deleted or edited. Undoing a decision, or recording a
new decision over an active one, appends an undo marker that points at the
decision it retires. A claim therefore has at most one active decision while
keeping its full history.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .models import DecisionResult, new_id, utcnow

SUPERSEDED_REASON = "Superseded by a later decision"


class Decision(BaseModel):
    """Approval or rejection recorded against a claim."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    result: DecisionResult
    created_by: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def approved(self) -> bool:
        return self.result == DecisionResult.APPROVED

    @property
    def rejected(self) -> bool:
        return self.result == DecisionResult.REJECTED

    @property
    def automated(self) -> bool:
        return self.created_by is None


class DecisionUndo(BaseModel):
    """Marker retiring an earlier decision."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    decision_id: str
    created_by: str | None = None
    reason: str
    created_at: datetime = Field(default_factory=utcnow)


class DecisionLedger(BaseModel):
    """Per-claim decision history."""

    decisions: list[Decision] = Field(default_factory=list)
    undos: list[DecisionUndo] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.decisions)

    def undone_ids(self) -> set[str]:
        return {undo.decision_id for undo in self.undos}

    def is_undone(self, decision: Decision) -> bool:
        return decision.id in self.undone_ids()

    def active(self) -> list[Decision]:
        undone = self.undone_ids()
        return [d for d in self.decisions if d.id not in undone]

    def latest(self) -> Decision | None:
        """The active decision, if any."""
        active = self.active()
        return active[-1] if active else None

    def previous(self) -> Decision | None:
        """The decision recorded before the most recent one, undone or not."""
        if not self.decisions:
            return None
        return self.decisions[-2] if len(self.decisions) > 1 else self.decisions[0]

    def record(
        self,
        result: DecisionResult,
        created_by: str | None = None,
        notes: str | None = None,
        created_at: datetime | None = None,
    ) -> Decision:
        """Append a decision, retiring the currently active one."""
        created_at = created_at or utcnow()
        current = self.latest()
        if current is not None:
            self.undos.append(
                DecisionUndo(
                    decision_id=current.id,
                    created_by=created_by,
                    reason=SUPERSEDED_REASON,
                    created_at=created_at,
                )
            )
        decision = Decision(
            result=result, created_by=created_by, notes=notes, created_at=created_at
        )
        self.decisions.append(decision)
        return decision

    def undo(
        self,
        decision_id: str,
        created_by: str | None,
        reason: str,
        created_at: datetime | None = None,
    ) -> DecisionUndo:
        """Retire an active decision."""
        if decision_id not in {d.id for d in self.active()}:
            raise ValueError(f"Decision {decision_id} is not active")
        undo = DecisionUndo(
            decision_id=decision_id,
            created_by=created_by,
            reason=reason,
            created_at=created_at or utcnow(),
        )
        self.undos.append(undo)
        return undo
