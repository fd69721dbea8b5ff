from enum import StrEnum

from pydantic import BaseModel, Field


class SweepOutcome(StrEnum):
    confirmed = "confirmed"
    canceled = "canceled"
    pending = "pending"  # unconfirmed, deadline not reached yet
    failed = "failed"


class SweepResult(BaseModel):
    """Counters for one confirmation sweep run."""

    total: int = 0
    confirmed: int = 0
    canceled: int = 0
    pending: int = 0
    failed: int = 0
    count_pending_as_handled: bool = True

    @property
    def handled(self) -> int:
        handled = self.confirmed + self.canceled
        if self.count_pending_as_handled:
            handled += self.pending
        return handled

    def record(self, outcome: SweepOutcome) -> None:
        self.total += 1
        match outcome:
            case SweepOutcome.confirmed:
                self.confirmed += 1
            case SweepOutcome.canceled:
                self.canceled += 1
            case SweepOutcome.pending:
                self.pending += 1
            case SweepOutcome.failed:
                self.failed += 1


class CreationResult(BaseModel):
    """Counters for one order creation run."""

    attempted: int = 0
    created: int = 0
    failed: int = 0
    identifiers: list[str] = Field(default_factory=list)
