from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class OutcomeStatus(str, Enum):
    RELAYED = "relayed"
    SKIPPED = "skipped"
    UNHANDLED = "unhandled"


@dataclass
class RelayOutcome:
    """What one webhook event did, step by step.

    Handlers append to `steps` as each external write completes, so a failure
    mid-pipeline still tells us which writes already happened.
    """

    event_type: str
    status: OutcomeStatus = OutcomeStatus.RELAYED
    reason: Optional[str] = None
    steps: list[str] = field(default_factory=list)
    customer_id: Optional[str] = None
    thread_id: Optional[str] = None

    def record(self, step: str) -> None:
        self.steps.append(step)

    def skip(self, reason: str) -> "RelayOutcome":
        self.status = OutcomeStatus.SKIPPED
        self.reason = reason
        return self

    @staticmethod
    def unhandled(event_type: str) -> "RelayOutcome":
        return RelayOutcome(event_type=event_type, status=OutcomeStatus.UNHANDLED, reason="no_handler")

    def as_context(self) -> dict:
        return {
            "event_type": self.event_type,
            "status": self.status.value,
            "reason": self.reason,
            "steps": list(self.steps),
            "customer_id": self.customer_id,
            "thread_id": self.thread_id,
        }
