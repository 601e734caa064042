"""Step outcomes for UI flows.

Every UI step of onboarding and of the wallet actions reports a
:class:`StepOutcome` instead of silently swallowing failures, and the
enclosing flow collects them in a :class:`FlowReport`.  That lets callers
(and tests) see exactly which optional steps were skipped and which
required steps failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from walletpilot.exceptions import NoRecognizerMatchedError


class StepStatus(str, Enum):
    """Result of a single UI step."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"  # optional step whose UI was absent
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """Outcome of one named step.

    Attributes:
        step: Step name, e.g. ``"confirm"``.
        status: Succeeded, skipped (optional and absent) or failed.
        reason: Why the step was skipped or failed.
        matched: Name of the recognizer that handled the step, if any.
        tried: Recognizer names attempted, in priority order.
    """

    step: str
    status: StepStatus
    reason: str = ""
    matched: str = ""
    tried: tuple[str, ...] = ()

    @classmethod
    def succeeded(cls, step: str, matched: str = "", tried: tuple[str, ...] = ()) -> "StepOutcome":
        return cls(step, StepStatus.SUCCEEDED, matched=matched, tried=tried)

    @classmethod
    def skipped(cls, step: str, reason: str, tried: tuple[str, ...] = ()) -> "StepOutcome":
        return cls(step, StepStatus.SKIPPED, reason=reason, tried=tried)

    @classmethod
    def failed(cls, step: str, reason: str, tried: tuple[str, ...] = ()) -> "StepOutcome":
        return cls(step, StepStatus.FAILED, reason=reason, tried=tried)

    @property
    def ok(self) -> bool:
        """True unless the step failed."""
        return self.status is not StepStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"step": self.step, "status": self.status.value}
        if self.reason:
            data["reason"] = self.reason
        if self.matched:
            data["matched"] = self.matched
        return data


@dataclass
class FlowReport:
    """Ordered collection of step outcomes for one flow invocation."""

    flow: str
    outcomes: list[StepOutcome] = field(default_factory=list)

    def add(self, outcome: StepOutcome) -> StepOutcome:
        """Record *outcome* and return it."""
        self.outcomes.append(outcome)
        return outcome

    def require(self, outcome: StepOutcome) -> StepOutcome:
        """Record *outcome*; raise if it failed.

        Raises:
            NoRecognizerMatchedError: When the step failed.
        """
        self.add(outcome)
        if not outcome.ok:
            raise NoRecognizerMatchedError(f"{self.flow}.{outcome.step}", list(outcome.tried))
        return outcome

    def status_of(self, step: str) -> StepStatus | None:
        """Status of the last outcome recorded for *step*, or ``None``."""
        for outcome in reversed(self.outcomes):
            if outcome.step == step:
                return outcome.status
        return None

    @property
    def succeeded(self) -> list[str]:
        return [o.step for o in self.outcomes if o.status is StepStatus.SUCCEEDED]

    @property
    def skipped(self) -> list[str]:
        return [o.step for o in self.outcomes if o.status is StepStatus.SKIPPED]

    @property
    def failed(self) -> list[str]:
        return [o.step for o in self.outcomes if o.status is StepStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_list(self) -> list[dict[str, Any]]:
        return [o.to_dict() for o in self.outcomes]
