# Overview: Step record for multi-step operations that commit each step separately.

"""
Multi-step operations (sale creation, sale deletion, debt payments) run as a
sequence of independent commits with no enclosing transaction. A Workflow
records what each step did so a partially applied operation can be
reconciled by hand. It never rolls anything back.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class WorkflowStep:
    name: str
    ok: bool
    error: str | None = None
    fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "ok": self.ok,
            "error": self.error,
            "fallback": self.fallback,
        }


@dataclass
class Workflow:
    name: str
    steps: list[WorkflowStep] = field(default_factory=list)

    def succeeded(self, step: str, *, fallback: bool = False) -> None:
        self.steps.append(WorkflowStep(name=step, ok=True, fallback=fallback))

    def failed(self, step: str, error: Exception | str, *, fallback: bool = False) -> None:
        self.steps.append(WorkflowStep(name=step, ok=False, error=str(error), fallback=fallback))

    @property
    def failures(self) -> list[WorkflowStep]:
        return [s for s in self.steps if not s.ok]

    @property
    def is_consistent(self) -> bool:
        """True when every recorded step was applied (directly or via fallback)."""
        return not self.failures

    def step(self, name: str) -> WorkflowStep | None:
        for s in reversed(self.steps):
            if s.name == name:
                return s
        return None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "consistent": self.is_consistent,
            "steps": [s.to_dict() for s in self.steps],
        }
