"""Data models for the objectives roadmap."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..utils.exceptions import ValidationError


class StepStatus(str, Enum):
    """Roadmap step status. Transitions only move forward."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = (StepStatus.PENDING, StepStatus.IN_PROGRESS, StepStatus.COMPLETED)


@dataclass(frozen=True)
class RoadmapStep:
    """One objective of the roadmap and the guided flow that handles it."""
    objective: str
    title: str
    description: str
    flow_identifier: str
    status: StepStatus = StepStatus.PENDING

    def __post_init__(self):
        object.__setattr__(self, "status", StepStatus(self.status))

    def with_status(self, status: StepStatus) -> "RoadmapStep":
        """Return a copy with a later status."""
        status = StepStatus(status)
        if status.rank < self.status.rank:
            raise ValidationError(
                f"Step '{self.objective}' cannot move from {self.status.value} to {status.value}"
            )
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objective": self.objective,
            "title": self.title,
            "description": self.description,
            "flowIdentifier": self.flow_identifier,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadmapStep":
        return cls(
            objective=data["objective"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            flow_identifier=data.get("flowIdentifier", ""),
            status=data.get("status", StepStatus.PENDING.value),
        )


@dataclass(frozen=True)
class Roadmap:
    """Introduction text and ordered steps, one per specific objective."""
    introduction: str
    steps: Tuple[RoadmapStep, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def step(self, objective: str) -> Optional[RoadmapStep]:
        return next((s for s in self.steps if s.objective == objective), None)

    @property
    def in_progress_step(self) -> Optional[RoadmapStep]:
        return next((s for s in self.steps if s.status == StepStatus.IN_PROGRESS), None)

    @property
    def is_complete(self) -> bool:
        return bool(self.steps) and all(s.status == StepStatus.COMPLETED for s in self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "introduction": self.introduction,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Roadmap":
        return cls(
            introduction=data.get("introduction", ""),
            steps=tuple(RoadmapStep.from_dict(step) for step in data.get("steps", [])),
        )
