"""Roadmap progression: activate the next pending step, complete a step."""
from typing import Optional, Tuple

from .models import Roadmap, RoadmapStep, StepStatus
from ..utils.exceptions import ValidationError


def activate_next_step(roadmap: Optional[Roadmap]) -> Tuple[Optional[Roadmap], Optional[RoadmapStep]]:
    """
    Mark the first pending step in_progress.

    Nothing changes while another step is in progress or when no step is pending.

    Returns:
        (roadmap, activated step or None)
    """
    if roadmap is None or roadmap.in_progress_step is not None:
        return roadmap, None

    for index, step in enumerate(roadmap.steps):
        if step.status == StepStatus.PENDING:
            activated = step.with_status(StepStatus.IN_PROGRESS)
            steps = roadmap.steps[:index] + (activated,) + roadmap.steps[index + 1:]
            return Roadmap(roadmap.introduction, steps), activated

    return roadmap, None


def complete_step(roadmap: Roadmap, objective: str) -> Roadmap:
    """
    Mark the step for an objective completed.

    Raises:
        ValidationError: If the roadmap has no step for the objective
    """
    if roadmap is None:
        raise ValidationError("No roadmap to update")

    for index, step in enumerate(roadmap.steps):
        if step.objective == objective:
            if step.status == StepStatus.COMPLETED:
                return roadmap
            steps = roadmap.steps[:index] + (step.with_status(StepStatus.COMPLETED),) + roadmap.steps[index + 1:]
            return Roadmap(roadmap.introduction, steps)

    raise ValidationError(f"Roadmap has no step for objective '{objective}'")
