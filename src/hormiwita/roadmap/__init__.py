"""Roadmap module."""
from .models import Roadmap, RoadmapStep, StepStatus
from .progress import activate_next_step, complete_step
from .tracker import RoadmapTracker

__all__ = [
    "Roadmap",
    "RoadmapStep",
    "StepStatus",
    "activate_next_step",
    "complete_step",
    "RoadmapTracker"
]
