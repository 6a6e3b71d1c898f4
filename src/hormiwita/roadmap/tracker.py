"""Roadmap progression applied to a stored user profile."""
from dataclasses import replace
from typing import Optional

from .models import Roadmap, RoadmapStep
from .progress import activate_next_step, complete_step
from ..utils.logger import get_logger

logger = get_logger()


class RoadmapTracker:
    """Keeps the roadmap inside a stored profile and the active step in sync."""

    def __init__(self, store):
        """
        Args:
            store: State container holding a UserProfile (get() / replace())
        """
        self.store = store
        roadmap = self.roadmap
        self._active: Optional[RoadmapStep] = roadmap.in_progress_step if roadmap else None

    @property
    def roadmap(self) -> Optional[Roadmap]:
        return self.store.get().roadmap

    @property
    def active_step(self) -> Optional[RoadmapStep]:
        return self._active

    def set_roadmap(self, roadmap: Roadmap) -> None:
        self.store.replace(replace(self.store.get(), roadmap=roadmap))
        self._active = roadmap.in_progress_step

    def activate_next_step(self) -> Optional[RoadmapStep]:
        """Activate the first pending step; None when a step is active or none is pending."""
        roadmap, step = activate_next_step(self.roadmap)
        if step is None:
            return None

        self.store.replace(replace(self.store.get(), roadmap=roadmap))
        self._active = step
        logger.info(f"Roadmap step activated: {step.objective} ({step.flow_identifier})")
        return step

    def complete_step(self, objective: str) -> Roadmap:
        roadmap = complete_step(self.roadmap, objective)
        self.store.replace(replace(self.store.get(), roadmap=roadmap))
        if self._active is not None and self._active.objective == objective:
            self._active = None
        logger.info(f"Roadmap step completed: {objective}")
        return roadmap
