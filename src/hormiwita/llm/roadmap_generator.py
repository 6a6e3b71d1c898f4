"""Roadmap generation for the user's specific objectives."""
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from ..onboarding.objectives import DEFAULT_FLOW_IDENTIFIER, get_flow_identifier
from ..roadmap.models import Roadmap, RoadmapStep, StepStatus
from ..utils.logger import get_logger

logger = get_logger()

NO_PLAN_INTRODUCTION = "No se pudo generar un plan."


class RoadmapStepSchema(BaseModel):
    objective: str = Field(description="Exact name of the specific objective")
    title: str = Field(default="", description="Short, engaging title")
    description: str = Field(default="", description="One or two encouraging sentences")


class RoadmapResponse(BaseModel):
    """Pydantic schema for the roadmap response."""
    introduction: str = ""
    steps: List[RoadmapStepSchema] = Field(default_factory=list)


class RoadmapGenerator:
    """Builds a Roadmap with one step per specific objective."""

    def __init__(self, client=None):
        self.client = client

    async def generate(self, name: Optional[str], specific_objectives: Sequence[str]) -> Roadmap:
        """
        Generate a roadmap.

        Flow identifiers come from the objectives catalogue, never from the model.
        Every step starts pending.

        Args:
            name: User name
            specific_objectives: Objectives to cover

        Returns:
            Roadmap, or an empty one with a fixed introduction when generation fails
        """
        if self.client is None:
            return Roadmap(NO_PLAN_INTRODUCTION, ())

        try:
            response = await self.client.generate_json(
                self._build_prompt(name, specific_objectives),
                RoadmapResponse
            )
        except Exception as e:
            logger.warning(f"Roadmap generation failed: {e}")
            return Roadmap(NO_PLAN_INTRODUCTION, ())

        if response is None:
            return Roadmap(NO_PLAN_INTRODUCTION, ())

        steps = []
        seen = set()
        for step in response.steps:
            objective = step.objective.strip()
            if not objective or objective in seen:
                continue
            seen.add(objective)
            steps.append(RoadmapStep(
                objective=objective,
                title=step.title,
                description=step.description,
                flow_identifier=get_flow_identifier(objective) or DEFAULT_FLOW_IDENTIFIER,
                status=StepStatus.PENDING
            ))

        logger.info(f"Roadmap generated with {len(steps)} steps")
        return Roadmap(introduction=response.introduction, steps=tuple(steps))

    @staticmethod
    def _build_prompt(name: Optional[str], specific_objectives: Sequence[str]) -> str:
        return f"""Eres un asesor financiero amigable y motivador llamado Hormi.
Tu tarea es crear un "roadmap" financiero para un usuario llamado {name or "Usuario"}.
Sus objetivos específicos son: {", ".join(specific_objectives)}.
Basado en estos objetivos, genera un roadmap con una 'introduction' cálida y una lista de 'steps'.
Para cada step, genera solo las propiedades 'objective' (el nombre exacto del objetivo),
'title' (un título creativo) y 'description' (una descripción de 1-2 frases).

Devuelve SOLO un objeto JSON válido con este formato:
{{
  "introduction": "...",
  "steps": [{{"objective": "...", "title": "...", "description": "..."}}]
}}
"""
