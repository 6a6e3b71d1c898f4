"""Onboarding dialogue adapter."""
import json
from dataclasses import replace
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..onboarding.machine import DialogueReply
from ..onboarding.objectives import general_objective_names
from ..onboarding.state import ChatMessage, NextInput, UserProfile
from ..utils.exceptions import LLMError
from ..utils.logger import get_logger

logger = get_logger()

SYSTEM_PROMPT = f"""Eres Hormi, un asistente experto en finanzas personales. Tu objetivo es ayudar al usuario
a organizar sus finanzas recopilando, en este orden:
1. Su nombre. Si no lo conoces, pregúntalo.
2. Sus objetivos generales. Cuando tengas el nombre, pídele que elija entre: {", ".join(general_objective_names())}.
   Indica "general_objectives_selection" en nextExpectedInput.
3. Sus objetivos concretos para cada objetivo general. Indica "specific_objectives_selection".
4. Sus extractos bancarios para analizar ingresos y gastos. Indica "expense_income_upload".
5. Un resumen de toda la información para que la confirme. Indica "summary_display".
Después, conversa libremente y responde dudas financieras ("general_conversation").

Instrucciones adicionales:
- Responde siempre en español y en menos de 200 palabras.
- Evita dar recomendaciones de inversión directas.
- Cuando el usuario te diga su nombre o sus objetivos, inclúyelos en updatedUserData.
- Revisa el historial y los datos del usuario antes de responder.

Devuelve SOLO un objeto JSON válido con este formato:
{{
  "response": "mensaje para el usuario",
  "updatedUserData": {{"name": "...", "generalObjectives": ["..."], "specificObjectives": ["..."]}},
  "nextExpectedInput": "general_conversation"
}}
"""


class UserDataSchema(BaseModel):
    """Conversational profile fields the model may edit."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    general_objectives: Optional[List[str]] = Field(default=None, alias="generalObjectives")
    specific_objectives: Optional[List[str]] = Field(default=None, alias="specificObjectives")


class DialogueResponse(BaseModel):
    """Pydantic schema for the dialogue response."""
    model_config = ConfigDict(populate_by_name=True)

    response: str
    updated_user_data: Optional[UserDataSchema] = Field(default=None, alias="updatedUserData")
    next_expected_input: Optional[str] = Field(default=None, alias="nextExpectedInput")


def merge_user_data(profile: UserProfile, update: Optional[UserDataSchema]) -> Optional[UserProfile]:
    """
    Apply the model's conversational edits to a complete profile.

    Objectives are accumulated without duplicates; fields the model cannot
    see (statement summary, roadmap) are carried over from the input profile.
    Returns None when nothing changed.
    """
    if update is None:
        return None

    name = (update.name or "").strip() or profile.name
    general = profile.general_objectives + tuple(update.general_objectives or ())
    specific = profile.specific_objectives + tuple(update.specific_objectives or ())

    merged = replace(profile, name=name, general_objectives=general, specific_objectives=specific)
    return None if merged == profile else merged


class DialogueOracle:
    """Generates onboarding replies through the LLM client."""

    def __init__(self, client):
        """
        Args:
            client: Object exposing async generate_json(prompt, schema, system_instruction)
        """
        self.client = client

    async def generate(
        self,
        query: str,
        chat_history: Sequence[ChatMessage],
        user_data: UserProfile
    ) -> DialogueReply:
        """
        Produce the next assistant reply.

        Raises:
            LLMError: If the model output is missing or malformed
        """
        prompt = self._build_prompt(query, chat_history, user_data)
        result = await self.client.generate_json(prompt, DialogueResponse, system_instruction=SYSTEM_PROMPT)

        if result is None or not result.response.strip():
            raise LLMError("Dialogue response is missing the reply text")

        next_input = NextInput.parse(result.next_expected_input)
        if result.next_expected_input and next_input is None:
            logger.warning(f"Ignoring unknown next-input hint: {result.next_expected_input!r}")

        return DialogueReply(
            response=result.response.strip(),
            updated_user_data=merge_user_data(user_data, result.updated_user_data),
            next_expected_input=next_input
        )

    @staticmethod
    def _build_prompt(query: str, chat_history: Sequence[ChatMessage], user_data: UserProfile) -> str:
        history = "\n".join(f"{message.role.value}: {message.content}" for message in chat_history)
        known = {
            "name": user_data.name,
            "generalObjectives": list(user_data.general_objectives),
            "specificObjectives": list(user_data.specific_objectives),
            "statementsAnalyzed": user_data.expenses_income_summary is not None,
        }
        summary = user_data.expenses_income_summary
        if summary is not None:
            known["totalIncome"] = float(summary.original_summary.total_income or 0)
            known["totalExpenses"] = float(summary.original_summary.total_expenses or 0)

        return f"""Historial de chat reciente (assistant eres tú, user es el usuario):
{history or "(vacío)"}

Información del usuario ya conocida:
{json.dumps(known, ensure_ascii=False, indent=2)}

Mensaje actual del usuario:
user: {query or "(inicio de la conversación)"}
"""
