"""Streaming guided sub-flow conversations, one per roadmap objective."""
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple

from ..onboarding.objectives import objective_for_flow
from ..onboarding.state import ChatMessage, Role, UserProfile
from ..utils.logger import get_logger

logger = get_logger()

OPENING_TURN = "Hola, empecemos."


def financial_context(profile: Optional[UserProfile]) -> str:
    """Name and statement totals, as the guided flows see them."""
    summary = profile.expenses_income_summary if profile else None
    if summary is None:
        return "No se dispone del contexto financiero del usuario."

    original = summary.original_summary
    income = original.total_income if original.total_income else "No disponible"
    expenses = original.total_expenses if original.total_expenses else "No disponible"
    return (
        "Contexto financiero del usuario:\n"
        f"- Nombre: {profile.name or 'No especificado'}\n"
        f"- Ingresos mensuales aproximados: {income}\n"
        f"- Gastos mensuales aproximados: {expenses}"
    )


def _vehicle_savings(context: str) -> str:
    return (
        "Eres un asesor financiero amigable y motivador llamado Hormi.\n"
        f"{context}\n"
        "Tu objetivo es guiar al usuario para crear un plan de ahorro para comprar un vehículo.\n"
        "Tu tono debe ser alentador y debes hacer una sola pregunta a la vez."
    )


def _investment_savings(context: str) -> str:
    return (
        "Eres un asesor financiero amigable y motivador llamado Hormi. Tu objetivo es guiar al usuario "
        "para que cree un capital inicial para invertir.\n"
        f"{context}\n"
        "Tu tono debe ser alentador y educativo. Haz una sola pregunta a la vez.\n"
        "Si la conversación acaba de empezar, haz la primera pregunta clave: \"¿Qué tipo de inversor te "
        "consideras o te gustaría ser? Por ejemplo, ¿conservador, moderado o arriesgado?\""
    )


def _generic(objective: str, context: str) -> str:
    return (
        "Eres un asesor financiero amigable y motivador llamado Hormi.\n"
        f"{context}\n"
        f"Tu objetivo es guiar al usuario paso a paso en su objetivo: {objective}.\n"
        "Tu tono debe ser alentador y debes hacer una sola pregunta a la vez."
    )


FLOW_PROMPTS: Dict[str, Callable[[str], str]] = {
    "vehicleSavingsFlow": _vehicle_savings,
    "investmentSavingsFlow": _investment_savings,
}


def build_system_prompt(flow_identifier: str, profile: Optional[UserProfile]) -> str:
    context = financial_context(profile)
    builder = FLOW_PROMPTS.get(flow_identifier)
    if builder is not None:
        return builder(context)
    objective = objective_for_flow(flow_identifier) or "mejorar sus finanzas personales"
    return _generic(objective, context)


def to_turns(history: Sequence[ChatMessage]) -> List[Tuple[str, str]]:
    """Model turns for a history. The conversation must open with a user turn."""
    turns = [(message.role.value, message.content) for message in history if message.content]
    if turns and turns[0][0] == Role.ASSISTANT.value:
        turns = [("user", OPENING_TURN)] + turns
    if not turns:
        turns = [("user", OPENING_TURN)]
    return turns


class FlowStream:
    """
    Lazy, single-use stream of reply chunks.

    Iterate it for the chunks; await response() for the full text, which is
    the concatenation of every chunk.
    """

    def __init__(self, chunks: AsyncIterator[str]):
        self._chunks = chunks
        self._received: List[str] = []
        self._consumed = False
        self._started = False

    def __aiter__(self):
        if self._started:
            raise RuntimeError("FlowStream can only be iterated once")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        async for chunk in self._chunks:
            self._received.append(chunk)
            yield chunk
        self._consumed = True

    async def response(self) -> str:
        """Full reply text, draining the stream when needed."""
        if not self._consumed:
            if not self._started:
                async for _ in self:
                    pass
            else:
                async for chunk in self._chunks:
                    self._received.append(chunk)
                self._consumed = True
        return "".join(self._received)


class GuidedFlowOracle:
    """Streams guided-flow replies through the LLM client."""

    def __init__(self, client):
        """
        Args:
            client: Object exposing async-iterator stream_text(history, system_instruction)
        """
        self.client = client

    def stream_generate(
        self,
        flow_identifier: str,
        history: Sequence[ChatMessage],
        context: Optional[UserProfile] = None
    ) -> FlowStream:
        """Start streaming the next assistant message of a guided flow."""
        logger.debug(f"Streaming {flow_identifier} reply over {len(history)} messages")
        return FlowStream(
            self.client.stream_text(to_turns(history), system_instruction=build_system_prompt(flow_identifier, context))
        )
