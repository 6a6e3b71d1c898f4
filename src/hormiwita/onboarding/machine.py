"""
Onboarding conversation transitions.

Every action is a pure function from the current ConversationState to a
Transition. When a dialogue call is needed the transition carries a
DialogueRequest; the session driver performs it and feeds the outcome back
through apply_reply or apply_failure.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from .state import ChatMessage, ConversationState, NextInput, Role, UserProfile
from ..statements.models import EnhancedExpenseIncomeSummary

HISTORY_WINDOW = 10

PLACEHOLDER_MESSAGE = "Iniciando conversación..."
INITIAL_ERROR_MESSAGE = "Lo siento, hubo un error al iniciar. Por favor, intenta recargar."
REPLY_ERROR_MESSAGE = (
    "Me disculpo, pero encontré un error al intentar responder. Por favor, inténtalo más tarde."
)

GENERAL_OBJECTIVES_REQUIRED = "Por favor, selecciona al menos un objetivo general."
GENERAL_OBJECTIVES_MISSING = "Primero debes seleccionar al menos un objetivo general."
BUSY_NOTICE = "Espera a que termine la respuesta anterior."
EMPTY_MESSAGE_NOTICE = "El mensaje no puede estar vacío."
NOT_CATEGORIZABLE_NOTICE = "El análisis de extractos no se puede confirmar con estado '{status}'."

NO_SPECIFIC_OBJECTIVES_MESSAGE = (
    "No tengo objetivos concretos adicionales por ahora para los generales ya mencionados."
)
SUMMARY_ACCEPTED_MESSAGE = "He aceptado el resumen de la información."


class Affordance(str, Enum):
    """Input widget the interface should present."""
    DISABLED = "disabled"
    GENERAL_OBJECTIVES = "general_objectives"
    SPECIFIC_OBJECTIVES = "specific_objectives"
    UPLOAD = "upload"
    CONFIRMATION = "confirmation"
    FREE_TEXT = "free_text"


@dataclass(frozen=True)
class DialogueRequest:
    """Dialogue call to perform on behalf of a transition."""
    query: str
    chat_history: Tuple[ChatMessage, ...]
    user_data: UserProfile
    initial: bool = False


@dataclass(frozen=True)
class DialogueReply:
    """Dialogue outcome: assistant text, optional profile and next-input hint."""
    response: str
    updated_user_data: Optional[UserProfile] = None
    next_expected_input: Optional[NextInput] = None


@dataclass(frozen=True)
class Transition:
    state: ConversationState
    request: Optional[DialogueRequest] = None


def _reject(state: ConversationState, notice: str) -> Transition:
    return Transition(replace(state, notice=notice))


def _send(
    state: ConversationState,
    content: str,
    profile: Optional[UserProfile] = None,
    history_window: int = HISTORY_WINDOW
) -> Transition:
    profile = profile if profile is not None else state.profile
    messages = state.messages + (ChatMessage(Role.USER, content),)
    request = DialogueRequest(
        query=content,
        chat_history=messages[-history_window:],
        user_data=profile
    )
    new_state = replace(state, messages=messages, profile=profile, pending=True, notice=None)
    return Transition(new_state, request)


def start(state: Optional[ConversationState] = None) -> Transition:
    """Open the conversation with an empty query and an empty profile."""
    state = state or ConversationState()
    if state.pending:
        return _reject(state, BUSY_NOTICE)

    placeholder = ChatMessage(Role.ASSISTANT, PLACEHOLDER_MESSAGE)
    new_state = replace(state, messages=state.messages + (placeholder,), pending=True, notice=None)
    request = DialogueRequest(query="", chat_history=(), user_data=UserProfile(), initial=True)
    return Transition(new_state, request)


def send_message(
    state: ConversationState,
    content: str,
    profile_override: Optional[UserProfile] = None,
    history_window: int = HISTORY_WINDOW
) -> Transition:
    """
    Append a user message and request a reply.

    Args:
        state: Current state
        content: Message text
        profile_override: Profile to send instead of the stored one; it also becomes the stored profile
        history_window: Number of most recent messages sent as history, the new one included
    """
    if state.pending:
        return _reject(state, BUSY_NOTICE)
    if not content or not content.strip():
        return _reject(state, EMPTY_MESSAGE_NOTICE)
    return _send(state, content.strip(), profile_override, history_window)


def submit_general_objectives(state: ConversationState, selected: Sequence[str]) -> Transition:
    if state.pending:
        return _reject(state, BUSY_NOTICE)
    selected = list(dict.fromkeys(selected))
    if not selected:
        return _reject(state, GENERAL_OBJECTIVES_REQUIRED)
    return _send(state, f"Mis objetivos generales seleccionados son: {', '.join(selected)}.")


def submit_specific_objectives(state: ConversationState, selected: Sequence[str]) -> Transition:
    """Zero selected items is a valid answer."""
    if state.pending:
        return _reject(state, BUSY_NOTICE)
    if not state.profile.general_objectives:
        return _reject(state, GENERAL_OBJECTIVES_MISSING)

    selected = list(dict.fromkeys(selected))
    if selected:
        content = f"Mis objetivos concretos seleccionados son: {', '.join(selected)}."
    else:
        content = NO_SPECIFIC_OBJECTIVES_MESSAGE
    return _send(state, content)


def confirm_analysis(state: ConversationState, summary: EnhancedExpenseIncomeSummary) -> Transition:
    """Store the categorized statement summary and report it to the assistant."""
    if state.pending:
        return _reject(state, BUSY_NOTICE)

    original = summary.original_summary
    if not original.status.allows_categorization:
        return _reject(state, NOT_CATEGORIZABLE_NOTICE.format(status=original.status.value))

    profile = replace(state.profile, expenses_income_summary=summary)
    content = (
        f"He confirmado el análisis de mis extractos. El feedback del análisis es: "
        f"\"{original.feedback}\" (Estado: {original.status.value})."
    )
    return _send(state, content, profile)


def accept_summary(state: ConversationState) -> Transition:
    if state.pending:
        return _reject(state, BUSY_NOTICE)
    return _send(state, SUMMARY_ACCEPTED_MESSAGE)


def reset() -> Transition:
    """Drop messages and profile, then start over."""
    return start(ConversationState())


def _drop_placeholder(messages: Tuple[ChatMessage, ...]) -> Tuple[ChatMessage, ...]:
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if message.role == Role.ASSISTANT and message.content == PLACEHOLDER_MESSAGE:
            return messages[:index] + messages[index + 1:]
    return messages


def apply_reply(state: ConversationState, request: DialogueRequest, reply: DialogueReply) -> ConversationState:
    """Fold a dialogue reply into the state."""
    messages = _drop_placeholder(state.messages) if request.initial else state.messages
    messages = messages + (ChatMessage(Role.ASSISTANT, reply.response),)
    profile = reply.updated_user_data if reply.updated_user_data is not None else state.profile
    return replace(
        state,
        messages=messages,
        profile=profile,
        next_input=reply.next_expected_input or NextInput.GENERAL_CONVERSATION,
        pending=False
    )


def apply_failure(state: ConversationState, request: DialogueRequest, error: Exception) -> ConversationState:
    """Show an error message. next_input stays so the same input can be retried."""
    if request.initial:
        messages = _drop_placeholder(state.messages) + (ChatMessage(Role.ASSISTANT, INITIAL_ERROR_MESSAGE),)
    else:
        messages = state.messages + (ChatMessage(Role.ASSISTANT, REPLY_ERROR_MESSAGE),)
    return replace(state, messages=messages, pending=False)


def affordance(state: ConversationState) -> Affordance:
    """Input widget to present for the current state."""
    if state.pending or state.next_input is None:
        return Affordance.DISABLED
    if state.next_input == NextInput.GENERAL_OBJECTIVES_SELECTION:
        return Affordance.GENERAL_OBJECTIVES
    if state.next_input == NextInput.SPECIFIC_OBJECTIVES_SELECTION:
        if state.profile.general_objectives:
            return Affordance.SPECIFIC_OBJECTIVES
        return Affordance.FREE_TEXT
    if state.next_input == NextInput.EXPENSE_INCOME_UPLOAD:
        return Affordance.UPLOAD
    if state.next_input == NextInput.SUMMARY_DISPLAY:
        return Affordance.CONFIRMATION
    return Affordance.FREE_TEXT
