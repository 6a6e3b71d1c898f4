"""Conversation state, user profile and the state container."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Iterable, Optional, Tuple, TypeVar

from ..roadmap.models import Roadmap
from ..statements.models import EnhancedExpenseIncomeSummary


class NextInput(str, Enum):
    """Next-input hint returned with each dialogue reply."""
    GENERAL_CONVERSATION = "general_conversation"
    GENERAL_OBJECTIVES_SELECTION = "general_objectives_selection"
    SPECIFIC_OBJECTIVES_SELECTION = "specific_objectives_selection"
    EXPENSE_INCOME_UPLOAD = "expense_income_upload"
    SUMMARY_DISPLAY = "summary_display"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["NextInput"]:
        """Unknown or missing hints map to None."""
        try:
            return cls(value)
        except ValueError:
            return None


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message."""
    role: Role
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self):
        object.__setattr__(self, "role", Role(self.role))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


def _unique(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Drop duplicates, keep first-seen order."""
    return tuple(dict.fromkeys(values or ()))


@dataclass(frozen=True)
class UserProfile:
    """Everything known about the user. Replaced, never mutated."""
    name: Optional[str] = None
    general_objectives: Tuple[str, ...] = ()
    specific_objectives: Tuple[str, ...] = ()
    expenses_income_summary: Optional[EnhancedExpenseIncomeSummary] = None
    roadmap: Optional[Roadmap] = None

    def __post_init__(self):
        object.__setattr__(self, "general_objectives", _unique(self.general_objectives))
        object.__setattr__(self, "specific_objectives", _unique(self.specific_objectives))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "generalObjectives": list(self.general_objectives),
            "specificObjectives": list(self.specific_objectives),
        }
        if self.expenses_income_summary is not None:
            data["expensesIncomeSummary"] = self.expenses_income_summary.to_dict()
        if self.roadmap is not None:
            data["roadmap"] = self.roadmap.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserProfile":
        data = data or {}
        summary = data.get("expensesIncomeSummary")
        roadmap = data.get("roadmap")
        return cls(
            name=data.get("name") or None,
            general_objectives=data.get("generalObjectives") or (),
            specific_objectives=data.get("specificObjectives") or (),
            expenses_income_summary=EnhancedExpenseIncomeSummary.from_dict(summary) if summary else None,
            roadmap=Roadmap.from_dict(roadmap) if roadmap else None,
        )


@dataclass(frozen=True)
class ConversationState:
    """Onboarding conversation state. next_input is None until the first exchange."""
    messages: Tuple[ChatMessage, ...] = ()
    profile: UserProfile = field(default_factory=UserProfile)
    next_input: Optional[NextInput] = None
    pending: bool = False
    notice: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "messages", tuple(self.messages))


T = TypeVar("T")


class StateStore(Generic[T]):
    """Holds the current snapshot; writers replace it wholesale."""

    def __init__(self, initial: T):
        self._state = initial

    def get(self) -> T:
        return self._state

    def replace(self, new_state: T) -> None:
        self._state = new_state
