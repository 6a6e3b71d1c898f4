"""Onboarding conversation module."""
from .state import ChatMessage, ConversationState, NextInput, Role, StateStore, UserProfile
from .machine import Affordance, DialogueReply, DialogueRequest, Transition, affordance
from .objectives import OBJECTIVES, get_flow_identifier, specific_objective_options
from .session import OnboardingSession

__all__ = [
    "ChatMessage",
    "ConversationState",
    "NextInput",
    "Role",
    "StateStore",
    "UserProfile",
    "Affordance",
    "DialogueReply",
    "DialogueRequest",
    "Transition",
    "affordance",
    "OBJECTIVES",
    "get_flow_identifier",
    "specific_objective_options",
    "OnboardingSession"
]
