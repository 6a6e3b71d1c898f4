"""Async onboarding session driver."""
import asyncio
from typing import Callable, Optional, Sequence

from . import machine
from .machine import Affordance, Transition
from .objectives import SpecificObjective, specific_objective_options
from .state import ConversationState, StateStore, UserProfile
from ..statements.models import EnhancedExpenseIncomeSummary
from ..utils.logger import get_logger

logger = get_logger()


class OnboardingSession:
    """
    Runs onboarding transitions and performs their dialogue calls.

    Actions are serialized: one action, including its dialogue call, is fully
    applied before the next one starts.
    """

    def __init__(
        self,
        oracle,
        store: Optional[StateStore] = None,
        history_window: int = machine.HISTORY_WINDOW
    ):
        """
        Initialize session.

        Args:
            oracle: Object exposing async generate(query, chat_history, user_data) -> DialogueReply
            store: State container, a fresh one when omitted
            history_window: Number of messages sent as history
        """
        self.oracle = oracle
        self.store: StateStore = store or StateStore(ConversationState())
        self.history_window = history_window
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConversationState:
        return self.store.get()

    @property
    def affordance(self) -> Affordance:
        return machine.affordance(self.state)

    def specific_objective_options(self) -> Sequence[SpecificObjective]:
        return specific_objective_options(self.state.profile.general_objectives)

    async def start(self) -> ConversationState:
        return await self._run(machine.start)

    async def reset(self) -> ConversationState:
        return await self._run(lambda _state: machine.reset())

    async def send_message(self, content: str, profile_override: Optional[UserProfile] = None) -> ConversationState:
        return await self._run(
            lambda state: machine.send_message(state, content, profile_override, self.history_window)
        )

    async def submit_general_objectives(self, selected: Sequence[str]) -> ConversationState:
        return await self._run(lambda state: machine.submit_general_objectives(state, selected))

    async def submit_specific_objectives(self, selected: Sequence[str]) -> ConversationState:
        return await self._run(lambda state: machine.submit_specific_objectives(state, selected))

    async def confirm_analysis(self, summary: EnhancedExpenseIncomeSummary) -> ConversationState:
        return await self._run(lambda state: machine.confirm_analysis(state, summary))

    async def accept_summary(self) -> ConversationState:
        return await self._run(machine.accept_summary)

    async def _run(self, action: Callable[[ConversationState], Transition]) -> ConversationState:
        async with self._lock:
            transition = action(self.store.get())
            self.store.replace(transition.state)

            request = transition.request
            if request is None:
                if transition.state.notice:
                    logger.info(f"Onboarding action rejected: {transition.state.notice}")
                return transition.state

            try:
                reply = await self.oracle.generate(request.query, request.chat_history, request.user_data)
            except Exception as e:
                logger.error(f"Dialogue call failed: {e}")
                new_state = machine.apply_failure(self.store.get(), request, e)
            else:
                new_state = machine.apply_reply(self.store.get(), request, reply)
                logger.debug(f"Dialogue reply applied, next input: {new_state.next_input}")

            self.store.replace(new_state)
            return new_state
