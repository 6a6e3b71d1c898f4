"""Tests for the onboarding session driver and the dialogue oracle."""
import asyncio
import unittest

from hormiwita.llm.dialogue import DialogueOracle, UserDataSchema, merge_user_data
from hormiwita.onboarding import machine
from hormiwita.onboarding.machine import Affordance, DialogueReply
from hormiwita.onboarding.session import OnboardingSession
from hormiwita.onboarding.state import NextInput, Role, UserProfile
from hormiwita.statements.models import (
    BankStatementSummary,
    EnhancedExpenseIncomeSummary,
    StatementStatus,
)
from hormiwita.utils.exceptions import LLMError


class FakeOracle:
    """Replies with canned DialogueReply objects, or raises."""

    def __init__(self, *replies, delay=0):
        self.replies = list(replies)
        self.delay = delay
        self.calls = []

    async def generate(self, query, chat_history, user_data):
        self.calls.append((query, tuple(chat_history), user_data))
        await asyncio.sleep(self.delay)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class TestOnboardingSession(unittest.IsolatedAsyncioTestCase):
    """Test OnboardingSession functionality."""

    async def test_start_and_reply(self):
        """Test a start followed by a message exchange."""
        oracle = FakeOracle(
            DialogueReply("¡Hola! ¿Cómo te llamas?"),
            DialogueReply("Hola Ana", UserProfile(name="Ana"), NextInput.GENERAL_OBJECTIVES_SELECTION),
        )
        session = OnboardingSession(oracle)

        await session.start()
        self.assertEqual(session.affordance, Affordance.FREE_TEXT)

        state = await session.send_message("Soy Ana")
        self.assertEqual([m.role for m in state.messages], [Role.ASSISTANT, Role.USER, Role.ASSISTANT])
        self.assertEqual(state.profile.name, "Ana")
        self.assertEqual(session.affordance, Affordance.GENERAL_OBJECTIVES)
        self.assertEqual(oracle.calls[1][0], "Soy Ana")

    async def test_oracle_failure(self):
        """Test that oracle errors become an error message."""
        session = OnboardingSession(FakeOracle(DialogueReply("Hola"), LLMError("down")))
        await session.start()

        state = await session.send_message("¿Qué tal?")
        self.assertEqual(state.messages[-1].content, machine.REPLY_ERROR_MESSAGE)
        self.assertFalse(state.pending)

    async def test_actions_are_serialized(self):
        """Test that concurrent actions run one after another."""
        oracle = FakeOracle(DialogueReply("Hola"), DialogueReply("uno"), DialogueReply("dos"), delay=0.01)
        session = OnboardingSession(oracle)
        await session.start()

        await asyncio.gather(session.send_message("a"), session.send_message("b"))

        contents = [m.content for m in session.state.messages]
        self.assertEqual(contents, ["Hola", "a", "uno", "b", "dos"])
        self.assertEqual(len(oracle.calls), 3)

    async def test_rejected_action_skips_oracle(self):
        """Test that a rejected action does not call the oracle."""
        oracle = FakeOracle(DialogueReply("Hola"))
        session = OnboardingSession(oracle)
        await session.start()

        state = await session.submit_general_objectives([])
        self.assertEqual(state.notice, machine.GENERAL_OBJECTIVES_REQUIRED)
        self.assertEqual(len(oracle.calls), 1)

    async def test_confirm_analysis(self):
        """Test that the summary reaches the oracle with the profile."""
        oracle = FakeOracle(DialogueReply("Hola"), DialogueReply("Gracias", None, NextInput.SUMMARY_DISPLAY))
        session = OnboardingSession(oracle)
        await session.start()

        summary = EnhancedExpenseIncomeSummary(BankStatementSummary(StatementStatus.PARTIAL_DATA, "Parcial"))
        state = await session.confirm_analysis(summary)

        self.assertIs(oracle.calls[-1][2].expenses_income_summary, summary)
        self.assertIs(state.profile.expenses_income_summary, summary)
        self.assertEqual(session.affordance, Affordance.CONFIRMATION)

    async def test_specific_objective_options(self):
        """Test options follow the stored general objectives."""
        oracle = FakeOracle(DialogueReply("Hola", UserProfile(general_objectives=("Gestión de Gastos",))))
        session = OnboardingSession(oracle)
        await session.start()

        self.assertEqual(len(session.specific_objective_options()), 4)


class FakeClient:
    def __init__(self, payload):
        self.payload = payload
        self.system_instruction = None

    async def generate_json(self, prompt, schema, system_instruction=None):
        self.system_instruction = system_instruction
        return schema.model_validate(self.payload)


class TestDialogueOracle(unittest.IsolatedAsyncioTestCase):
    """Test DialogueOracle functionality."""

    async def test_reply_with_profile_update(self):
        """Test that updates merge into the full profile."""
        summary = EnhancedExpenseIncomeSummary(BankStatementSummary(StatementStatus.SUCCESS, "ok"))
        profile = UserProfile(name="Ana", general_objectives=("Ahorro",), expenses_income_summary=summary)
        client = FakeClient({
            "response": " Perfecto ",
            "updatedUserData": {"generalObjectives": ["Gestión de Gastos"]},
            "nextExpectedInput": "specific_objectives_selection",
        })
        reply = await DialogueOracle(client).generate("Gestión de Gastos", (), profile)

        self.assertEqual(reply.response, "Perfecto")
        self.assertEqual(reply.next_expected_input, NextInput.SPECIFIC_OBJECTIVES_SELECTION)
        self.assertEqual(reply.updated_user_data.general_objectives, ("Ahorro", "Gestión de Gastos"))
        self.assertIs(reply.updated_user_data.expenses_income_summary, summary)
        self.assertIn("Hormi", client.system_instruction)

    async def test_unknown_hint(self):
        """Test that unknown hints are dropped."""
        client = FakeClient({"response": "Hola", "nextExpectedInput": "dance"})
        reply = await DialogueOracle(client).generate("", (), UserProfile())

        self.assertIsNone(reply.next_expected_input)
        self.assertIsNone(reply.updated_user_data)

    async def test_blank_response(self):
        """Test that a reply without text is an error."""
        client = FakeClient({"response": "   "})
        with self.assertRaises(LLMError):
            await DialogueOracle(client).generate("hola", (), UserProfile())


class TestMergeUserData(unittest.TestCase):
    """Test merge_user_data."""

    def test_no_change(self):
        """Test that an update repeating known data returns None."""
        profile = UserProfile(name="Ana", general_objectives=("Ahorro",))
        update = UserDataSchema(name="Ana", general_objectives=["Ahorro"])
        self.assertIsNone(merge_user_data(profile, update))

    def test_blank_name_keeps_existing(self):
        """Test that a blank name does not erase the stored one."""
        merged = merge_user_data(UserProfile(name="Ana"), UserDataSchema(name=" ", specific_objectives=["Viajes"]))
        self.assertEqual(merged.name, "Ana")
        self.assertEqual(merged.specific_objectives, ("Viajes",))


if __name__ == "__main__":
    unittest.main()
