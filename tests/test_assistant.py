"""
Tests for the financial assistant.

Gemini is replaced by FakeGeminiModel; async calls are driven with
asyncio.run so no plugin is needed.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from bookkeeper.agents import (
    AssistantBusyError,
    ChatMessage,
    ChatRole,
    ChatSession,
    ExternalServiceError,
    GeminiAssistant,
    build_financial_summary,
    build_prompt,
    format_history,
)
from bookkeeper.agents.assistant import ERROR_MESSAGES, WELCOME_MESSAGES
from bookkeeper.models import Language
from bookkeeper.models.audit import AuditEventType

from conftest import START, FakeGeminiModel, make_transaction


@pytest.fixture
def ledger_rows():
    return [
        make_transaction("100", "income", "Sales", START, "Cotton", "6"),
        make_transaction("40", "expense", "Transport", START - timedelta(days=1), "Taxi", "5"),
        make_transaction("15500", "income", "Consulting", START - timedelta(days=40), "Project", "4"),
        make_transaction("300", "expense", "Office Rent", START - timedelta(days=41), "Rent", "3"),
    ]


def make_session(gemini_settings, model, **kwargs):
    assistant = GeminiAssistant(gemini_settings, model=model)
    return ChatSession(assistant, **kwargs)


class TestFinancialSummary:
    """Tests for build_financial_summary()."""

    def test_uses_visible_subset(self, ledger_rows):
        """Test that a filtered view is summarized when non-empty."""
        summary = build_financial_summary(ledger_rows[:2], ledger_rows)

        assert summary.total_income == Decimal("100")
        assert summary.total_expenses == Decimal("40")
        assert summary.transaction_count == 2
        assert summary.data_context == "Analyzing 2 visible transactions (filtered view)"

    def test_falls_back_to_all(self, ledger_rows):
        """Test that an empty view summarizes the whole ledger."""
        summary = build_financial_summary([], ledger_rows)

        assert summary.transaction_count == 4
        assert summary.profit == Decimal("15260")
        assert summary.data_context == "Analyzing all 4 transactions"

    def test_top_categories_and_recent(self, ledger_rows):
        """Test category ranking and recent transactions."""
        summary = build_financial_summary([], ledger_rows)

        assert [c.category for c in summary.top_income_categories] == ["Consulting", "Sales"]
        assert summary.top_expense_categories[0].category == "Office Rent"
        assert summary.recent_transactions[0].description == "Cotton"
        assert summary.recent_transactions[0].date == "2024-06-01"

    def test_recent_capped_at_ten(self):
        """Test that only ten recent transactions are included."""
        rows = [make_transaction(i + 1, transaction_id=str(i)) for i in range(15)]
        summary = build_financial_summary([], rows)
        assert len(summary.recent_transactions) == 10

    def test_empty_ledger(self):
        """Test a user with no data."""
        summary = build_financial_summary([], [])
        assert summary.transaction_count == 0
        assert summary.monthly_data == []


class TestPrompt:
    """Tests for build_prompt()."""

    def test_contains_exact_figures(self, ledger_rows):
        """Test that real totals appear in the prompt."""
        summary = build_financial_summary([], ledger_rows)
        prompt = build_prompt("How am I doing?", summary, Language.EN)

        assert "Total Income: 15,600.00 KGS" in prompt
        assert "Net Profit: 15,260.00 KGS" in prompt
        assert 'User Question: "How am I doing?"' in prompt

    def test_language_instruction(self, ledger_rows):
        """Test that the reply language is requested."""
        summary = build_financial_summary([], ledger_rows)
        assert "Отвечай на русском языке" in build_prompt("?", summary, Language.RU)
        assert "Кыргызча жооп бер" in build_prompt("?", summary, Language.KY)

    def test_empty_sections(self):
        """Test placeholders for an empty ledger."""
        prompt = build_prompt("?", build_financial_summary([], []), Language.EN)
        assert "No income data available" in prompt
        assert "No prior conversation available." in prompt


class TestGeminiAssistant:
    """Tests for GeminiAssistant.analyze()."""

    def test_returns_model_text(self, gemini_settings, ledger_rows):
        """Test a successful reply."""
        model = FakeGeminiModel(reply="  Profit looks healthy.  ")
        assistant = GeminiAssistant(gemini_settings, model=model)

        text = asyncio.run(assistant.analyze("?", build_financial_summary([], ledger_rows)))

        assert text == "Profit looks healthy."
        assert len(model.prompts) == 1

    def test_timeout(self, gemini_settings):
        """Test that a slow model raises ExternalServiceError."""
        assistant = GeminiAssistant(gemini_settings, model=FakeGeminiModel(delay=1))
        with pytest.raises(ExternalServiceError) as exc:
            asyncio.run(assistant.analyze("?", build_financial_summary([], [])))
        assert exc.value.service == "gemini"

    def test_empty_reply(self, gemini_settings):
        """Test that an empty answer is an error, not a blank message."""
        assistant = GeminiAssistant(gemini_settings, model=FakeGeminiModel(reply="   "))
        with pytest.raises(ExternalServiceError):
            asyncio.run(assistant.analyze("?", build_financial_summary([], [])))

    def test_model_error(self, gemini_settings):
        """Test that any model failure is wrapped."""
        assistant = GeminiAssistant(gemini_settings, model=FakeGeminiModel(error=RuntimeError("quota")))
        with pytest.raises(ExternalServiceError) as exc:
            asyncio.run(assistant.analyze("?", build_financial_summary([], [])))
        assert "quota" in exc.value.message


class TestChatSession:
    """Tests for ChatSession.ask()."""

    def test_starts_with_welcome(self, gemini_settings):
        """Test the localized welcome message."""
        session = make_session(gemini_settings, FakeGeminiModel(), language=Language.KY)
        assert session.messages[0].content == WELCOME_MESSAGES[Language.KY]
        assert session.messages[0].is_ai is False

    def test_answer_recorded(self, gemini_settings, ledger_rows, audit):
        """Test that both sides of the exchange are kept."""
        session = make_session(gemini_settings, FakeGeminiModel(), audit=audit, user_id="user-1")

        reply = asyncio.run(session.ask("What is my profit?", [], ledger_rows))

        assert reply.is_ai is True
        assert [m.role for m in session.messages] == [ChatRole.ASSISTANT, ChatRole.USER, ChatRole.ASSISTANT]
        assert session.is_waiting is False
        assert audit.recent_events()[0].event_type == AuditEventType.ASSISTANT_QUERY

    def test_timeout_shows_localized_error(self, gemini_settings, ledger_rows, audit):
        """Test that a timeout yields the error text, never invented figures."""
        session = make_session(
            gemini_settings, FakeGeminiModel(delay=1), language=Language.RU, audit=audit
        )

        reply = asyncio.run(session.ask("Прибыль?", [], ledger_rows))

        assert reply.content == ERROR_MESSAGES[Language.RU]
        assert reply.is_ai is False
        assert session.is_waiting is False
        types = {e.event_type for e in audit.recent_events()}
        assert AuditEventType.EXTERNAL_SERVICE_ERROR in types

    def test_empty_question(self, gemini_settings):
        """Test that blank questions are refused."""
        session = make_session(gemini_settings, FakeGeminiModel())
        with pytest.raises(ValueError):
            asyncio.run(session.ask("   ", [], []))
        assert len(session.messages) == 1

    def test_busy(self, gemini_settings, ledger_rows):
        """Test that a second question while waiting is refused."""
        session = make_session(gemini_settings, FakeGeminiModel())
        session.is_waiting = True
        with pytest.raises(AssistantBusyError):
            asyncio.run(session.ask("Another?", [], ledger_rows))

    def test_concurrent_ask(self, gemini_settings, ledger_rows):
        """Test overlapping asks: the second is rejected, the first completes."""
        gemini_settings.request_timeout_seconds = 1
        model = FakeGeminiModel(delay=0.01)
        session = make_session(gemini_settings, model)

        async def scenario():
            first = asyncio.create_task(session.ask("One?", [], ledger_rows))
            await asyncio.sleep(0)
            with pytest.raises(AssistantBusyError):
                await session.ask("Two?", [], ledger_rows)
            return await first

        reply = asyncio.run(scenario())
        assert reply.is_ai is True
        assert len(model.prompts) == 1

    def test_history_includes_current_question(self, gemini_settings, ledger_rows):
        """Test that the prompt carries the recent conversation."""
        model = FakeGeminiModel(reply="Noted.")
        session = make_session(gemini_settings, model, history_window=3)

        asyncio.run(session.ask("My shop is at Dordoi.", [], ledger_rows))
        asyncio.run(session.ask("Where is my shop?", [], ledger_rows))

        latest = model.prompts[-1]
        assert "User: My shop is at Dordoi." in latest
        assert "User: Where is my shop?" in latest
        # the welcome message fell outside the window
        assert WELCOME_MESSAGES[Language.EN] not in latest


class TestFormatHistory:
    """Tests for format_history()."""

    def test_window(self):
        """Test that only the last messages are kept, labelled by role."""
        messages = [
            ChatMessage(role=ChatRole.USER, content="a"),
            ChatMessage(role=ChatRole.ASSISTANT, content="b"),
            ChatMessage(role=ChatRole.USER, content="c"),
        ]
        assert format_history(messages, 2) == "Assistant: b\nUser: c"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
