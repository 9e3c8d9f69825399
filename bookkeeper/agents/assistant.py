"""
Financial Assistant

DESIGN DECISION: The assistant answers questions about the user's OWN
ledger. It is given a structured summary built by the aggregator and is
told to use those exact figures.

CRITICAL BOUNDARIES:
- CAN: Explain, compare and advise using the summary it was given
- CANNOT: Invent figures; the prompt carries every number it may use
- MUST: Fail visibly. When Gemini is unreachable, times out or returns
  nothing, the chat shows a localized error, never a made-up answer

The LLM is a TRANSLATOR, not an ORACLE.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from bookkeeper.audit import AuditLogger
from bookkeeper.config import GeminiSettings, get_settings
from bookkeeper.ledger.aggregator import (
    category_breakdown,
    compute_metrics,
    monthly_series,
    top_categories,
)
from bookkeeper.models.audit import AuditEventBuilder
from bookkeeper.models.report import FinancialSummary, RecentTransaction
from bookkeeper.models.transaction import Transaction, TransactionType
from bookkeeper.models.user import Language, utc_now


logger = structlog.get_logger(__name__)

TOP_EXPENSE_CATEGORIES = 5
TOP_INCOME_CATEGORIES = 3
RECENT_TRANSACTIONS = 10


# =============================================================================
# LOCALIZED TEXT
# =============================================================================

WELCOME_MESSAGES = {
    Language.EN: (
        "Hello! I'm your AI financial assistant. I can analyze your business "
        "data and provide insights. What would you like to know?"
    ),
    Language.RU: (
        "Привет! Я ваш ИИ финансовый помощник. Могу анализировать данные "
        "бизнеса и давать советы. Что вас интересует?"
    ),
    Language.KY: (
        "Салам! Мен сиздин ИИ финансылык жардамчыңызмын. Бизнес маалыматтарын "
        "анализдеп, кеңештерди бере алам. Эмне билгиңиз келет?"
    ),
}

ERROR_MESSAGES = {
    Language.EN: (
        "I apologize, but I'm having trouble analyzing your data right now. "
        "Please try again in a moment."
    ),
    Language.RU: (
        "Извините, сейчас не удаётся проанализировать ваши данные. "
        "Пожалуйста, попробуйте ещё раз чуть позже."
    ),
    Language.KY: (
        "Кечиресиз, азыр маалыматтарыңызды анализдөө мүмкүн болбой жатат. "
        "Бир аздан кийин кайра аракет кылыңыз."
    ),
}

LANGUAGE_INSTRUCTIONS = {
    Language.EN: (
        "Respond in English in a natural, conversational tone. Be helpful, engaging, "
        "and professional. Do NOT start with greetings like \"Hello\" or \"Hi\" - just "
        "answer the question directly. Use the EXACT numbers from the provided data."
    ),
    Language.RU: (
        "Отвечай на русском языке естественным, разговорным тоном. Будь полезным, "
        "вовлекающим и профессиональным. НЕ начинай с приветствий типа \"Привет\" или "
        "\"Здравствуйте\" - просто отвечай на вопрос напрямую. Используй ТОЧНЫЕ цифры "
        "из предоставленных данных."
    ),
    Language.KY: (
        "Кыргызча жооп бер, табигый, достук тон менен. Пайдалуу, кызыктуу жана "
        "кесипкөй бол. \"Салам\" же \"Саламатсызбы\" деген сыяктуу салам айтуу менен "
        "баштабай, суроого түздөн-түз жооп бер. Берилген маалыматтардагы так "
        "сандарды колдон."
    ),
}


class ExternalServiceError(Exception):
    """A call to a hosted service failed, timed out or returned nothing."""

    def __init__(self, service: str, message: str):
        self.service = service
        self.message = message
        super().__init__(f"{service}: {message}")


class AssistantBusyError(Exception):
    """A question was asked while the previous one is still pending."""
    pass


# =============================================================================
# FINANCIAL SUMMARY
# =============================================================================

def build_financial_summary(
    visible: Sequence[Transaction],
    all_transactions: Sequence[Transaction],
    language: Optional[Language] = None,
) -> FinancialSummary:
    """
    Summarize what the user is looking at.

    The visible (filtered) view is used when it has anything in it;
    otherwise the whole ledger is summarized. Category totals are named
    in the given language.
    """
    current = list(visible) if visible else list(all_transactions)
    metrics = compute_metrics(current)
    expenses_by_category = category_breakdown(current, TransactionType.EXPENSE, language)
    income_by_category = category_breakdown(current, TransactionType.INCOME, language)

    if visible:
        data_context = f"Analyzing {len(visible)} visible transactions (filtered view)"
    else:
        data_context = f"Analyzing all {len(all_transactions)} transactions"

    return FinancialSummary(
        total_income=metrics.total_income,
        total_expenses=metrics.total_expenses,
        profit=metrics.profit,
        transaction_count=metrics.transaction_count,
        top_expense_categories=top_categories(expenses_by_category, TOP_EXPENSE_CATEGORIES),
        top_income_categories=top_categories(income_by_category, TOP_INCOME_CATEGORIES),
        recent_transactions=[
            RecentTransaction(
                type=t.type,
                amount=t.amount,
                category=t.category,
                description=t.description,
                date=t.timestamp.strftime("%Y-%m-%d"),
                payment_method=t.payment_method,
            )
            for t in current[:RECENT_TRANSACTIONS]
        ],
        monthly_data=monthly_series(current),
        income_by_category=income_by_category,
        expenses_by_category=expenses_by_category,
        data_context=data_context,
    )


def _money(amount: Decimal, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def build_prompt(
    query: str,
    summary: FinancialSummary,
    language: Language,
    history: str = "",
    currency: str = "KGS",
) -> str:
    """Assemble the full Gemini prompt from real ledger figures."""
    instruction = LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS[Language.EN])

    income_lines = "\n".join(
        f"- {c.category}: {_money(c.amount, currency)}" for c in summary.top_income_categories
    ) or "No income data available"
    expense_lines = "\n".join(
        f"- {c.category}: {_money(c.amount, currency)}" for c in summary.top_expense_categories
    ) or "No expense data available"
    recent_lines = "\n".join(
        f"- {t.type.value}: {_money(t.amount, currency)} ({t.category}) - {t.description}"
        for t in summary.recent_transactions
    ) or "No recent transactions"
    monthly_lines = "\n".join(
        f"- {b.month}: Income {_money(b.income, currency)}, "
        f"Expenses {_money(b.expenses, currency)}, Profit {_money(b.profit, currency)}"
        for b in summary.monthly_data
    ) or "No monthly data available"

    return f"""You are an AI financial assistant for Bazar.ai, a business accounting application. You should respond naturally and conversationally, but with expertise in business finance and accounting for businesses in Kyrgyzstan.

CRITICAL: {instruction}

Conversation so far (most recent last). Briefly acknowledge relevant prior facts when helpful, but do not repeat the entire history:
{history or 'No prior conversation available.'}

IMPORTANT: Use the EXACT numbers provided below. Do not make up or estimate any financial data.

{summary.data_context}

Current Business Financial Data:
- Total Income: {_money(summary.total_income, currency)}
- Total Expenses: {_money(summary.total_expenses, currency)}
- Net Profit: {_money(summary.profit, currency)}
- Number of Transactions: {summary.transaction_count}

Top Income Categories:
{income_lines}

Top Expense Categories:
{expense_lines}

Recent Transactions (Last {RECENT_TRANSACTIONS}):
{recent_lines}

Monthly Breakdown:
{monthly_lines}

User Question: "{query}"

Guidelines for your response:
1. NEVER start with greetings - jump straight into answering the question
2. Be conversational and natural - no robotic or formal language
3. Use the EXACT financial data provided above to give specific, actionable insights
4. Reference specific numbers from their data
5. Provide practical business advice relevant to Kyrgyzstan's business environment
6. Keep responses informative but conversational (2-4 sentences typically)
7. Use the specified language consistently throughout
8. Format currency amounts properly (e.g., "15,500 {currency}")
9. Be encouraging and supportive about their business journey
10. If the data shows 0 or no transactions, acknowledge this and provide guidance on getting started
11. When the user's message refers back to earlier context, briefly acknowledge it before answering"""


# =============================================================================
# GEMINI CLIENT
# =============================================================================

class GeminiAssistant:
    """
    Sends one question plus the financial summary to Gemini.

    RESPONSIBILITIES:
    - Build the prompt from real figures
    - Enforce the request timeout
    - Report every failure as ExternalServiceError

    BOUNDARIES:
    - NEVER retries
    - NEVER returns fallback text of its own
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
        currency: str = "KGS",
    ):
        """
        Args:
            settings: Gemini settings (loaded from the environment if None)
            model: Anything with an async generate_content_async(prompt);
                   a configured genai.GenerativeModel is created if None
        """
        self._settings = settings or get_settings().gemini
        self._currency = currency
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def analyze(
        self,
        query: str,
        summary: FinancialSummary,
        language: Language = Language.EN,
        history: str = "",
    ) -> str:
        """
        Ask Gemini about the summary.

        Raises:
            ExternalServiceError: On any failure, timeout or empty reply
        """
        prompt = build_prompt(query, summary, language, history, self._currency)

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._settings.request_timeout_seconds,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError as e:
            raise ExternalServiceError(
                "gemini",
                f"No response within {self._settings.request_timeout_seconds}s",
            ) from e
        except Exception as e:
            raise ExternalServiceError("gemini", str(e)) from e

        if not text:
            raise ExternalServiceError("gemini", "Empty response")
        return text


# =============================================================================
# CHAT SESSION
# =============================================================================

class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    is_ai: bool = Field(
        default=False,
        description="True only for replies generated by the model"
    )


def format_history(messages: Sequence[ChatMessage], window: int) -> str:
    """The last `window` messages as 'User: ...' / 'Assistant: ...' lines."""
    return "\n".join(
        f"{'User' if m.role == ChatRole.USER else 'Assistant'}: {m.content}"
        for m in list(messages)[-window:]
    )


class ChatSession:
    """
    One conversation with the assistant.

    Only one question may be outstanding at a time (is_waiting).
    """

    def __init__(
        self,
        assistant: GeminiAssistant,
        language: Language = Language.EN,
        history_window: int = 8,
        audit: Optional[AuditLogger] = None,
        user_id: Optional[str] = None,
    ):
        self._assistant = assistant
        self._language = Language(language)
        self._history_window = history_window
        self._audit = audit
        self._user_id = user_id

        self.is_waiting = False
        self.messages: list[ChatMessage] = [
            ChatMessage(role=ChatRole.ASSISTANT, content=WELCOME_MESSAGES[self._language])
        ]

    @property
    def language(self) -> Language:
        return self._language

    async def ask(
        self,
        query: str,
        visible: Sequence[Transaction],
        all_transactions: Sequence[Transaction],
    ) -> ChatMessage:
        """
        Ask a question about the ledger and record both sides.

        Returns:
            The assistant's reply, or a localized error message

        Raises:
            ValueError: Empty question
            AssistantBusyError: A previous question is still pending
        """
        query = query.strip()
        if not query:
            raise ValueError("Question is empty")
        if self.is_waiting:
            raise AssistantBusyError("Wait for the current answer first")

        self.messages.append(ChatMessage(role=ChatRole.USER, content=query))
        history = format_history(self.messages, self._history_window)

        self.is_waiting = True
        try:
            summary = build_financial_summary(visible, all_transactions, self._language)
            text = await self._assistant.analyze(query, summary, self._language, history)
            reply = ChatMessage(role=ChatRole.ASSISTANT, content=text, is_ai=True)
        except ExternalServiceError as e:
            logger.warning("assistant_unavailable", service=e.service, error=e.message)
            if self._audit is not None:
                self._audit.log(AuditEventBuilder.external_service_error(e.service, e.message))
            reply = ChatMessage(role=ChatRole.ASSISTANT, content=ERROR_MESSAGES[self._language])
        finally:
            self.is_waiting = False

        self.messages.append(reply)
        if self._audit is not None:
            self._audit.log(AuditEventBuilder.assistant_query(
                self._user_id, self._language.value, answered=reply.is_ai
            ))
        return reply
