"""AI assistant package."""

from bookkeeper.agents.assistant import (
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

__all__ = [
    "AssistantBusyError",
    "ChatMessage",
    "ChatRole",
    "ChatSession",
    "ExternalServiceError",
    "GeminiAssistant",
    "build_financial_summary",
    "build_prompt",
    "format_history",
]
