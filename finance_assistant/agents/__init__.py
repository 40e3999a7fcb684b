"""Language model agents package."""

from finance_assistant.agents.chat_agent import (
    GeminiChatAgent,
    LanguageModelError,
    LanguageModelInterface,
    build_prompt,
)
from finance_assistant.agents.context import (
    ContextCategory,
    FinancialContextBuilder,
    classify_query,
)

__all__ = [
    "ContextCategory",
    "FinancialContextBuilder",
    "GeminiChatAgent",
    "LanguageModelError",
    "LanguageModelInterface",
    "build_prompt",
    "classify_query",
]
