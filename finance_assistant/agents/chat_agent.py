"""
Chat Agent for Finance Assistant

Answers free-form questions that are not commands.

CRITICAL BOUNDARIES:
   - CAN: Phrase answers from the financial context it is given
   - CANNOT: Create, change or delete anything
   - CANNOT: Invent numbers that are not in the context
   - MUST: Say so when the context does not answer the question

The LLM is a TRANSLATOR, not an ORACLE.
Totals are computed by the queries package; the model only phrases them.
"""

from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from finance_assistant.config import GeminiSettings, get_settings


logger = structlog.get_logger()


class LanguageModelError(Exception):
    """The language model could not produce an answer."""
    pass


class LanguageModelInterface(ABC):
    """
    Contract for the question-answering collaborator.

    Implementations retry transient failures themselves and raise
    LanguageModelError once they give up.
    """

    @abstractmethod
    async def answer(self, question: str, financial_context: str) -> str:
        """
        Answer a question using only the given context.

        Args:
            question: The user's utterance, verbatim
            financial_context: Data slice assembled for this question

        Returns:
            The answer text

        Raises:
            LanguageModelError: If no answer could be produced
        """
        pass


SYSTEM_INSTRUCTION = """You are a personal finance assistant.
Answer questions about the user's finances using ONLY the data provided.
You cannot create or change records; commands are handled elsewhere.
If the data does not answer the question, say so."""


def build_prompt(question: str, financial_context: str, currency_symbol: str = "R$") -> str:
    """Assemble the prompt sent to the model."""
    return f"""**Formatting and style:**
---
1. Always show money with "{currency_symbol}" BEFORE the number, e.g. "a total of {currency_symbol} 50,00 in income".
2. Avoid ambiguous phrases like "10 incomes". Say "your income totalled {currency_symbol} 10,00".
3. Never use the generic term "monetary units".
---

**Financial context:**
---
{financial_context}
---

Based on the context and the formatting rules above, answer the user's question clearly, kindly and objectively.

**User question:** "{question}"
"""


class GeminiChatAgent(LanguageModelInterface):
    """
    Gemini-backed implementation of the language model contract.

    Transient API failures are retried with exponential backoff.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        currency_symbol: Optional[str] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._currency_symbol = currency_symbol or get_settings().app.currency_symbol
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def answer(self, question: str, financial_context: str) -> str:
        prompt = build_prompt(question, financial_context, self._currency_symbol)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_attempts),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                reraise=True,
            ):
                with attempt:
                    response = await self._model.generate_content_async(prompt)
        except Exception as e:
            logger.error("gemini_request_failed", error=str(e))
            raise LanguageModelError(f"Gemini request failed: {e}") from e

        try:
            text = response.text.strip()
        except ValueError as e:
            # Raised when the response was blocked and has no text part
            raise LanguageModelError(f"Gemini returned no text: {e}") from e

        if not text:
            raise LanguageModelError("Gemini returned an empty answer")
        return text
