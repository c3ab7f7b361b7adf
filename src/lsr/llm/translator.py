"""LLM-backed page translation, used as the scheduler's translation backend."""

from __future__ import annotations

from lsr.core.config import LLMConfig
from lsr.llm.client import complete
from lsr.llm.prompts import format_batch_messages, format_page_messages


class LLMTranslator:
    """Translates PDF page text through any LiteLLM provider.

    Credentials stay in the environment (loaded from .env by the CLI);
    callers only see translated text or a TranslationError.
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    async def translate(self, text: str, prev_context: str = "", next_context: str = "") -> str:
        messages = format_page_messages(
            text,
            prev_context,
            next_context,
            self.config.source_language,
            self.config.target_language,
        )
        return await complete(messages, self.config)

    async def translate_batch(self, text: str, delimiter: str, page_count: int) -> str:
        messages = format_batch_messages(
            text,
            delimiter,
            page_count,
            self.config.source_language,
            self.config.target_language,
        )
        return await complete(messages, self.config)
