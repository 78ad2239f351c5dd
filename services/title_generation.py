# services/title_generation.py
"""
Issue title generation.

1. Keep a meaningful title the user already typed.
2. Optional: ask the LLM (only when the caller passes a key and a client).
3. Fallback: derive a title from the content with plain text processing.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from ai.prompts import TITLE_REQUEST, TITLE_WRITER
from services.openai_llm import LLMService

logger = logging.getLogger(__name__)

GENERIC_TITLES = (
    "generated issue",
    "new issue",
    "issue",
    "feature request",
    "bug report",
    "enhancement",
)
FALLBACK_TITLE = "Generated Issue"
MAX_SENTENCE_LENGTH = 50
MAX_AI_TITLE_LENGTH = 70

_HEADING_TITLE_PREFIX = re.compile(r"^#+\s*title:?\s*", re.IGNORECASE)
_TITLE_PREFIX = re.compile(r"^title:?\s*", re.IGNORECASE)
_SENTENCE_END = re.compile(r"[.!?]")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class AutoTitleResult:
    title: str
    is_generated: bool
    alternatives: list[str] = field(default_factory=list)


def is_generic_title(title: str) -> bool:
    normalized = title.strip().lower()
    return any(normalized == g or normalized.startswith(g) for g in GENERIC_TITLES)


def _clean(text: str) -> str:
    return _WHITESPACE.sub(" ", _NON_WORD.sub(" ", text)).strip()


def generate_fallback_title(content: str) -> str:
    sanitized = content.strip()
    sanitized = _HEADING_TITLE_PREFIX.sub("", sanitized)
    sanitized = _TITLE_PREFIX.sub("", sanitized)

    first_sentence = _clean(_SENTENCE_END.split(sanitized, maxsplit=1)[0])
    if first_sentence and len(first_sentence) <= MAX_SENTENCE_LENGTH:
        return first_sentence

    cleaned = _clean(sanitized)
    if len(cleaned) > MAX_SENTENCE_LENGTH:
        cleaned = cleaned[:47] + "..."
    return cleaned or FALLBACK_TITLE


async def _generate_ai_title(
    content: str,
    api_key: str,
    llm: LLMService,
    model: str | None = None,
) -> AutoTitleResult:
    raw = await llm.extract_json(
        api_key,
        TITLE_WRITER,
        TITLE_REQUEST.format(content=content),
        model=model,
        temperature=0.3,
        max_tokens=200,
    )
    data = json.loads(raw)

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValueError("LLM response has no title")
    title = title.strip()
    if len(title) > MAX_AI_TITLE_LENGTH:
        title = title[:67] + "..."

    alternatives = data.get("alternatives")
    if not isinstance(alternatives, list):
        alternatives = []

    return AutoTitleResult(
        title=title,
        is_generated=True,
        alternatives=[a.strip() for a in alternatives if isinstance(a, str) and a.strip()],
    )


async def generate_auto_title(
    content: str,
    current_title: str | None = None,
    *,
    api_key: str | None = None,
    llm: LLMService | None = None,
    model: str | None = None,
) -> AutoTitleResult:
    """Pick a title for an issue. Never raises."""
    if current_title and len(current_title.strip()) > 5 and not is_generic_title(current_title):
        return AutoTitleResult(title=current_title.strip(), is_generated=False)

    if api_key and llm is not None:
        try:
            return await _generate_ai_title(content, api_key, llm, model)
        except Exception as exc:
            logger.warning("AI title generation failed, using fallback: %s", exc)

    return AutoTitleResult(title=generate_fallback_title(content), is_generated=False)
