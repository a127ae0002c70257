"""Comprehension-check generation via Claude or an OpenAI-compatible API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from socraticreader.config.settings import QuizConfig, QuizProvider

SYSTEM_PROMPT = (
    "You are a helpful tutor. Generate a single multiple-choice question based on "
    "the provided text to test comprehension. Return ONLY a valid JSON object with "
    "the following structure: { question: string, options: string[], "
    "correctOptionIndex: number, explanation: string }."
)


class CheckGenerationError(Exception):
    """Raised when a provider fails or returns an unusable check."""


@dataclass
class Check:
    unit_id: str
    question: str
    options: list[str] = field(default_factory=list)
    correct_option_index: int = 0
    explanation: str = ""
    fallback: bool = False

    def is_correct(self, selected_index: int) -> bool:
        return selected_index == self.correct_option_index


@dataclass
class CheckAnswer:
    unit_id: str
    selected_index: int
    correct: bool


# Deterministic checks used whenever generation fails, keyed by unit id
_FALLBACK_CHECKS: dict[str, dict] = {
    "section_1": {
        "question": "Why is the Socratic method compared to 'midwifery' (maieutics)?",
        "options": [
            "Because Socrates' mother was a midwife.",
            "Because it helps give birth to ideas implicit in the mind.",
            "Because it is a painful process.",
        ],
        "correct_option_index": 1,
        "explanation": (
            "Socrates believed he didn't teach new knowledge, but rather helped others "
            "bring out (give birth to) the knowledge they already possessed."
        ),
    },
    "section_2": {
        "question": "What is the primary mechanism of the Socratic method described here?",
        "options": [
            "Hypothesis elimination through identifying contradictions.",
            "Memorization of facts.",
            "Listening to a lecture.",
        ],
        "correct_option_index": 0,
        "explanation": (
            "The text states it is a method of hypothesis elimination, where better "
            "hypotheses are found by eliminating those that lead to contradictions."
        ),
    },
}

_GENERIC_FALLBACK = {
    "question": "What is the main idea of this paragraph?",
    "options": [
        "To explain the history of the concept.",
        "To define the core logic.",
        "To provide examples.",
    ],
    "correct_option_index": 1,
    "explanation": "The paragraph focuses on defining the underlying logic and methodology.",
}


def fallback_check(unit_id: str) -> Check:
    data = _FALLBACK_CHECKS.get(unit_id, _GENERIC_FALLBACK)
    return Check(
        unit_id=unit_id,
        question=data["question"],
        options=list(data["options"]),
        correct_option_index=data["correct_option_index"],
        explanation=data["explanation"],
        fallback=True,
    )


def parse_check(text: str, unit_id: str) -> Check:
    """Parse a provider's JSON reply into a validated :class:`Check`."""
    json_match = re.search(r"\{[\s\S]*\}", text or "")
    if not json_match:
        raise CheckGenerationError("No JSON object in response")
    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise CheckGenerationError(f"Failed to parse check JSON: {e}") from e

    question = data.get("question")
    options = data.get("options")
    index = data.get("correctOptionIndex", data.get("correct_option_index"))

    if not isinstance(question, str) or not question.strip():
        raise CheckGenerationError("Check has no question")
    if not isinstance(options, list) or len(options) < 2:
        raise CheckGenerationError("Check needs at least two options")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(options):
        raise CheckGenerationError(f"Correct option index out of range: {index!r}")

    return Check(
        unit_id=unit_id,
        question=question.strip(),
        options=[str(o) for o in options],
        correct_option_index=index,
        explanation=str(data.get("explanation", "")),
    )


class QuizGenerator:
    """Asks the configured provider for one multiple-choice check per call."""

    def __init__(self, config: Optional[QuizConfig] = None):
        self.config = config or QuizConfig()
        self._client = None

    def _get_client(self):
        if self._client is None:
            provider = self.config.get_provider()
            api_key = self.config.get_api_key()
            if not api_key:
                return None
            if provider == QuizProvider.ANTHROPIC:
                import anthropic
                self._client = anthropic.AsyncAnthropic(api_key=api_key)
            else:
                import openai
                self._client = openai.AsyncOpenAI(
                    api_key=api_key, base_url=self.config.get_base_url(),
                )
        return self._client

    async def generate(self, unit_text: str, unit_id: str) -> Check:
        client = self._get_client()
        if client is None:
            raise CheckGenerationError(
                f"No API key configured for provider {self.config.get_provider().value}"
            )

        logger.debug(
            "Generating check for {} with {}", unit_id, self.config.get_model(),
        )
        try:
            if self.config.get_provider() == QuizProvider.ANTHROPIC:
                text = await self._complete_anthropic(client, unit_text)
            else:
                text = await self._complete_openai(client, unit_text)
        except Exception as e:
            raise CheckGenerationError(f"Check generation failed: {e}") from e

        return parse_check(text, unit_id)

    async def _complete_anthropic(self, client, unit_text: str) -> str:
        response = await client.messages.create(
            model=self.config.get_model(),
            max_tokens=self.config.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": f'Text: "{unit_text}"'}],
        )
        return response.content[0].text

    async def _complete_openai(self, client, unit_text: str) -> str:
        completion = await client.chat.completions.create(
            model=self.config.get_model(),
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f'Text: "{unit_text}"'},
            ],
            response_format={"type": "json_object"},
        )
        content = completion.choices[0].message.content
        if not content:
            raise CheckGenerationError("No content from provider")
        return content
