"""Auxiliary AI calls: answer explanations and loading-screen jokes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from ..core.ai import Sleeper, call_with_backoff
from .errors import ServiceError
from .models import Question

__all__ = [
    "ExplanationService",
    "JokeService",
    "FALLBACK_EXPLANATION",
    "FALLBACK_JOKE",
]

FALLBACK_EXPLANATION = "The model did not provide an explanation."
FALLBACK_JOKE = "I tried to think of a joke, but my circuits are fried!"

_JOKE_PROMPT = (
    "Tell me a short, witty, SFW (safe for work) programmer-themed joke."
)


def build_explanation_prompt(question: Question) -> str:
    return (
        "You are a helpful teaching assistant. For the following "
        "multiple-choice question, please explain *why* the correct answer "
        "is correct. Keep the explanation clear, concise, and easy to "
        "understand.\n\n"
        f'Question: "{question.prompt}"\n'
        f"Options: {', '.join(question.options)}\n"
        f"Correct Answer(s): {', '.join(question.answer)}\n\n"
        "Provide only the explanation text, without any introductory "
        'phrases like "The explanation is..." or "Sure, here\'s...".'
    )


class _CompletionService:
    def __init__(
        self,
        client: Any,
        *,
        model: str,
        max_attempts: int,
        base_delay: float,
        logger: Optional[logging.Logger],
        sleep: Sleeper,
    ) -> None:
        self._client = client
        self._model = model
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def _complete(self, prompt: str, *, label: str) -> str:
        response = await call_with_backoff(
            lambda: self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
            ),
            label=label,
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            logger=self._logger,
            sleep=self._sleep,
        )
        content = response.choices[0].message.content
        return (content or "").strip()


class ExplanationService(_CompletionService):
    """Explain why a question's correct answers are correct."""

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-4o-mini",
        max_attempts: int = 3,
        base_delay: float = 1.0,
        logger: Optional[logging.Logger] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        super().__init__(
            client,
            model=model,
            max_attempts=max_attempts,
            base_delay=base_delay,
            logger=logger,
            sleep=sleep,
        )

    async def explain(self, question: Question) -> str:
        try:
            text = await self._complete(
                build_explanation_prompt(question), label="get_explanation"
            )
        except Exception as exc:
            self._logger.error("Error getting explanation", exc_info=True)
            raise ServiceError(
                "Sorry, an error occurred while fetching the explanation: "
                f"{exc}"
            ) from exc
        return text or FALLBACK_EXPLANATION


class JokeService(_CompletionService):
    """Fetch a short joke; never raises."""

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-4o-mini",
        max_attempts: int = 3,
        base_delay: float = 1.0,
        logger: Optional[logging.Logger] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        super().__init__(
            client,
            model=model,
            max_attempts=max_attempts,
            base_delay=base_delay,
            logger=logger,
            sleep=sleep,
        )

    async def joke(self) -> str:
        try:
            text = await self._complete(_JOKE_PROMPT, label="get_joke")
        except Exception:
            self._logger.warning("Joke request failed", exc_info=True)
            return FALLBACK_JOKE
        return text or FALLBACK_JOKE
