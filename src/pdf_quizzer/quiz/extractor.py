"""OpenAI-backed extraction of multiple-choice questions from PDF chunks."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import re
from typing import Any, List, Mapping, Optional

from openai import APIConnectionError

from ..core.ai import Sleeper, call_with_backoff
from .document import PDF_MEDIA_TYPE
from .errors import ExtractionError, NetworkError
from .models import Question

__all__ = [
    "ChunkExtractor",
    "EXTRACTION_PROMPT",
    "QUIZ_SCHEMA",
    "parse_question_records",
    "validate_record",
]

EXTRACTION_PROMPT = """
You are an expert quiz generator. Your task is to analyze the provided PDF
document and extract multiple-choice questions (MCQs) to create a quiz.

Follow these rules strictly:
1. Identify MCQs: find all questions that have a list of options.
2. Extract all options: you MUST extract every option for each question.
   If a question has two options (like True/False), include both "True"
   and "False". Do not omit any options.
3. Determine correct answers: a question may have one OR MORE correct
   answers, often marked by bold or underlined text or an asterisk (*).
   Identify ALL of them. If no answer is marked, use general knowledge to
   pick the most likely correct answer. If it still cannot be determined,
   return an empty array for "answer". Answers must repeat the option text
   exactly.
4. Page and image references: give each question's 0-based page index
   within the provided PDF chunk (the first page is 0), and set "hasImage"
   to true only when the question explicitly refers to an image, exhibit
   or diagram (for example "Refer to the exhibit.").
5. Return only the requested JSON object and nothing else.
""".strip()

QUIZ_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string"},
                    "options": {"type": "array", "items": {"type": "string"}},
                    "answer": {"type": "array", "items": {"type": "string"}},
                    "pageIndex": {"type": "integer"},
                    "hasImage": {"type": "boolean"},
                },
                "required": [
                    "question",
                    "options",
                    "answer",
                    "pageIndex",
                    "hasImage",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["questions"],
    "additionalProperties": False,
}


class ChunkExtractor:
    """Send one chunk PDF to the model and return validated questions.

    Rate-limit responses are retried with exponential backoff; every other
    failure, and a rate limit that outlasts ``max_attempts``, raises
    :class:`ExtractionError` (or :class:`NetworkError` for connectivity).
    """

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.0,
        max_output_tokens: int = 8192,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        logger: Optional[logging.Logger] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    async def extract(
        self, payload: bytes, media_type: str = PDF_MEDIA_TYPE
    ) -> List[Question]:
        params = self._request(payload, media_type)
        try:
            response = await call_with_backoff(
                lambda: self._client.chat.completions.create(**params),
                label="generate_quiz",
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                logger=self._logger,
                sleep=self._sleep,
            )
        except APIConnectionError as exc:
            self._logger.error("Extraction service unreachable", exc_info=True)
            raise NetworkError(f"Failed to generate quiz: {exc}") from exc
        except Exception as exc:
            self._logger.error("Error generating quiz", exc_info=True)
            raise ExtractionError(
                f"Failed to generate quiz: {_error_message(exc)}"
            ) from exc

        content = _message_content(response)
        if not content:
            raise ExtractionError(
                "Failed to generate quiz: the model returned an empty response."
            )
        records = parse_question_records(content)
        questions = [
            question
            for question in (validate_record(record) for record in records)
            if question is not None
        ]
        dropped = len(records) - len(questions)
        if dropped:
            self._logger.info(
                "Dropped malformed question records",
                extra={"dropped": dropped, "kept": len(questions)},
            )
        return questions

    def _request(self, payload: bytes, media_type: str) -> dict[str, Any]:
        encoded = base64.b64encode(payload).decode("ascii")
        return {
            "model": self._model,
            "temperature": self._temperature,
            "max_tokens": self._max_output_tokens,
            "messages": [
                {"role": "system", "content": EXTRACTION_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": "Extract the quiz from this document.",
                        },
                        {
                            "type": "file",
                            "file": {
                                "filename": "chunk.pdf",
                                "file_data": (
                                    f"data:{media_type};base64,{encoded}"
                                ),
                            },
                        },
                    ],
                },
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "quiz",
                    "schema": QUIZ_SCHEMA,
                    "strict": True,
                },
            },
        }


def parse_question_records(content: str) -> List[Any]:
    """Decode the model's JSON into a list of raw question records.

    Accepts either the ``{"questions": [...]}`` envelope or a bare array,
    optionally wrapped in a Markdown code fence.
    """

    fenced = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
    text = fenced.group(1) if fenced else content
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExtractionError(
            "API response is not valid JSON."
        ) from exc
    if isinstance(data, Mapping):
        data = data.get("questions")
    if not isinstance(data, list):
        raise ExtractionError(
            "API response is not in the expected array format."
        )
    return data


def validate_record(record: Any) -> Optional[Question]:
    """Return a :class:`Question` for a well-formed record, else ``None``."""

    if not isinstance(record, Mapping):
        return None
    prompt = record.get("question")
    options = record.get("options")
    answer = record.get("answer")
    if not isinstance(prompt, str) or not prompt.strip():
        return None
    if not _is_string_list(options) or len(options) < 2:
        return None
    if not isinstance(answer, list):
        return None
    has_image = record.get("hasImage", False)
    if not isinstance(has_image, bool):
        return None

    by_text = {option.strip(): option for option in options}
    correct = tuple(
        dict.fromkeys(
            by_text[item.strip()]
            for item in answer
            if isinstance(item, str) and item.strip() in by_text
        )
    )
    page_index = record.get("pageIndex")
    if isinstance(page_index, bool) or not isinstance(page_index, int):
        page_index = None
    return Question(
        prompt=prompt.strip(),
        options=tuple(options),
        answer=correct,
        page_index=page_index,
        has_image=has_image,
    )


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _message_content(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return ""
    return (content or "").strip()


def _error_message(exc: BaseException) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, Mapping):
        nested = body.get("error", body)
        if isinstance(nested, Mapping) and nested.get("message"):
            return str(nested["message"])
        if body.get("message"):
            return str(body["message"])
    return str(exc) or type(exc).__name__
