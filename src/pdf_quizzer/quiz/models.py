"""Immutable records shared by the processing loop and quiz sessions."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

DEFAULT_CHUNK_SIZE = 3


class QuizMode(Enum):
    """How answers are graded and navigated during a session."""

    QUIZ = "quiz"
    LEARN = "learn"
    FOCUS = "focus"

    @classmethod
    def from_value(cls, value: str) -> "QuizMode":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown quiz mode '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class Question:
    """A multiple-choice question extracted from one chunk.

    ``page_index`` is relative to the chunk the question came from and is
    never rewritten to a document-wide index. ``image`` holds a standalone
    single-page PDF and is only set when ``has_image`` is true and the
    page index fell inside that chunk.
    """

    prompt: str
    options: tuple[str, ...]
    answer: tuple[str, ...] = ()
    page_index: Optional[int] = None
    has_image: bool = False
    image: Optional[bytes] = field(default=None, repr=False, compare=False)

    @property
    def correct(self) -> frozenset[str]:
        return frozenset(self.answer)

    @property
    def is_scorable(self) -> bool:
        return bool(self.answer)

    @property
    def image_data_uri(self) -> Optional[str]:
        if self.image is None:
            return None
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:application/pdf;base64,{encoded}"

    def with_image(self, payload: bytes) -> "Question":
        return replace(self, image=payload)

    def to_record(self) -> dict[str, Any]:
        """Serialize using the field names the extraction service emits."""

        return {
            "question": self.prompt,
            "options": list(self.options),
            "answer": list(self.answer),
            "pageIndex": self.page_index,
            "hasImage": self.has_image,
        }


@dataclass(frozen=True)
class Chunk:
    """Half-open window ``[start, end)`` of global page indices."""

    start: int
    end: int

    @classmethod
    def at(cls, cursor: int, *, width: int, total: int) -> "Chunk":
        return cls(start=cursor, end=min(cursor + width, total))

    @property
    def pages(self) -> tuple[int, ...]:
        return tuple(range(self.start, self.end))

    def __len__(self) -> int:
        return max(0, self.end - self.start)

    def contains_local(self, page_index: Optional[int]) -> bool:
        """Return whether a chunk-relative index addresses one of its pages."""

        if page_index is None or isinstance(page_index, bool):
            return False
        return 0 <= page_index < len(self)


@dataclass(frozen=True)
class IncorrectQuestion:
    """A scorable question the user got wrong, with what they picked."""

    question: Question
    user_answers: frozenset[str]
