"""Quiz session state: answers, flags and deferred grading."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from .models import IncorrectQuestion, Question, QuizMode
from .processing import ProcessingState

__all__ = ["QuizOutcome", "QuizSession"]


@dataclass(frozen=True)
class QuizOutcome:
    """Result of grading a session."""

    score: int
    scorable: int
    total: int
    incorrect: tuple[IncorrectQuestion, ...]
    flagged: tuple[Question, ...] = ()

    @property
    def accuracy(self) -> float:
        if self.scorable == 0:
            return 0.0
        return self.score / self.scorable


@dataclass
class QuizSession:
    """Answers and flags over a question list that may still be growing.

    With ``feed`` set, :attr:`questions` reads the processing state's current
    tuple, so questions merged after the session began show up without any
    copy. Without a feed the session replays a fixed list and counts as
    fully processed.
    """

    fixed_questions: tuple[Question, ...] = ()
    feed: Optional[ProcessingState] = None
    mode: QuizMode = QuizMode.QUIZ
    answers: dict[int, frozenset[str]] = field(default_factory=dict)
    flagged: set[int] = field(default_factory=set)
    score: int = 0
    completed: bool = False

    @classmethod
    def live(
        cls, state: ProcessingState, *, mode: QuizMode = QuizMode.QUIZ
    ) -> "QuizSession":
        return cls(feed=state, mode=mode)

    @classmethod
    def requiz(
        cls,
        incorrect: Iterable[IncorrectQuestion],
        *,
        mode: QuizMode = QuizMode.QUIZ,
    ) -> "QuizSession":
        """Start over with exactly the previously missed questions."""

        return cls(
            fixed_questions=tuple(item.question for item in incorrect),
            mode=mode,
        )

    @property
    def questions(self) -> tuple[Question, ...]:
        if self.feed is not None:
            return self.feed.questions
        return self.fixed_questions

    @property
    def processing_complete(self) -> bool:
        if self.feed is None:
            return True
        return self.feed.complete

    def __len__(self) -> int:
        return len(self.questions)

    def submit_answer(self, index: int, chosen: Iterable[str]) -> None:
        """Record the chosen options for a question; grading waits."""

        self._check_index(index)
        self.answers[index] = frozenset(chosen)

    def answer_for(self, index: int) -> frozenset[str]:
        return self.answers.get(index, frozenset())

    def is_locked(self, index: int) -> bool:
        return self.mode is QuizMode.FOCUS and index in self.answers

    def toggle_flag(self, index: int) -> bool:
        """Flip the flag on ``index`` and return whether it is now flagged."""

        self._check_index(index)
        if index in self.flagged:
            self.flagged.discard(index)
            return False
        self.flagged.add(index)
        return True

    def flagged_questions(self) -> tuple[Question, ...]:
        questions = self.questions
        return tuple(
            questions[index]
            for index in sorted(self.flagged)
            if index < len(questions)
        )

    def complete(self) -> QuizOutcome:
        """Grade every scorable question by exact set equality."""

        questions = self.questions
        score = 0
        scorable = 0
        incorrect: list[IncorrectQuestion] = []
        for index, question in enumerate(questions):
            if not question.is_scorable:
                continue
            scorable += 1
            chosen = self.answer_for(index)
            if chosen == question.correct:
                score += 1
            else:
                incorrect.append(IncorrectQuestion(question, chosen))
        self.score = score
        self.completed = True
        return QuizOutcome(
            score=score,
            scorable=scorable,
            total=len(questions),
            incorrect=tuple(incorrect),
            flagged=self.flagged_questions(),
        )

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.questions):
            raise IndexError(
                f"Question index {index} is out of range "
                f"(0..{len(self.questions) - 1})."
            )
