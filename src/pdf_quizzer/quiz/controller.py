"""Top-level application controller tying processing to the quiz session."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .document import DocumentPaginator
from .errors import DocumentError, QuizError
from .models import DEFAULT_CHUNK_SIZE, Question, QuizMode
from .processing import (
    EMPTY_RESULT_MESSAGE,
    ChunkProcessor,
    Extractor,
    ProcessingState,
)
from .session import QuizOutcome, QuizSession

__all__ = ["AppState", "QuizController"]

DocumentOpener = Callable[[bytes], DocumentPaginator]


class AppState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    QUIZ = "quiz"
    RESULTS = "results"


class QuizController:
    """Own one document run and the quiz built on top of it.

    ``LOADING`` moves to ``QUIZ`` as soon as the first chunk yields a
    question and never moves back while that run lives. Any fatal error
    resets everything to ``IDLE`` with :attr:`error` set for display.
    """

    def __init__(
        self,
        extractor: Extractor,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[logging.Logger] = None,
        open_document: DocumentOpener = DocumentPaginator.from_bytes,
    ) -> None:
        self._extractor = extractor
        self._chunk_size = chunk_size
        self._logger = logger or logging.getLogger(__name__)
        self._open_document = open_document
        self._paginator: Optional[DocumentPaginator] = None
        self._processor: Optional[ChunkProcessor] = None
        self._task: Optional[asyncio.Task[ProcessingState]] = None
        self._ready = asyncio.Event()
        self.app_state = AppState.IDLE
        self.mode = QuizMode.QUIZ
        self.error: Optional[str] = None
        self.session: Optional[QuizSession] = None
        self.outcome: Optional[QuizOutcome] = None
        self.loading_message = ""

    @property
    def processing(self) -> ProcessingState:
        if self._processor is None:
            return ProcessingState(chunk_size=self._chunk_size)
        return self._processor.state

    @property
    def processing_message(self) -> str:
        if self._processor is None:
            return self.loading_message
        return self._processor.state.message or self.loading_message

    async def process_file(
        self,
        source: Union[bytes, Path],
        *,
        mode: QuizMode = QuizMode.QUIZ,
    ) -> None:
        """Load ``source`` and start chunk processing in the background."""

        self.reset()
        self.mode = mode
        self.app_state = AppState.LOADING
        self.loading_message = "Loading PDF..."
        try:
            if isinstance(source, Path):
                source = _read_source(source)
            paginator = self._open_document(source)
        except QuizError as exc:
            self._abort(exc)
            return

        self._paginator = paginator
        processor = ChunkProcessor(
            paginator,
            self._extractor,
            chunk_size=self._chunk_size,
            logger=self._logger,
            listeners=[self._on_progress],
        )
        self._processor = processor
        processor.start()
        self.session = QuizSession.live(processor.state, mode=mode)
        self._task = asyncio.create_task(self._drive(processor))

    def load_questions(
        self,
        questions: Sequence[Question],
        *,
        mode: QuizMode = QuizMode.QUIZ,
    ) -> bool:
        """Start a quiz over an already extracted question list."""

        self.reset()
        self.mode = mode
        if not questions:
            self.error = EMPTY_RESULT_MESSAGE
            return False
        self.session = QuizSession(fixed_questions=tuple(questions), mode=mode)
        self.app_state = AppState.QUIZ
        return True

    async def wait_until_ready(self) -> AppState:
        """Wait until loading either produced a question or failed."""

        if self.app_state is AppState.LOADING:
            await self._ready.wait()
        return self.app_state

    async def wait_for_processing(self) -> None:
        task = self._task
        if task is not None:
            await task

    def toggle_flag(self, index: int) -> bool:
        session = self._require_session()
        return session.toggle_flag(index)

    def complete_quiz(self) -> QuizOutcome:
        session = self._require_session()
        self.outcome = session.complete()
        self.app_state = AppState.RESULTS
        self._logger.info(
            "Quiz completed",
            extra={
                "score": self.outcome.score,
                "scorable": self.outcome.scorable,
                "incorrect": len(self.outcome.incorrect),
            },
        )
        return self.outcome

    def requiz(self) -> bool:
        """Replay the questions missed in the last outcome, if any."""

        if self.outcome is None or not self.outcome.incorrect:
            return False
        self._stop_background()
        self.session = QuizSession.requiz(self.outcome.incorrect, mode=self.mode)
        self.outcome = None
        self.error = None
        self.app_state = AppState.QUIZ
        return True

    def reset(self) -> None:
        """Return to file selection, discarding the current run."""

        self._stop_background()
        self._processor = None
        self.session = None
        self.outcome = None
        self.error = None
        self.loading_message = ""
        self.app_state = AppState.IDLE
        # Wake anyone still waiting on the run being discarded.
        self._ready.set()
        self._ready = asyncio.Event()

    async def _drive(self, processor: ChunkProcessor) -> ProcessingState:
        try:
            return await processor.run()
        except QuizError as exc:
            if self._processor is processor:
                self._task = None
                self._abort(exc)
            return processor.state
        finally:
            if self._processor is processor and self._paginator is not None:
                self._paginator.close()
                self._paginator = None

    def _on_progress(self, state: ProcessingState) -> None:
        if self.app_state is AppState.LOADING and state.questions:
            self.app_state = AppState.QUIZ
            self._ready.set()

    def _abort(self, exc: QuizError) -> None:
        self._logger.error(
            "Processing aborted",
            extra={"error_type": type(exc).__name__},
        )
        self.reset()
        self.error = str(exc)

    def _stop_background(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self._paginator is not None:
            self._paginator.close()
            self._paginator = None

    def _require_session(self) -> QuizSession:
        if self.session is None:
            raise RuntimeError("No quiz session is active.")
        return self.session


def _read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise DocumentError(f"Failed to read the PDF file: {exc}") from exc
