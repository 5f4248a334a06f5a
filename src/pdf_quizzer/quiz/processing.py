"""Chunked, incremental extraction of questions from a whole PDF.

:class:`ChunkProcessor` walks a document in fixed-size page windows. Each
:meth:`ChunkProcessor.step` builds the chunk payload, asks the extractor for
questions, attaches page exhibits and appends the result to the shared
:class:`ProcessingState`. Chunks are strictly sequential: chunk ``N + 1`` is
never dispatched before chunk ``N`` has been merged, so the accumulated
question list follows document order at chunk granularity.

The question list is replaced, never mutated in place, so a quiz session
reading ``state.questions`` between steps always sees a consistent tuple.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Callable,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
)

from .document import PDF_MEDIA_TYPE
from .errors import EmptyResultError, ExtractionError, QuizError
from .models import DEFAULT_CHUNK_SIZE, Chunk, Question

__all__ = [
    "ChunkProcessor",
    "Extractor",
    "Paginator",
    "ProcessingState",
    "ProcessingStatus",
    "EMPTY_RESULT_MESSAGE",
]

EMPTY_RESULT_MESSAGE = (
    "No scorable questions could be extracted from the PDF. "
    "Please try a different file."
)


class Paginator(Protocol):
    def count_pages(self) -> int: ...

    def extract_pages(self, indices: Sequence[int]) -> bytes: ...


class Extractor(Protocol):
    async def extract(
        self, payload: bytes, media_type: str = PDF_MEDIA_TYPE
    ) -> List[Question]: ...


class ProcessingStatus(Enum):
    IDLE = "idle"
    PAGING = "paging"
    AWAITING_NEXT_CHUNK = "awaiting_next_chunk"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class ProcessingState:
    """Progress of one document-processing run."""

    total_pages: int = 0
    cursor: int = 0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    status: ProcessingStatus = ProcessingStatus.IDLE
    questions: tuple[Question, ...] = ()
    message: str = ""
    error: Optional[QuizError] = None
    chunks_dispatched: int = 0

    @property
    def complete(self) -> bool:
        return self.status is ProcessingStatus.COMPLETE

    @property
    def finished(self) -> bool:
        return self.status in (
            ProcessingStatus.COMPLETE,
            ProcessingStatus.FAILED,
        )

    def append(self, questions: Iterable[Question]) -> None:
        self.questions = self.questions + tuple(questions)


Listener = Callable[[ProcessingState], None]


class ChunkProcessor:
    """Drive a paginator and extractor over a document, chunk by chunk.

    Page payloads are built on the event loop thread; PyMuPDF documents
    must not be shared across threads.
    """

    def __init__(
        self,
        paginator: Paginator,
        extractor: Extractor,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[logging.Logger] = None,
        listeners: Sequence[Listener] = (),
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._paginator = paginator
        self._extractor = extractor
        self._chunk_size = chunk_size
        self._logger = logger or logging.getLogger(__name__)
        self._listeners: list[Listener] = list(listeners)
        self.state = ProcessingState(chunk_size=chunk_size)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def start(self) -> ProcessingState:
        """Reset the cursor and enter ``PAGING`` for the first window."""

        total = self._paginator.count_pages()
        self.state = ProcessingState(
            total_pages=total,
            chunk_size=self._chunk_size,
            status=ProcessingStatus.PAGING,
        )
        self._logger.info(
            "Starting PDF processing",
            extra={"total_pages": total, "chunk_size": self._chunk_size},
        )
        self._notify()
        return self.state

    async def step(self) -> ProcessingStatus:
        """Process the window at the cursor and return the new status."""

        state = self.state
        if state.finished:
            return state.status
        if state.status is ProcessingStatus.IDLE:
            raise RuntimeError("start() must be called before step().")
        state.status = ProcessingStatus.PAGING

        chunk = Chunk.at(
            state.cursor, width=self._chunk_size, total=state.total_pages
        )
        if not len(chunk):
            self._finish()
            return state.status

        state.message = (
            f"Processing pages {chunk.start + 1}–{chunk.end} "
            f"of {state.total_pages}..."
        )
        state.chunks_dispatched += 1
        self._logger.info(
            "Dispatching chunk",
            extra={
                "start": chunk.start,
                "end": chunk.end,
                "total_pages": state.total_pages,
            },
        )
        self._notify()

        try:
            questions = await self._process_chunk(chunk)
        except Exception as exc:
            self._fail(chunk, exc)
            return state.status

        state.append(questions)
        state.cursor = chunk.end
        self._logger.info(
            "Merged chunk",
            extra={
                "start": chunk.start,
                "question_count": len(questions),
                "with_images": sum(1 for q in questions if q.image),
                "accumulated": len(state.questions),
            },
        )
        if state.cursor >= state.total_pages:
            self._finish()
        else:
            state.status = ProcessingStatus.AWAITING_NEXT_CHUNK
            self._notify()
        return state.status

    async def run(self) -> ProcessingState:
        """Step until a terminal status, raising the run's error if any."""

        if self.state.status is ProcessingStatus.IDLE:
            self.start()
        while not self.state.finished:
            await self.step()
        if self.state.error is not None:
            raise self.state.error
        return self.state

    async def _process_chunk(self, chunk: Chunk) -> List[Question]:
        pages = chunk.pages
        exhibits_future = asyncio.gather(
            *(self._payload((page,)) for page in pages)
        )
        try:
            combined = await self._payload(pages)
            questions = await self._extractor.extract(combined, PDF_MEDIA_TYPE)
            exhibits = await exhibits_future
        except BaseException:
            # In-flight page builds finish on their own; drop their result.
            exhibits_future.add_done_callback(_discard_result)
            raise
        return attach_exhibits(questions, chunk, exhibits)

    async def _payload(self, indices: Sequence[int]) -> bytes:
        return self._paginator.extract_pages(indices)

    def _finish(self) -> None:
        state = self.state
        state.status = ProcessingStatus.COMPLETE
        if not state.questions:
            state.error = EmptyResultError(EMPTY_RESULT_MESSAGE)
            self._logger.warning(
                "Processing finished without questions",
                extra={"total_pages": state.total_pages},
            )
        else:
            state.message = (
                f"Processed all {state.total_pages} pages: "
                f"{len(state.questions)} questions."
            )
            self._logger.info(
                "Processing complete",
                extra={
                    "total_pages": state.total_pages,
                    "question_count": len(state.questions),
                    "chunks": state.chunks_dispatched,
                },
            )
        self._notify()

    def _fail(self, chunk: Chunk, exc: Exception) -> None:
        state = self.state
        if isinstance(exc, QuizError):
            error = exc
        else:
            error = ExtractionError(
                f"An error occurred while processing: {exc}"
            )
            error.__cause__ = exc
        state.status = ProcessingStatus.FAILED
        state.error = error
        state.message = str(error)
        self._logger.error(
            "Chunk processing failed",
            extra={"start": chunk.start, "end": chunk.end},
            exc_info=exc,
        )
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)


def attach_exhibits(
    questions: Sequence[Question],
    chunk: Chunk,
    exhibits: Sequence[bytes],
) -> List[Question]:
    """Attach single-page payloads to questions that reference an exhibit.

    ``exhibits[i]`` must be the payload for page ``chunk.start + i``: the
    extractor reports page indices relative to the combined chunk payload,
    and both are built from ``chunk.pages`` in the same order. Indices
    outside the chunk leave the question without an image.
    """

    attached: List[Question] = []
    for question in questions:
        if (
            question.has_image
            and chunk.contains_local(question.page_index)
            and question.page_index < len(exhibits)  # type: ignore[operator]
        ):
            question = question.with_image(exhibits[question.page_index])
        attached.append(question)
    return attached


def _discard_result(future: "asyncio.Future[object]") -> None:
    if not future.cancelled():
        future.exception()
