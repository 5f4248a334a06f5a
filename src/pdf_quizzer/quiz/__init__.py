from .controller import AppState, QuizController
from .document import DocumentPaginator, looks_like_pdf
from .errors import (
    DocumentError,
    EmptyResultError,
    ExtractionError,
    NetworkError,
    QuizError,
    ServiceError,
)
from .export import read_questions, write_questions
from .extractor import ChunkExtractor, parse_question_records, validate_record
from .models import Chunk, IncorrectQuestion, Question, QuizMode
from .processing import (
    ChunkProcessor,
    ProcessingState,
    ProcessingStatus,
    attach_exhibits,
)
from .services import ExplanationService, JokeService
from .session import QuizOutcome, QuizSession
from .view import QuizView, parse_command

__all__ = [
    "AppState",
    "QuizController",
    "DocumentPaginator",
    "looks_like_pdf",
    "QuizError",
    "DocumentError",
    "ExtractionError",
    "NetworkError",
    "EmptyResultError",
    "ServiceError",
    "read_questions",
    "write_questions",
    "ChunkExtractor",
    "parse_question_records",
    "validate_record",
    "Chunk",
    "IncorrectQuestion",
    "Question",
    "QuizMode",
    "ChunkProcessor",
    "ProcessingState",
    "ProcessingStatus",
    "attach_exhibits",
    "ExplanationService",
    "JokeService",
    "QuizOutcome",
    "QuizSession",
    "QuizView",
    "parse_command",
]
