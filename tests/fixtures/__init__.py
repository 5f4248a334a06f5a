"""Shared testing fixtures and doubles for the pdf-quizzer test suite."""

from .openai import (  # noqa: F401
    AsyncOpenAIStub,
    RecordingSleep,
    connection_error,
    rate_limit_error,
    server_error,
)
from .pdf import make_encrypted_pdf, make_pdf, page_texts  # noqa: F401
from .quiz import FakeExtractor, FakePaginator, question  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "AsyncOpenAIStub",
    "FakeExtractor",
    "FakePaginator",
    "RecordingSleep",
    "WorkspaceBuilder",
    "build_tree",
    "connection_error",
    "make_encrypted_pdf",
    "make_pdf",
    "page_texts",
    "question",
    "rate_limit_error",
    "server_error",
]
