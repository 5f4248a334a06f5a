from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from fixtures import (
    AsyncOpenAIStub,
    RecordingSleep,
    WorkspaceBuilder,
)


@pytest.fixture
def openai_stub() -> AsyncOpenAIStub:
    """Async chat-completions double; queue responses or inspect calls."""

    return AsyncOpenAIStub()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a workspace helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path / "workspace")


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    for key in (
        "PDF_QUIZZER_HOME",
        "PDF_QUIZZER_CONFIG",
        "PDF_QUIZZER_CHUNK_SIZE",
        "PDF_QUIZZER_MODEL",
        "PDF_QUIZZER_MODE",
        "PDF_QUIZZER_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PDF_QUIZZER_HOME", str(tmp_path / "home"))
    yield
    for name in ("pdf_quizzer.take", "pdf_quizzer.extract"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
