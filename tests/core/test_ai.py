from __future__ import annotations

import asyncio
import logging

import pytest

from fixtures import rate_limit_error, server_error
from pdf_quizzer.core import ai


class _Status(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"status {status_code}")
        self.status_code = status_code


def _flaky(failures):
    """Return an operation that raises each queued failure, then succeeds."""

    pending = list(failures)
    calls = []

    async def _operation():
        calls.append(len(calls) + 1)
        if pending:
            raise pending.pop(0)
        return "ok"

    return _operation, calls


def test_load_client_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ai, "load_dotenv", lambda: None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError) as exc:
        ai.load_client()
    assert "OPENAI_API_KEY" in str(exc.value)


def test_load_client_passes_key_and_timeout(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    created = []
    monkeypatch.setattr(ai, "load_dotenv", lambda: None)
    monkeypatch.setattr(
        ai, "AsyncOpenAI", lambda **kwargs: created.append(kwargs) or kwargs
    )
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    ai.load_client()
    ai.load_client(timeout=30.0)

    assert created[0] == {"api_key": "test-key", "max_retries": 0}
    assert created[1] == {
        "api_key": "test-key",
        "timeout": 30.0,
        "max_retries": 0,
    }


def test_load_client_disables_sdk_retries(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(ai, "load_dotenv", lambda: None)
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    assert ai.load_client().max_retries == 0
    assert ai.load_client(timeout=5.0).max_retries == 0


def test_is_rate_limit_error_detects_sdk_and_status_codes() -> None:
    assert ai.is_rate_limit_error(rate_limit_error())
    assert ai.is_rate_limit_error(_Status(429))
    assert not ai.is_rate_limit_error(_Status(500))
    assert not ai.is_rate_limit_error(server_error())
    assert not ai.is_rate_limit_error(ValueError("nope"))


def test_backoff_retries_rate_limits_with_doubling_delay(sleeper) -> None:
    operation, calls = _flaky([rate_limit_error(), rate_limit_error()])

    result = asyncio.run(
        ai.call_with_backoff(
            operation, label="test", base_delay=2.0, sleep=sleeper
        )
    )

    assert result == "ok"
    assert calls == [1, 2, 3]
    assert sleeper.delays == [2.0, 4.0]


def test_backoff_gives_up_after_max_attempts(sleeper) -> None:
    error = rate_limit_error("still limited")
    operation, calls = _flaky([error, error, error, error])

    with pytest.raises(type(error)) as exc:
        asyncio.run(
            ai.call_with_backoff(
                operation, label="test", base_delay=1.0, sleep=sleeper
            )
        )

    assert "still limited" in str(exc.value)
    assert calls == [1, 2, 3]
    assert sleeper.delays == [1.0, 2.0]


def test_backoff_does_not_retry_other_errors(sleeper) -> None:
    operation, calls = _flaky([server_error("boom")])

    with pytest.raises(Exception) as exc:
        asyncio.run(
            ai.call_with_backoff(operation, label="test", sleep=sleeper)
        )

    assert "boom" in str(exc.value)
    assert calls == [1]
    assert sleeper.delays == []


def test_backoff_logs_each_retry(sleeper, caplog) -> None:
    operation, _ = _flaky([rate_limit_error()])
    logger = logging.getLogger("pdf_quizzer.tests.backoff")

    with caplog.at_level(logging.WARNING, logger=logger.name):
        asyncio.run(
            ai.call_with_backoff(
                operation,
                label="generate_quiz",
                logger=logger,
                sleep=sleeper,
            )
        )

    records = [r for r in caplog.records if r.name == logger.name]
    assert len(records) == 1
    assert records[0].operation == "generate_quiz"
    assert records[0].attempt == 1


def test_backoff_rejects_non_positive_attempts(sleeper) -> None:
    operation, _ = _flaky([])
    with pytest.raises(ValueError):
        asyncio.run(
            ai.call_with_backoff(
                operation, label="x", max_attempts=0, sleep=sleeper
            )
        )
