"""Shared AI helper utilities."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Optional, TypeVar

from dotenv import load_dotenv
from openai import AsyncOpenAI, RateLimitError

__all__ = ["call_with_backoff", "is_rate_limit_error", "load_client"]

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]

_LOGGER = logging.getLogger("pdf_quizzer.core.ai")


def load_client(*, timeout: Optional[float] = None) -> Any:
    """Initialize an async OpenAI client using environment credentials."""
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not found in environment. Set it or add to .env"
        )
    # Retries are owned by call_with_backoff.
    if timeout is None:
        return AsyncOpenAI(api_key=api_key, max_retries=0)
    return AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` is an explicit rate-limit signal."""

    if isinstance(exc, RateLimitError):
        return True
    return getattr(exc, "status_code", None) == 429


async def call_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    logger: Optional[logging.Logger] = None,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Await ``operation`` retrying only on rate-limit errors.

    The delay starts at ``base_delay`` seconds and doubles after every
    rate-limited attempt. Once ``max_attempts`` calls have been made, or on
    the first error that is not a rate-limit signal, the last exception
    propagates unchanged so callers can translate it.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    log = logger or _LOGGER
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if not is_rate_limit_error(exc) or attempt >= max_attempts:
                raise
            delay = base_delay * (2 ** (attempt - 1))
            log.warning(
                "Rate limit hit; retrying",
                extra={
                    "operation": label,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                },
            )
            await sleep(delay)
