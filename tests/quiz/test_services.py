from __future__ import annotations

import asyncio

import pytest

from fixtures import question, rate_limit_error, server_error
from pdf_quizzer.quiz.errors import ServiceError
from pdf_quizzer.quiz.services import (
    FALLBACK_EXPLANATION,
    FALLBACK_JOKE,
    ExplanationService,
    JokeService,
    build_explanation_prompt,
)


def test_explanation_prompt_lists_question_options_and_answers():
    prompt = build_explanation_prompt(
        question("Pick primes", ("2", "4", "5"), ("2", "5"))
    )

    assert '"Pick primes"' in prompt
    assert "Options: 2, 4, 5" in prompt
    assert "Correct Answer(s): 2, 5" in prompt


def test_explain_returns_model_text(openai_stub, sleeper):
    openai_stub.queue_response("  Because two is prime.  ")
    service = ExplanationService(openai_stub, model="gpt-test", sleep=sleeper)

    text = asyncio.run(service.explain(question("Q")))

    assert text == "Because two is prime."
    assert openai_stub.calls[0]["model"] == "gpt-test"


def test_explain_falls_back_on_empty_text(openai_stub, sleeper):
    openai_stub.queue_response("")
    service = ExplanationService(openai_stub, sleep=sleeper)

    assert asyncio.run(service.explain(question("Q"))) == FALLBACK_EXPLANATION


def test_explain_retries_with_one_second_base(openai_stub, sleeper):
    openai_stub.queue_error(rate_limit_error())
    openai_stub.queue_response("ok")
    service = ExplanationService(openai_stub, sleep=sleeper)

    assert asyncio.run(service.explain(question("Q"))) == "ok"
    assert sleeper.delays == [1.0]


def test_explain_raises_service_error(openai_stub, sleeper):
    openai_stub.queue_error(server_error("down"))
    service = ExplanationService(openai_stub, sleep=sleeper)

    with pytest.raises(ServiceError, match="fetching the explanation"):
        asyncio.run(service.explain(question("Q")))


def test_joke_never_raises(openai_stub, sleeper):
    for _ in range(3):
        openai_stub.queue_error(rate_limit_error())
    service = JokeService(openai_stub, sleep=sleeper)

    assert asyncio.run(service.joke()) == FALLBACK_JOKE
    assert len(openai_stub.calls) == 3


def test_joke_returns_model_text(openai_stub, sleeper):
    openai_stub.queue_response("A SQL query walks into a bar...")

    joke = asyncio.run(JokeService(openai_stub, sleep=sleeper).joke())

    assert joke.startswith("A SQL query")
