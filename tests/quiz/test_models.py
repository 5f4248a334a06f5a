from __future__ import annotations

import base64

import pytest

from pdf_quizzer.quiz.models import Chunk, Question, QuizMode


def test_chunk_windows_clamp_to_document_end():
    windows = [Chunk.at(c, width=3, total=7) for c in (0, 3, 6)]

    assert [w.pages for w in windows] == [(0, 1, 2), (3, 4, 5), (6,)]
    assert len(Chunk.at(7, width=3, total=7)) == 0


def test_chunk_contains_local_index():
    chunk = Chunk.at(6, width=3, total=7)

    assert chunk.contains_local(0)
    assert not chunk.contains_local(1)
    assert not chunk.contains_local(-1)
    assert not chunk.contains_local(None)
    assert not chunk.contains_local(True)


def test_question_correct_set_ignores_order():
    question = Question("Q", ("A", "B", "C"), answer=("B", "A"))

    assert question.correct == frozenset({"A", "B"})
    assert question.is_scorable
    assert not Question("Q", ("A", "B")).is_scorable


def test_question_image_data_uri():
    plain = Question("Q", ("A", "B"), has_image=True, page_index=0)
    assert plain.image_data_uri is None

    with_image = plain.with_image(b"%PDF-1.7")
    encoded = base64.b64encode(b"%PDF-1.7").decode("ascii")
    assert with_image.image_data_uri == f"data:application/pdf;base64,{encoded}"
    assert with_image == plain


def test_question_record_uses_service_field_names():
    question = Question(
        "Pick one", ("x", "y"), answer=("y",), page_index=2, has_image=True
    )

    record = question.to_record()

    assert record == {
        "question": "Pick one",
        "options": ["x", "y"],
        "answer": ["y"],
        "pageIndex": 2,
        "hasImage": True,
    }


def test_quiz_mode_from_value():
    assert QuizMode.from_value(" Learn ") is QuizMode.LEARN
    with pytest.raises(ValueError, match="quiz, learn, focus"):
        QuizMode.from_value("exam")
