from __future__ import annotations

import pytest

from fixtures import question
from pdf_quizzer.quiz.models import IncorrectQuestion, QuizMode
from pdf_quizzer.quiz.processing import ProcessingState, ProcessingStatus
from pdf_quizzer.quiz.session import QuizSession


def _multi():
    return question("Which are vowels?", ("A", "B", "E"), ("A", "E"))


def test_multi_answer_scoring_uses_set_equality():
    session = QuizSession(fixed_questions=(_multi(), _multi()))
    session.submit_answer(0, ["E", "A"])
    session.submit_answer(1, ["A"])

    outcome = session.complete()

    assert outcome.score == 1
    assert outcome.scorable == 2
    assert outcome.incorrect == (
        IncorrectQuestion(_multi(), frozenset({"A"})),
    )
    assert session.completed


def test_unscorable_questions_are_not_counted():
    unscorable = question("Opinion?", ("yes", "no"), ())
    session = QuizSession(fixed_questions=(unscorable, question("Q")))
    session.submit_answer(1, ["A"])

    outcome = session.complete()

    assert (outcome.score, outcome.scorable, outcome.total) == (1, 1, 2)
    assert outcome.incorrect == ()
    assert outcome.accuracy == 1.0


def test_unanswered_scorable_questions_are_incorrect():
    session = QuizSession(fixed_questions=(question("Q"),))

    outcome = session.complete()

    assert outcome.score == 0
    assert outcome.incorrect[0].user_answers == frozenset()


def test_flag_toggles_and_reports_in_outcome():
    session = QuizSession(fixed_questions=(question("Q0"), question("Q1")))

    assert session.toggle_flag(1) is True
    assert session.toggle_flag(0) is True
    assert session.toggle_flag(0) is False

    assert session.flagged == {1}
    assert [q.prompt for q in session.complete().flagged] == ["Q1"]


def test_index_checks():
    session = QuizSession(fixed_questions=(question("Q"),))

    with pytest.raises(IndexError):
        session.submit_answer(1, ["A"])
    with pytest.raises(IndexError):
        session.toggle_flag(-1)


def test_live_session_sees_questions_merged_later():
    state = ProcessingState(total_pages=6, status=ProcessingStatus.PAGING)
    session = QuizSession.live(state)
    state.append([question("first")])

    assert len(session) == 1
    assert not session.processing_complete

    state.append([question("second")])
    state.status = ProcessingStatus.COMPLETE
    state.cursor = 6

    assert [q.prompt for q in session.questions] == ["first", "second"]
    assert session.processing_complete


def test_requiz_replays_exactly_the_incorrect_questions():
    questions = tuple(question(f"Q{i}") for i in range(5))
    session = QuizSession(fixed_questions=questions)
    for index in (0, 2, 4):
        session.submit_answer(index, ["A"])
    outcome = session.complete()

    retry = QuizSession.requiz(outcome.incorrect, mode=QuizMode.LEARN)

    assert [q.prompt for q in retry.questions] == ["Q1", "Q3"]
    assert retry.answers == {}
    assert retry.mode is QuizMode.LEARN
    assert retry.processing_complete


def test_focus_mode_locks_answered_questions():
    session = QuizSession(
        fixed_questions=(question("Q"),), mode=QuizMode.FOCUS
    )
    assert not session.is_locked(0)

    session.submit_answer(0, ["B"])

    assert session.is_locked(0)
