from __future__ import annotations

import json
import logging

from fixtures import question
from pdf_quizzer.quiz.export import read_questions, write_questions


def test_write_questions_emits_one_record_per_line(tmp_path):
    target = tmp_path / "out" / "quiz.jsonl"
    questions = [
        question("Q1", ("x", "y"), ("y",), page_index=0),
        question("Q2", ("x", "y"), ()),
    ]

    written = write_questions(target, questions)

    lines = written.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["question"] for line in lines] == ["Q1", "Q2"]
    assert json.loads(lines[1])["answer"] == []


def test_exhibits_are_saved_and_reloaded(tmp_path, monkeypatch):
    exhibit = question("Refer to the exhibit.", page_index=1, has_image=True)
    questions = [question("plain"), exhibit.with_image(b"%PDF-exhibit")]
    monkeypatch.chdir(tmp_path)

    path = write_questions(
        "exports/quiz.jsonl",
        questions,
        exhibits_dir="exports/quiz-exhibits",
    )
    exhibits_dir = tmp_path / "exports" / "quiz-exhibits"
    record = json.loads(path.read_text(encoding="utf-8").splitlines()[1])
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    loaded = read_questions(tmp_path / "exports" / "quiz.jsonl")

    assert record["exhibit"] == "quiz-exhibits/question-2.pdf"
    assert (exhibits_dir / "question-2.pdf").read_bytes() == b"%PDF-exhibit"
    assert not (exhibits_dir / "question-1.pdf").exists()
    assert loaded == questions
    assert loaded[1].image == b"%PDF-exhibit"
    assert loaded[0].image is None


def test_exhibits_are_embedded_without_a_directory(tmp_path):
    exhibit = question("Refer to the exhibit.", page_index=0, has_image=True)
    exhibit = exhibit.with_image(b"%PDF-inline")

    path = write_questions(tmp_path / "quiz.jsonl", [exhibit])
    record = json.loads(path.read_text(encoding="utf-8"))
    loaded = read_questions(path)

    assert record["exhibit"] == exhibit.image_data_uri
    assert loaded[0].image == b"%PDF-inline"
    assert list(tmp_path.iterdir()) == [path]


def test_read_questions_skips_blank_lines(tmp_path):
    path = tmp_path / "quiz.jsonl"
    record = question("Q").to_record()
    path.write_text("\n" + json.dumps(record) + "\n\n", encoding="utf-8")

    assert [q.prompt for q in read_questions(path)] == ["Q"]


def test_read_questions_drops_malformed_records(tmp_path, caplog):
    path = tmp_path / "quiz.jsonl"
    records = [
        {"question": "Q?", "answer": ["A"]},
        {"question": "One option", "options": ["A"], "answer": ["A"]},
        {
            "question": "Odd flag",
            "options": ["A", "B"],
            "answer": ["A"],
            "hasImage": "yes",
        },
        question("Kept").to_record(),
    ]
    path.write_text(
        "\n".join(json.dumps(record) for record in records) + "\n",
        encoding="utf-8",
    )

    with caplog.at_level(logging.INFO, logger="pdf_quizzer.quiz.export"):
        loaded = read_questions(path)

    assert [q.prompt for q in loaded] == ["Kept"]
    dropped = [r for r in caplog.records if r.message.startswith("Dropped")]
    assert dropped and dropped[0].dropped == 3
