"""JSONL persistence for extracted questions and their exhibits."""

from __future__ import annotations

import base64
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from .extractor import validate_record
from .models import Question

_LOGGER = logging.getLogger("pdf_quizzer.quiz.export")

_DATA_URI_PREFIX = "data:application/pdf;base64,"


def write_questions(
    path: Path,
    questions: Sequence[Question],
    *,
    exhibits_dir: Path | None = None,
) -> Path:
    """Write one JSON record per question, in discovery order.

    When ``exhibits_dir`` is given, attached page images are saved there as
    ``question-<n>.pdf`` and the record's ``exhibit`` key holds the path
    relative to the JSONL file. Otherwise the exhibit is embedded as a
    ``data:`` URI.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fh:
        for number, question in enumerate(questions, start=1):
            record = question.to_record()
            if question.image is not None:
                if exhibits_dir is None:
                    record["exhibit"] = question.image_data_uri
                else:
                    exhibit = Path(exhibits_dir) / f"question-{number}.pdf"
                    exhibit.parent.mkdir(parents=True, exist_ok=True)
                    exhibit.write_bytes(question.image)
                    record["exhibit"] = _relative_to(exhibit, target.parent)
            fh.write(json.dumps(record, ensure_ascii=False))
            fh.write("\n")
    return target


def read_questions(
    path: Path, *, logger: Optional[logging.Logger] = None
) -> List[Question]:
    """Load questions written by :func:`write_questions`.

    Records that do not describe a valid question are skipped. Exhibit
    paths are resolved against the JSONL file's directory.
    """

    log = logger or _LOGGER
    source = Path(path)
    questions: List[Question] = []
    dropped = 0
    with source.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            question = validate_record(record)
            if question is None:
                dropped += 1
                continue
            image = _load_exhibit(record.get("exhibit"), source.parent)
            if image is not None:
                question = question.with_image(image)
            questions.append(question)
    if dropped:
        log.info(
            "Dropped malformed question records",
            extra={"path": str(source), "dropped": dropped},
        )
    return questions


def _relative_to(path: Path, base: Path) -> str:
    return Path(os.path.relpath(path.resolve(), base.resolve())).as_posix()


def _load_exhibit(value: object, base: Path) -> Optional[bytes]:
    if not isinstance(value, str) or not value:
        return None
    if value.startswith(_DATA_URI_PREFIX):
        return base64.b64decode(value[len(_DATA_URI_PREFIX):])
    exhibit = Path(value)
    if not exhibit.is_absolute():
        exhibit = base / exhibit
    if not exhibit.is_file():
        return None
    return exhibit.read_bytes()
