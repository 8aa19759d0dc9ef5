"""Deterministic grading of submitted answers against a test's answer key."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from exam_portal.core.errors import InvalidPayload, InvalidTest


@dataclass(frozen=True, slots=True)
class ScoredAnswer:
    """Grading trace for one question."""

    position: int
    question: str
    options: list[str]
    selected_option: int | None
    correct_option: int | None
    correct_option_text: str | None
    is_correct: bool
    explanation: str


@dataclass(frozen=True, slots=True)
class ScoreResult:
    total_questions: int
    correct_count: int
    wrong_count: int
    score: float  # percentage
    answers: list[ScoredAnswer]


def _is_index(value: Any) -> bool:
    # bool is an int subclass but never a valid option index
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_answers(answers: Any, total: int) -> list[int | None]:
    """Turn a list or an index->option mapping into one entry per question.

    Positions without an answer become ``None``. Entries past ``total`` are
    ignored.
    """
    if isinstance(answers, Mapping):
        selected: list[int | None] = [None] * total
        for key, value in answers.items():
            if isinstance(key, str) and key.strip().isdigit():
                key = int(key)
            if not _is_index(key) or key < 0:
                raise InvalidPayload(f"Answer key {key!r} is not a question index")
            if value is not None and not _is_index(value):
                raise InvalidPayload(f"Answer for question {key} must be an option index or null")
            if key < total:
                selected[key] = value
        return selected

    if isinstance(answers, Sequence) and not isinstance(answers, (str, bytes)):
        for i, value in enumerate(answers):
            if value is not None and not _is_index(value):
                raise InvalidPayload(f"Answer for question {i} must be an option index or null")
        padded = list(answers[:total])
        return padded + [None] * (total - len(padded))

    raise InvalidPayload("Answers must be a list or a mapping of question index to option index")


def score_submission(test, answers: Any) -> ScoreResult:
    """Grade ``answers`` against ``test.questions``.

    Pure: reads the test, never mutates it. A question without an answer is
    always wrong.
    """
    questions = list(test.questions)
    total = len(questions)
    if total == 0:
        raise InvalidTest("Test has no questions and cannot be scored")

    selected = normalize_answers(answers, total)

    graded = []
    correct_count = 0
    for i, q in enumerate(questions):
        choice = selected[i]
        correct = q.correct_answer
        is_correct = choice is not None and choice == correct
        if is_correct:
            correct_count += 1

        options = list(q.options or [])
        correct_text = options[correct] if _is_index(correct) and 0 <= correct < len(options) else None
        graded.append(ScoredAnswer(
            position=i,
            question=q.question,
            options=options,
            selected_option=choice,
            correct_option=correct,
            correct_option_text=correct_text,
            is_correct=is_correct,
            explanation=q.explanation or "",
        ))

    return ScoreResult(
        total_questions=total,
        correct_count=correct_count,
        wrong_count=total - correct_count,
        score=100 * correct_count / total,
        answers=graded,
    )
