from __future__ import annotations

"""Answer scoring.

A card reveals at most one field; every other field is checked. Audio cards
reveal nothing, so all three are checked.
"""

import re
from typing import Dict, Optional

from .types import AnswerField, EvaluationResult, FieldCheck, QuizType, UserAnswer, Word

_WS = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Trim, lower-case and drop all internal whitespace."""
    return _WS.sub("", (text or "").strip().lower())


def compare_strings(actual: Optional[str], expected: Optional[str]) -> bool:
    """Lenient equality; empty values on either side never match."""
    a = normalize(actual)
    e = normalize(expected)
    if not a or not e:
        return False
    return a == e


def evaluate(word: Word, quiz_type: QuizType, user_answer: UserAnswer) -> EvaluationResult:
    checked = quiz_type.checked_fields
    per_field: Dict[AnswerField, FieldCheck] = {}
    score = 0
    for f in AnswerField:
        expected = word.value_of(f)
        actual = user_answer.get(f)
        if f in checked:
            ok = compare_strings(actual, expected)
            score += 1 if ok else 0
            per_field[f] = FieldCheck(expected=expected, actual=actual, checked=True, correct=ok)
        else:
            # Unscored fields report correct=True so the true value can still be rendered
            per_field[f] = FieldCheck(expected=expected, actual=actual, checked=False, correct=True)
    max_score = len(checked)
    return EvaluationResult(per_field=per_field, score=score, max_score=max_score, is_correct=score == max_score)


class AnswerEvaluator:
    """Stateless wrapper so the engine can take an injectable evaluator."""

    def evaluate(self, word: Word, quiz_type: QuizType, user_answer: UserAnswer) -> EvaluationResult:
        return evaluate(word, quiz_type, user_answer)
