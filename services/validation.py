"""
Explicit validation for quiz definitions and submissions.

Persistence does not enforce these rules; every check here produces a
``ValidationError`` carrying one ``{"field", "message"}`` entry per problem.
"""
from typing import Any, Dict, List, Sequence

from core.exceptions import ValidationError


def _error(field: str, message: str) -> Dict[str, Any]:
    return {"field": field, "message": message}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def quiz_definition_errors(questions: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    errors = []
    for i, q in enumerate(questions):
        options = q.get("options") or []
        if len(options) < 2:
            errors.append(_error(f"questions[{i}].options", "At least two options are required"))

        correct = q.get("correct_answer")
        if not _is_int(correct) or correct < 0 or correct >= len(options):
            errors.append(_error(f"questions[{i}].correct_answer", "Correct answer index must be within options range"))

        points = q.get("points", 1)
        if not _is_int(points) or points < 1:
            errors.append(_error(f"questions[{i}].points", "Points must be at least 1"))
    return errors


def validate_quiz_definition(questions: Sequence[Dict[str, Any]]) -> None:
    errors = quiz_definition_errors(questions)
    if errors:
        raise ValidationError("Quiz definition is invalid", errors)


def validate_submission(answers: Sequence[Any], question_count: int, time_spent: int = 0) -> None:
    """Answers must reference existing questions, at most once each."""
    errors = []
    seen = set()

    if not _is_int(time_spent) or time_spent < 0:
        errors.append(_error("time_spent", "Time spent must be a non-negative integer"))

    for i, answer in enumerate(answers):
        index = answer.question_index
        if not _is_int(index) or index < 0 or index >= question_count:
            errors.append(_error(f"answers[{i}].question_index", f"Question index {index} is out of range"))
        elif index in seen:
            errors.append(_error(f"answers[{i}].question_index", f"Question {index} answered more than once"))
        else:
            seen.add(index)

        if not _is_int(answer.selected_answer) or answer.selected_answer < 0:
            errors.append(_error(f"answers[{i}].selected_answer", "Selected answer must be a non-negative integer"))

        if not _is_int(answer.time_spent) or answer.time_spent < 0:
            errors.append(_error(f"answers[{i}].time_spent", "Time spent must be a non-negative integer"))

    if errors:
        raise ValidationError("Submission is invalid", errors)
