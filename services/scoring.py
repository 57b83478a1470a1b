from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Sequence

from services.validation import validate_quiz_definition, validate_submission


@dataclass(frozen=True)
class SubmittedAnswer:
    question_index: int
    selected_answer: int
    time_spent: int = 0


@dataclass(frozen=True)
class ScoredAnswer:
    question_index: int
    selected_answer: int
    is_correct: bool
    time_spent: int = 0


@dataclass
class ScoreResult:
    score: float
    passed: bool
    correct_answers: int
    points_earned: int
    total_points: int
    total_questions: int
    answers: List[ScoredAnswer] = field(default_factory=list)

    def answers_json(self) -> List[Dict[str, Any]]:
        return [asdict(a) for a in self.answers]


def score_submission(
    questions: Sequence[Dict[str, Any]],
    answers: Sequence[SubmittedAnswer],
    passing_score: float,
    time_spent: int = 0,
) -> ScoreResult:
    """
    Grade answers against a quiz definition.

    The score is points earned over the points of *every* question in the
    quiz, so unanswered questions count against the attempt. A quiz without
    points scores 0.
    """
    validate_quiz_definition(questions)
    validate_submission(answers, len(questions), time_spent)

    scored = []
    points_earned = 0
    correct_answers = 0
    for answer in answers:
        question = questions[answer.question_index]
        is_correct = answer.selected_answer == question["correct_answer"]
        if is_correct:
            points_earned += question.get("points", 1)
            correct_answers += 1

        scored.append(ScoredAnswer(
            question_index=answer.question_index,
            selected_answer=answer.selected_answer,
            is_correct=is_correct,
            time_spent=answer.time_spent,
        ))

    total_points = sum(q.get("points", 1) for q in questions)
    score = (points_earned / total_points) * 100 if total_points > 0 else 0.0

    return ScoreResult(
        score=score,
        passed=score >= passing_score,
        correct_answers=correct_answers,
        points_earned=points_earned,
        total_points=total_points,
        total_questions=len(questions),
        answers=scored,
    )
