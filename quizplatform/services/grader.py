import math
import re
from typing import Any, Dict, List, Mapping, Optional

from .models import ComposedTest, QuestionResult, SectionResult, Submission, default_marks

INTEGER = re.compile(r"-?[0-9]+")


def answer_key(subject: str, index: int) -> str:
    return f"{subject}_{index}"


def _coerce_answer(raw: Any) -> Optional[int]:
    """Selected option index from a submitted value; None when unanswered."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str) and INTEGER.fullmatch(raw.strip()):
        return int(raw.strip())
    return None


def percentage_of(score: int, max_score: int) -> int:
    # half rounds up, matching the scores shown to students in the UI
    if max_score <= 0:
        return 0
    return int(math.floor(score / max_score * 100 + 0.5))


def score_submission(test: ComposedTest, answers: Mapping[str, Any]) -> Submission:
    """
    Score `answers` against an already merged test.

    Pure and idempotent: the test is not modified and the same inputs always
    produce the same submission. Correct answers earn the section's marks per
    question; incorrect and unanswered questions both earn zero.
    """
    total_score = 0
    total_max_score = 0
    section_results: List[SectionResult] = []

    for section in test.sections:
        marks = section.marks_per_question or default_marks(section.subject)
        result = SectionResult(
            subject=section.subject,
            score=0,
            max_score=len(section.questions) * marks,
            marks_per_question=marks,
        )

        for i, question in enumerate(section.questions):
            raw = answers.get(answer_key(section.subject, i))
            student_answer = _coerce_answer(raw)
            answered = raw is not None
            is_correct = student_answer is not None and student_answer == question.correct_index
            marks_awarded = marks if is_correct else 0

            if not answered:
                result.unanswered_count += 1
            elif is_correct:
                result.correct_count += 1
                result.score += marks_awarded
            else:
                result.incorrect_count += 1

            result.questions.append(QuestionResult(
                question_index=i,
                text=question.text,
                image=question.image,
                options=list(question.options),
                option_images=list(question.option_images),
                explanation=question.explanation,
                explanation_image=question.explanation_image,
                correct_answer=question.correct_index,
                student_answer=student_answer,
                is_correct=is_correct,
                marks_awarded=marks_awarded,
                marks_per_question=marks,
            ))

        total_score += result.score
        total_max_score += result.max_score
        section_results.append(result)

    return Submission(
        test_id=test.id,
        answers=dict(answers),
        section_results=section_results,
        total_score=total_score,
        total_max_score=total_max_score,
        percentage=percentage_of(total_score, total_max_score),
        show_answer_key_at_submission=test.show_answer_key,
    )


def can_view_answer_key(submission: Submission, test: Optional[ComposedTest]) -> bool:
    """Visible if the key was shown when the student submitted, or is shown now."""
    current = bool(test and test.show_answer_key)
    return submission.show_answer_key_at_submission or current


def redact_for_student(submission: Submission, visible: bool) -> Dict[str, Any]:
    """
    Student-facing view of a submission: aggregate scores only unless the
    answer key is visible.
    """
    data = submission.model_dump(mode="json")
    data["can_view_answer_key"] = visible
    if not visible:
        for section in data["section_results"]:
            section["questions"] = []
    return data
