"""
Composition rules for multi-subject tests.

`validate_composed_test` is the only place untyped request bodies are turned
into `Section` / `Question` models; everything downstream works on its output.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel, Field

from .errors import DuplicateSectionError, ValidationError
from .models import (
    PHASE1_SUBJECTS,
    SUBJECTS,
    Question,
    Section,
    SectionTimings,
    default_marks,
)

logger = logging.getLogger(__name__)

DEFAULT_CUSTOM_DURATION = 60
MAX_CUSTOM_DURATION = 600
STREAMS = ("PCM", "PCB")
INTEGER = re.compile(r"-?[0-9]+")


class ValidatedComposition(BaseModel):
    title: str
    course_id: str
    test_type: str
    stream: Optional[str] = None
    sections: List[Section]
    section_timings: Optional[SectionTimings] = None
    custom_duration: Optional[int] = None
    custom_subjects: List[str] = Field(default_factory=list)
    show_answer_key: bool = False

    @property
    def subjects(self) -> List[str]:
        return [s.subject for s in self.sections]


def _blank(value: Any) -> bool:
    return not (isinstance(value, str) and value.strip())


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _validate_question(raw: Any, position: int, subject: str) -> Question:
    label = f'Question {position} in "{subject}"'
    if not isinstance(raw, dict):
        raise ValidationError(f"{label} is malformed")

    if _blank(raw.get("text")) and _blank(raw.get("image")):
        raise ValidationError(f"{label} needs question text or image")

    options = raw.get("options")
    if not isinstance(options, list) or len(options) < 2:
        raise ValidationError(f"{label} must have at least 2 options")

    option_images = raw.get("option_images") or []
    if not isinstance(option_images, list):
        raise ValidationError(f"{label} has malformed option images")

    for oi, option in enumerate(options):
        image = option_images[oi] if oi < len(option_images) else None
        if _blank(option) and _blank(image):
            raise ValidationError(
                f"Option {oi + 1} of question {position} in \"{subject}\" needs text or image"
            )

    correct = raw.get("correct_index")
    if correct is None:
        raise ValidationError(f"{label} must have a correct answer index")
    correct = _as_int(correct)
    if correct is None or correct < 0 or correct >= len(options):
        raise ValidationError(f"{label} has invalid correct answer index")

    return Question(
        text=raw.get("text") or "",
        image=raw.get("image") or "",
        options=[o if isinstance(o, str) else "" for o in options],
        option_images=list(option_images) if any(option_images) else [],
        correct_index=correct,
        explanation=raw.get("explanation") or "",
        explanation_image=raw.get("explanation_image") or "",
    )


def validate_sections(raw_sections: Any, require_questions: bool = True) -> List[Section]:
    """Check subjects, questions and options; return normalized sections."""
    if not isinstance(raw_sections, list) or not raw_sections:
        raise ValidationError("At least one section is required")

    seen: List[str] = []
    sections: List[Section] = []
    for raw in raw_sections:
        if not isinstance(raw, dict):
            raise ValidationError("Section is malformed")
        raw_subject = raw.get("subject")
        subject = raw_subject.strip().lower() if isinstance(raw_subject, str) else None
        if not subject or subject not in SUBJECTS:
            raise ValidationError(
                f'Invalid subject: "{raw_subject}". Must be one of: {", ".join(SUBJECTS)}'
            )
        if subject in seen:
            raise DuplicateSectionError(
                f"Duplicate section: {subject}. Each subject can only appear once."
            )
        seen.append(subject)

        raw_questions = raw.get("questions")
        if not isinstance(raw_questions, list) or (require_questions and not raw_questions):
            raise ValidationError(f'Section "{subject}" must have at least one question')

        marks = raw.get("marks_per_question")
        marks = _as_int(marks) if marks not in (None, "", 0) else default_marks(subject)
        if marks is None or marks <= 0:
            raise ValidationError(f'Section "{subject}" has invalid marks per question')

        questions = [
            _validate_question(q, i + 1, subject) for i, q in enumerate(raw_questions)
        ]
        sections.append(Section(subject=subject, marks_per_question=marks, questions=questions))
    return sections


def check_mock_subjects(subjects: Sequence[str]) -> None:
    """Mock tests need physics + chemistry, plus maths or biology."""
    if not all(s in subjects for s in PHASE1_SUBJECTS):
        raise ValidationError("Mock test requires both Physics and Chemistry sections")
    if "maths" not in subjects and "biology" not in subjects:
        raise ValidationError("Mock test requires either Mathematics or Biology section")


def resolve_stream(subjects: Sequence[str], stream: Optional[str] = None) -> str:
    if stream:
        if stream not in STREAMS:
            raise ValidationError("Stream must be 'PCM' or 'PCB'")
        return stream
    if "biology" in subjects and "maths" not in subjects:
        return "PCB"
    return "PCM"


def _timings(raw: Any) -> SectionTimings:
    raw = raw if isinstance(raw, dict) else {}
    timings = {}
    for key in ("physics_chemistry", "maths_or_biology"):
        value = raw.get(key)
        value = 90 if value is None else _as_int(value)
        if value is None or value < 1:
            raise ValidationError("Both mock phase timings must be at least 1 minute")
        timings[key] = value
    return SectionTimings(**timings)


def _custom_duration(raw: Any) -> int:
    duration = DEFAULT_CUSTOM_DURATION if raw in (None, "", 0) else _as_int(raw)
    if duration is None or duration < 1 or duration > MAX_CUSTOM_DURATION:
        raise ValidationError("Custom test duration must be between 1 and 600 minutes")
    return duration


def validate_composed_test(raw: Dict[str, Any], skip_mock_rules: bool = False) -> ValidatedComposition:
    """
    Validate and normalize a raw composition body.

    `skip_mock_rules` is set for chunk sub-submissions, which carry only part of
    the subjects; teacher submissions never reach the mock rules because they
    are coerced to custom before validation.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Request body must be an object")

    title = raw.get("title")
    if _blank(title):
        raise ValidationError("Title is required")
    course_id = raw.get("course_id")
    if not course_id:
        raise ValidationError("Course is required")

    test_type = raw.get("test_type") or "custom"
    if test_type not in ("mock", "custom"):
        raise ValidationError("test_type must be 'mock' or 'custom'")

    sections = validate_sections(raw.get("sections"))
    subjects = [s.subject for s in sections]

    composition = ValidatedComposition(
        title=title.strip(),
        course_id=str(course_id),
        test_type=test_type,
        sections=sections,
        show_answer_key=bool(raw.get("show_answer_key", False)),
    )

    if test_type == "mock":
        if not skip_mock_rules:
            check_mock_subjects(subjects)
        composition.stream = resolve_stream(subjects, raw.get("stream"))
        composition.section_timings = _timings(raw.get("section_timings"))
    else:
        composition.custom_duration = _custom_duration(raw.get("custom_duration"))
        composition.custom_subjects = subjects

    return composition


def validate_for_approval(sections: Sequence[Section], test_type: str) -> None:
    """Approval checks, run against the merged group rather than one chunk."""
    if not sections:
        raise ValidationError("Cannot approve: test has no sections.")
    for section in sections:
        if not section.questions:
            raise ValidationError(f'Cannot approve: "{section.subject}" has no questions.')
    if test_type == "mock":
        try:
            check_mock_subjects([s.subject for s in sections])
        except ValidationError as e:
            raise ValidationError(f"Cannot approve: {e.message}") from e
