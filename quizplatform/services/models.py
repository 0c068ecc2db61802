from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, NamedTuple, Optional
from pydantic import BaseModel, Field

# ---------- Vocabulary ----------

SUBJECTS = ("physics", "chemistry", "maths", "biology")
PHASE1_SUBJECTS = ("physics", "chemistry")

Subject = Literal["physics", "chemistry", "maths", "biology"]
TestType = Literal["mock", "custom"]
Stream = Literal["PCM", "PCB"]


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    COORDINATOR = "coordinator"
    ADMIN = "admin"


class ReviewStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED_TO_COORDINATOR = "submitted_to_coordinator"
    CHANGES_REQUESTED = "changes_requested"
    ACCEPTED_BY_COORDINATOR = "accepted_by_coordinator"
    SUBMITTED_TO_ADMIN = "submitted_to_admin"
    APPROVED = "approved"


def default_marks(subject: str) -> int:
    return 2 if subject == "maths" else 1


# ---------- Test content ----------

class Question(BaseModel):
    text: str = ""
    image: str = ""
    options: List[str]
    option_images: List[str] = Field(default_factory=list)
    correct_index: int
    explanation: str = ""
    explanation_image: str = ""


class Section(BaseModel):
    subject: Subject
    marks_per_question: int = Field(..., gt=0)
    questions: List[Question] = Field(default_factory=list)


class SectionTimings(BaseModel):
    physics_chemistry: int = 90   # phase 1, minutes
    maths_or_biology: int = 90    # phase 2, minutes


class ChunkInfo(BaseModel):
    current: int = Field(..., ge=1)
    total: int = Field(..., ge=1)


class ComposedTest(BaseModel):
    """A persisted test document; for chunked tests, one member of the group."""
    id: str
    title: str
    course_id: str
    test_type: TestType = "custom"
    stream: Optional[Stream] = None
    sections: List[Section] = Field(default_factory=list)
    section_timings: Optional[SectionTimings] = None
    custom_duration: Optional[int] = None
    custom_subjects: List[str] = Field(default_factory=list)
    subjects_included: List[str] = Field(default_factory=list)
    show_answer_key: bool = False
    approved: bool = False
    active: bool = False
    teacher_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    review_status: Optional[ReviewStatus] = None
    review_comment: Optional[str] = None
    chunk_info: Optional[ChunkInfo] = None
    parent_test_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def root_id(self) -> str:
        return self.parent_test_id or self.id

    @property
    def creator_id(self) -> Optional[str]:
        return self.teacher_id or self.coordinator_id


class ChunkKind(str, Enum):
    STANDALONE = "standalone"
    ROOT = "root"
    CHILD = "child"


class ChunkPosition(NamedTuple):
    kind: ChunkKind
    index: int


class ChunkPayload(BaseModel):
    """One chunk ready for persistence; the caller fills in parent/chunk fields."""
    title: str
    sections: List[Section]
    index: int
    total: int


# ---------- Scoring ----------

class QuestionResult(BaseModel):
    question_index: int
    text: str = ""
    image: str = ""
    options: List[str] = Field(default_factory=list)
    option_images: List[str] = Field(default_factory=list)
    explanation: str = ""
    explanation_image: str = ""
    correct_answer: int
    student_answer: Optional[int] = None
    is_correct: bool
    marks_awarded: int
    marks_per_question: int


class SectionResult(BaseModel):
    subject: str
    score: int
    max_score: int
    marks_per_question: int
    correct_count: int = 0
    incorrect_count: int = 0
    unanswered_count: int = 0
    questions: List[QuestionResult] = Field(default_factory=list)


class Submission(BaseModel):
    id: Optional[str] = None
    test_id: str
    student_id: Optional[str] = None
    answers: Dict[str, Any] = Field(default_factory=dict)
    section_results: List[SectionResult] = Field(default_factory=list)
    total_score: int = 0
    total_max_score: int = 0
    percentage: int = 0
    show_answer_key_at_submission: bool = False
    submitted_at: Optional[datetime] = None


# ---------- Identity ----------

class Identity(BaseModel):
    id: str
    role: Role
    approved: bool = False
    course_id: Optional[str] = None
    assigned_subjects: List[str] = Field(default_factory=list)
