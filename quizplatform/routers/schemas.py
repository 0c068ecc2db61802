from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional


# ----------------------------
# Pydantic Models for Payload
# ----------------------------
# Shapes are loose; the composition validator reports missing or malformed
# fields with messages that point at the section/question.

class ComposeTestRequest(BaseModel):
    title: Optional[str] = None
    course_id: Optional[str] = None
    test_type: Optional[str] = None          # "mock" | "custom"
    stream: Optional[str] = None             # "PCM" | "PCB", mock only
    sections: Optional[List[Dict[str, Any]]] = None
    section_timings: Optional[Dict[str, Any]] = None
    custom_duration: Optional[Any] = None
    show_answer_key: Optional[bool] = None


class ComposeChunkRequest(ComposeTestRequest):
    chunk: Dict[str, Any]                    # {"index": 0-based, "total": n, "parent_test_id": ...}


class UpdateTestRequest(BaseModel):
    title: Optional[str] = None
    test_type: Optional[str] = None
    stream: Optional[str] = None
    sections: Optional[List[Dict[str, Any]]] = None
    section_timings: Optional[Dict[str, Any]] = None
    custom_duration: Optional[Any] = None
    active: Optional[bool] = None
    show_answer_key: Optional[bool] = None


class ReviewRequest(BaseModel):
    decision: Literal["accept", "return"]
    comment: Optional[str] = None


class DraftSyncRequest(BaseModel):
    mode: str = "full"                       # full | chunk_init | chunk_part | chunk_finalize
    drafts: Optional[List[Any]] = None
    session_id: Optional[str] = None
    chunk_index: Optional[Any] = None
    total_chunks: Optional[Any] = None
