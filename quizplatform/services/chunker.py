"""
Split oversized tests into chunk documents and merge chunk groups back into
one logical test.

A chunk group is a root document (no `parent_test_id`) plus children pointing
at the root; every member carries `chunk_info = {current, total}` (1-based).
"""
import json
import logging
import re
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import ChunkTooLargeError, NotFoundError
from .models import (
    ChunkKind,
    ChunkPayload,
    ChunkPosition,
    ComposedTest,
    Section,
)

logger = logging.getLogger(__name__)

MB = 1024 * 1024
DEFAULT_SIZE_BUDGET = int(3.5 * MB)

PART_SUFFIX = re.compile(r"\s*\(part \d+/\d+\)\s*$", re.IGNORECASE)
# widest suffix a later chunk can carry; used while measuring so its final title fits
_SUFFIX_RESERVE = " (Part 9999/9999)"


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8")


def payload_size(payload: Any) -> int:
    """Size in bytes of the compact JSON serialization."""
    return len(_dumps(payload))


def build_payload(sections: Sequence[Section], title: str, envelope: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = dict(envelope or {})
    payload["title"] = title
    payload["sections"] = [s.model_dump(mode="json") for s in sections]
    return payload


def part_title(title: str, index: int, total: int) -> str:
    # the root keeps the plain title
    return f"{title} (Part {index}/{total})" if index > 1 and total > 1 else title


def strip_part_suffix(title: str) -> str:
    return PART_SUFFIX.sub("", title or "")


class _SizeMeter:
    """
    Exact serialized size of a candidate chunk without re-serializing it.

    Compact JSON is additive: a list of n items costs the empty list plus the
    items plus n - 1 commas.
    """

    def __init__(self, title: str, envelope: Optional[Dict[str, Any]]):
        self.root_base = payload_size(build_payload([], title, envelope))
        self.child_base = payload_size(build_payload([], title + _SUFFIX_RESERVE, envelope))
        self._empty_section: Dict[str, int] = {}
        self._questions: Dict[int, int] = {}

    def empty_section(self, section: Section) -> int:
        key = f"{section.subject}:{section.marks_per_question}"
        if key not in self._empty_section:
            shell = section.model_copy(update={"questions": []})
            self._empty_section[key] = payload_size(shell.model_dump(mode="json"))
        return self._empty_section[key]

    def question(self, section_pos: int, question_pos: int, section: Section) -> int:
        key = (section_pos, question_pos)
        if key not in self._questions:
            q = section.questions[question_pos]
            self._questions[key] = payload_size(q.model_dump(mode="json"))
        return self._questions[key]

    def section(self, section: Section, question_sizes: List[int]) -> int:
        return self.empty_section(section) + sum(question_sizes) + max(len(question_sizes) - 1, 0)

    def chunk(self, section_sizes: List[int], root: bool) -> int:
        base = self.root_base if root else self.child_base
        return base + sum(section_sizes) + max(len(section_sizes) - 1, 0)


def split_into_chunks(
    sections: Sequence[Section],
    title: str,
    size_budget: int = DEFAULT_SIZE_BUDGET,
    envelope: Optional[Dict[str, Any]] = None,
) -> List[ChunkPayload]:
    """
    Greedy, order-preserving split of `sections` into chunks under `size_budget`.

    Returns a single chunk (title unchanged) when the whole payload fits.
    Raises ChunkTooLargeError when a chunk is still over budget after
    splitting, which only happens when one question alone exceeds it.
    """
    sections = list(sections)
    if payload_size(build_payload(sections, title, envelope)) <= size_budget:
        return [ChunkPayload(title=title, sections=sections, index=1, total=1)]

    meter = _SizeMeter(title, envelope)
    chunks: List[List[Section]] = []
    current: List[Section] = []
    current_sizes: List[int] = []

    for s_pos, section in enumerate(sections):
        building: List[int] = []
        building_sizes: List[int] = []
        for q_pos in range(len(section.questions)):
            q_size = meter.question(s_pos, q_pos, section)
            prospective = meter.chunk(
                current_sizes + [meter.section(section, building_sizes + [q_size])],
                root=not chunks,
            )
            if prospective <= size_budget or (not current and not building):
                building.append(q_pos)
                building_sizes.append(q_size)
                continue

            if building:
                current.append(_slice(section, building))
            chunks.append(current)
            current, current_sizes = [], []
            building, building_sizes = [q_pos], [q_size]

        if building or not section.questions:
            current.append(_slice(section, building))
            current_sizes.append(meter.section(section, building_sizes))
    if current:
        chunks.append(current)

    total = len(chunks)
    result: List[ChunkPayload] = []
    for i, chunk_sections in enumerate(chunks, start=1):
        chunk_title = part_title(title, i, total)
        size = payload_size(build_payload(chunk_sections, chunk_title, envelope))
        logger.info(f"Chunk {i}/{total} size: {size / MB:.2f} MB")
        if size > size_budget:
            raise ChunkTooLargeError(
                f"Chunk {i} is still too large ({size / MB:.2f} MB). "
                "Consider reducing the number of image questions or file size of images."
            )
        result.append(ChunkPayload(title=chunk_title, sections=chunk_sections, index=i, total=total))

    logger.info(f"Split test '{title}' into {total} chunks")
    return result


def _slice(section: Section, positions: List[int]) -> Section:
    return section.model_copy(update={"questions": [section.questions[p] for p in positions]})


def chunk_position(doc: ComposedTest) -> ChunkPosition:
    """Where a document sits in its chunk group."""
    if doc.parent_test_id:
        # children written before chunk_info was recorded follow the root
        return ChunkPosition(ChunkKind.CHILD, doc.chunk_info.current if doc.chunk_info else 2)
    if doc.chunk_info and doc.chunk_info.total > 1:
        return ChunkPosition(ChunkKind.ROOT, doc.chunk_info.current)
    return ChunkPosition(ChunkKind.STANDALONE, doc.chunk_info.current if doc.chunk_info else 1)


def is_chunked(doc: ComposedTest) -> bool:
    return chunk_position(doc).kind != ChunkKind.STANDALONE


def sort_group(documents: Iterable[ComposedTest]) -> List[ComposedTest]:
    """Order by chunk index; ties keep input order."""
    return sorted(documents, key=lambda d: chunk_position(d).index)


def merge_sections(groups: Iterable[Sequence[Section]]) -> List[Section]:
    merged: "OrderedDict[str, Section]" = OrderedDict()
    for sections in groups:
        for section in sections:
            if section.subject not in merged:
                merged[section.subject] = section.model_copy(update={"questions": list(section.questions)})
            else:
                merged[section.subject].questions.extend(section.questions)
    return list(merged.values())


def merge_chunk_group(documents: Sequence[ComposedTest]) -> ComposedTest:
    """Reassemble one logical test from all members of a chunk group."""
    if not documents:
        raise NotFoundError("Test not found")
    ordered = sort_group(documents)
    primary = next((d for d in ordered if not d.parent_test_id), ordered[0])
    sections = merge_sections(d.sections for d in ordered)

    return primary.model_copy(update={
        "id": primary.root_id,
        "title": strip_part_suffix(primary.title),
        "sections": sections,
        "subjects_included": [s.subject for s in sections],
        "parent_test_id": None,
        "chunk_info": None,
        # group-wide flags: a partially applied write shows as not set
        "approved": all(d.approved for d in ordered),
        "active": all(d.active for d in ordered),
        "show_answer_key": all(d.show_answer_key for d in ordered),
    })


def group_documents(documents: Iterable[ComposedTest]) -> List[List[ComposedTest]]:
    """Collapse a flat listing into chunk groups, keyed by root id, first-seen order."""
    groups: "OrderedDict[str, List[ComposedTest]]" = OrderedDict()
    for doc in documents:
        groups.setdefault(doc.root_id, []).append(doc)
    return [sort_group(g) for g in groups.values()]
