import random

import pytest

from conftest import question, section
from quizplatform.services.chunker import (
    MB,
    build_payload,
    chunk_position,
    group_documents,
    merge_chunk_group,
    payload_size,
    split_into_chunks,
    strip_part_suffix,
)
from quizplatform.services.errors import ChunkTooLargeError, NotFoundError
from quizplatform.services.models import ChunkInfo, ChunkKind, ComposedTest
from quizplatform.services.validator import validate_sections


def _image_sections(subjects, count, image_bytes):
    raw = []
    for subject in subjects:
        questions = [
            question(i % 4, text=f"{subject} {i}", image="data:image/png;base64," + "A" * image_bytes)
            for i in range(count)
        ]
        raw.append({"subject": subject, "questions": questions})
    return validate_sections(raw)


def _documents(chunks, root_id="root", **fields):
    docs = []
    for chunk in chunks:
        is_root = chunk.index == 1
        docs.append(ComposedTest(
            id=root_id if is_root else f"{root_id}-{chunk.index}",
            title=chunk.title,
            course_id="course-1",
            sections=chunk.sections,
            chunk_info=ChunkInfo(current=chunk.index, total=chunk.total) if chunk.total > 1 else None,
            parent_test_id=None if is_root else root_id,
            **fields,
        ))
    return docs


def _texts(sections):
    return {s.subject: [q.text for q in s.questions] for s in sections}


def test_payload_size_is_utf8_compact_json():
    assert payload_size({"a": [1, 2]}) == len('{"a":[1,2]}')
    assert payload_size({"t": "é"}) == len('{"t":"é"}'.encode("utf-8"))


def test_small_test_is_a_single_chunk():
    sections = validate_sections([section("physics"), section("chemistry")])
    chunks = split_into_chunks(sections, "Weekly Test", size_budget=MB)

    assert len(chunks) == 1
    assert chunks[0].title == "Weekly Test"
    assert (chunks[0].index, chunks[0].total) == (1, 1)
    assert chunks[0].sections == sections


def test_four_megabyte_test_splits_under_budget():
    sections = _image_sections(["physics", "chemistry", "maths"], 50, 27000)
    budget = int(3.5 * MB)
    assert payload_size(build_payload(sections, "Full Mock")) > 4 * 1000 * 1000

    chunks = split_into_chunks(sections, "Full Mock", size_budget=budget)

    assert len(chunks) >= 2
    assert chunks[0].title == "Full Mock"
    for i, chunk in enumerate(chunks[1:], start=2):
        assert chunk.title == f"Full Mock (Part {i}/{len(chunks)})"
    for i, chunk in enumerate(chunks, start=1):
        assert (chunk.index, chunk.total) == (i, len(chunks))
        assert payload_size(build_payload(chunk.sections, chunk.title)) <= budget

    flattened = [(s.subject, q.text) for c in chunks for s in c.sections for q in s.questions]
    original = [(s.subject, q.text) for s in sections for q in s.questions]
    assert flattened == original


def test_split_respects_envelope_fields():
    sections = _image_sections(["physics", "chemistry"], 10, 2000)
    envelope = {"course_id": "course-1", "review_comment": "x" * 5000}
    budget = payload_size(build_payload(sections, "T", envelope)) // 2

    chunks = split_into_chunks(sections, "T", size_budget=budget, envelope=envelope)

    assert len(chunks) >= 2
    for chunk in chunks:
        assert payload_size(build_payload(chunk.sections, chunk.title, envelope)) <= budget


def test_split_then_merge_restores_sections():
    sections = _image_sections(["physics", "chemistry", "biology"], 7, 3000)
    budget = payload_size(build_payload(sections, "Unit 4")) // 3

    chunks = split_into_chunks(sections, "Unit 4", size_budget=budget)
    docs = _documents(chunks)
    random.Random(7).shuffle(docs)
    merged = merge_chunk_group(docs)

    assert len(chunks) >= 3
    assert merged.id == "root"
    assert merged.title == "Unit 4"
    assert merged.chunk_info is None
    assert merged.parent_test_id is None
    assert merged.subjects_included == ["physics", "chemistry", "biology"]
    assert _texts(merged.sections) == _texts(sections)
    assert merged.sections == sections


def test_question_larger_than_budget_raises():
    sections = _image_sections(["physics"], 3, 20000)
    with pytest.raises(ChunkTooLargeError) as exc:
        split_into_chunks(sections, "Heavy", size_budget=15000)
    assert exc.value.status_code == 413
    assert "Chunk 1 is still too large" in exc.value.message


def test_split_is_deterministic():
    sections = _image_sections(["maths", "physics"], 12, 1500)
    budget = payload_size(build_payload(sections, "T")) // 4
    first = split_into_chunks(sections, "T", size_budget=budget)
    second = split_into_chunks(sections, "T", size_budget=budget)
    assert first == second


@pytest.mark.parametrize("title,expected", [
    ("Mock 3 (Part 2/5)", "Mock 3"),
    ("Mock 3 (part 10/12)  ", "Mock 3"),
    ("Mock (Part A)", "Mock (Part A)"),
    ("Plain", "Plain"),
])
def test_strip_part_suffix(title, expected):
    assert strip_part_suffix(title) == expected


def test_chunk_position_variants():
    base = {"title": "T", "course_id": "c"}
    standalone = ComposedTest(id="a", **base)
    root = ComposedTest(id="r", chunk_info=ChunkInfo(current=1, total=3), **base)
    child = ComposedTest(id="c3", parent_test_id="r", chunk_info=ChunkInfo(current=3, total=3), **base)
    legacy_child = ComposedTest(id="c", parent_test_id="r", **base)

    assert chunk_position(standalone) == (ChunkKind.STANDALONE, 1)
    assert chunk_position(root) == (ChunkKind.ROOT, 1)
    assert chunk_position(child) == (ChunkKind.CHILD, 3)
    assert chunk_position(legacy_child) == (ChunkKind.CHILD, 2)


def test_merge_requires_every_member_for_group_flags():
    sections = _image_sections(["physics", "chemistry"], 6, 2000)
    budget = payload_size(build_payload(sections, "T")) // 2
    docs = _documents(split_into_chunks(sections, "T", size_budget=budget), approved=True, active=True)
    docs[-1] = docs[-1].model_copy(update={"active": False})

    merged = merge_chunk_group(docs)

    assert merged.approved is True
    assert merged.active is False


def test_merge_of_nothing_is_not_found():
    with pytest.raises(NotFoundError):
        merge_chunk_group([])


def test_duplicate_indices_keep_input_order():
    base = {"course_id": "c"}
    physics = validate_sections([section("physics", 1)])
    chemistry = validate_sections([section("chemistry", 1)])
    root = ComposedTest(id="r", title="T (Part 1/2)", chunk_info=ChunkInfo(current=1, total=2),
                        sections=physics, **base)
    first = ComposedTest(id="x", title="T (Part 2/2)", parent_test_id="r",
                         chunk_info=ChunkInfo(current=2, total=2), sections=chemistry, **base)
    second = ComposedTest(id="y", title="T (Part 2/2)", parent_test_id="r",
                          chunk_info=ChunkInfo(current=2, total=2), sections=physics, **base)

    merged = merge_chunk_group([second, root, first])

    assert [s.subject for s in merged.sections] == ["physics", "chemistry"]
    assert len(merged.sections[0].questions) == 2


def test_group_documents_collapses_chunks():
    base = {"title": "T", "course_id": "c"}
    docs = [
        ComposedTest(id="c2", parent_test_id="r", chunk_info=ChunkInfo(current=2, total=2), **base),
        ComposedTest(id="solo", **base),
        ComposedTest(id="r", chunk_info=ChunkInfo(current=1, total=2), **base),
    ]
    groups = group_documents(docs)

    assert [[d.id for d in g] for g in groups] == [["r", "c2"], ["solo"]]


def test_root_chunk_keeps_plain_title():
    sections = _image_sections(["physics", "chemistry"], 8, 2000)
    budget = payload_size(build_payload(sections, "Weekly")) // 3

    chunks = split_into_chunks(sections, "Weekly", size_budget=budget)

    assert len(chunks) >= 3
    assert chunks[0].title == "Weekly"
    assert [c.title for c in chunks[1:]] == [f"Weekly (Part {i}/{len(chunks)})" for i in range(2, len(chunks) + 1)]
    merged = merge_chunk_group(_documents(chunks))
    assert merged.title == "Weekly"
