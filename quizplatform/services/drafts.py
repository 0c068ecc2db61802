"""
Chunked sync of a teacher's local draft list.

A client too large to PUT its drafts in one request opens a session
(`chunk_init`), sends numbered parts (`chunk_part`) and then asks the server to
stitch them together (`chunk_finalize`). The functions here only transform the
stored sync state; the router persists it.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import SyncSessionError, ValidationError


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _whole(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(number // 1)


def start_sync(session_id: Any, total_chunks: Any) -> Dict[str, Any]:
    total = _whole(total_chunks)
    if not isinstance(session_id, str) or not session_id or total is None or total < 1:
        raise ValidationError("session_id and valid total_chunks are required")
    return {
        "session_id": session_id,
        "total_chunks": total,
        "chunks": [],
        "started_at": _now(),
    }


def _active_session(sync_state: Optional[Dict[str, Any]], session_id: Any) -> Dict[str, Any]:
    if not sync_state or str(sync_state.get("session_id")) != str(session_id):
        raise SyncSessionError("Draft sync session not found or expired")
    return sync_state


def add_chunk(
    sync_state: Optional[Dict[str, Any]],
    session_id: Any,
    chunk_index: Any,
    total_chunks: Any,
    drafts: Any,
) -> Dict[str, Any]:
    """Record one part; re-sending an index replaces the earlier copy."""
    index = _whole(chunk_index)
    total = _whole(total_chunks)
    if not session_id or index is None or total is None or not isinstance(drafts, list):
        raise ValidationError("session_id, chunk_index, total_chunks and drafts[] are required")

    state = _active_session(sync_state, session_id)
    if int(state.get("total_chunks", 0)) != total:
        raise ValidationError("total_chunks mismatch for active sync session")
    if index < 0 or index >= total:
        raise ValidationError("Invalid chunk_index")

    chunks = [c for c in state.get("chunks") or [] if _whole(c.get("index")) != index]
    chunks.append({"index": index, "drafts": drafts})
    return {**state, "chunks": chunks, "updated_at": _now()}


def finalize_sync(sync_state: Optional[Dict[str, Any]], session_id: Any) -> List[Any]:
    """Concatenate all parts in index order."""
    if not session_id:
        raise ValidationError("session_id is required")
    state = _active_session(sync_state, session_id)

    total = _whole(state.get("total_chunks"))
    chunks = state.get("chunks") or []
    if total is None or total < 1:
        raise ValidationError("Invalid draft sync session state")
    if len(chunks) != total:
        raise ValidationError("Not all chunks received yet")

    by_index: Dict[int, List[Any]] = {}
    for chunk in chunks:
        index = _whole(chunk.get("index"))
        if index is None or index < 0 or index >= total:
            raise ValidationError("Invalid chunk index in sync state")
        if index in by_index:
            raise ValidationError("Duplicate chunk index in sync state")
        drafts = chunk.get("drafts")
        by_index[index] = drafts if isinstance(drafts, list) else []

    merged: List[Any] = []
    for index in range(total):
        if index not in by_index:
            raise ValidationError("Missing draft chunk in sync state")
        merged.extend(by_index[index])
    return merged
