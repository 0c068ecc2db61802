"""
Review/approval lifecycle of composed tests.

Teacher-authored tests go to a coordinator for triage
(submitted_to_coordinator -> accepted_by_coordinator | changes_requested);
coordinator-authored tests go to the admin (submitted_to_admin -> approved).
`active` and `show_answer_key` are orthogonal toggles handled here too because
they are gated by role and by approval.
"""
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from .errors import AccessDeniedError, AlreadyApprovedError, AlreadyLockedError, ValidationError
from .models import ComposedTest, ReviewStatus, Role


class Action(str, Enum):
    SUBMIT = "submit"
    EDIT = "edit"
    REVIEW_ACCEPT = "review_accept"
    REVIEW_RETURN = "review_return"
    APPROVE = "approve"
    SET_ACTIVE = "set_active"
    SET_ANSWER_KEY = "set_answer_key"


class Transition(NamedTuple):
    new_state: ReviewStatus
    fields: Dict[str, Any]


TEACHER_OPEN_STATES = (ReviewStatus.SUBMITTED_TO_COORDINATOR, ReviewStatus.CHANGES_REQUESTED)
CONTENT_FIELDS = (
    "sections", "title", "test_type", "stream", "section_timings", "custom_duration",
)


def current_state(doc: ComposedTest) -> ReviewStatus:
    if doc.approved:
        return ReviewStatus.APPROVED
    if doc.review_status == ReviewStatus.APPROVED:
        # approval write reached only part of the group
        return ReviewStatus.SUBMITTED_TO_ADMIN
    return doc.review_status or ReviewStatus.DRAFT


def next_review_state(
    current: ReviewStatus,
    actor_role: Role,
    action: Action,
    comment: Optional[str] = None,
    value: Optional[bool] = None,
) -> Transition:
    """
    Decide the next state and the fields to persist for one action.

    `value` carries the requested flag for SET_ACTIVE / SET_ANSWER_KEY.
    Raises AccessDeniedError, AlreadyLockedError, AlreadyApprovedError or
    ValidationError when the action is not allowed.
    """
    if action == Action.SUBMIT:
        if actor_role == Role.TEACHER:
            state = ReviewStatus.SUBMITTED_TO_COORDINATOR
        elif actor_role in (Role.COORDINATOR, Role.ADMIN):
            state = ReviewStatus.SUBMITTED_TO_ADMIN
        else:
            raise AccessDeniedError("Only teachers and coordinators can create tests")
        return Transition(state, {"review_status": state, "review_comment": None})

    if action == Action.EDIT:
        if current == ReviewStatus.APPROVED:
            raise AlreadyLockedError("Approved tests cannot be edited")
        if actor_role == Role.TEACHER:
            if current == ReviewStatus.ACCEPTED_BY_COORDINATOR:
                raise AlreadyLockedError("Test was accepted by the coordinator and is locked for editing")
            if current in TEACHER_OPEN_STATES or current == ReviewStatus.DRAFT:
                state = ReviewStatus.SUBMITTED_TO_COORDINATOR
                return Transition(state, {"review_status": state, "review_comment": None})
            raise AccessDeniedError("Access denied")
        if actor_role in (Role.COORDINATOR, Role.ADMIN):
            return Transition(current, {})
        raise AccessDeniedError("Access denied")

    if action in (Action.REVIEW_ACCEPT, Action.REVIEW_RETURN):
        if actor_role != Role.COORDINATOR:
            raise AccessDeniedError("Only coordinators can review teacher submissions")
        if current not in TEACHER_OPEN_STATES:
            if current in (ReviewStatus.ACCEPTED_BY_COORDINATOR, ReviewStatus.APPROVED):
                raise AlreadyLockedError("Submission was already accepted")
            raise ValidationError("Test is not awaiting coordinator review")
        if action == Action.REVIEW_ACCEPT:
            state = ReviewStatus.ACCEPTED_BY_COORDINATOR
            return Transition(state, {"review_status": state, "review_comment": None})
        if not (comment and comment.strip()):
            raise ValidationError("Please add a comment before sending back to teacher")
        state = ReviewStatus.CHANGES_REQUESTED
        return Transition(state, {"review_status": state, "review_comment": comment.strip()})

    if action == Action.APPROVE:
        if actor_role != Role.ADMIN:
            raise AccessDeniedError("Only admin can approve tests")
        if current == ReviewStatus.APPROVED:
            raise AlreadyApprovedError("Test is already approved")
        if current in TEACHER_OPEN_STATES or current == ReviewStatus.ACCEPTED_BY_COORDINATOR:
            raise AccessDeniedError("Admin can only approve coordinator-created tests")
        return Transition(ReviewStatus.APPROVED, {"approved": True, "review_status": ReviewStatus.APPROVED})

    if action == Action.SET_ACTIVE:
        if actor_role not in (Role.COORDINATOR, Role.ADMIN):
            raise AccessDeniedError("Only coordinators and admins can change test activation")
        if value and current != ReviewStatus.APPROVED:
            raise ValidationError("Test must be approved before it can be activated")
        return Transition(current, {"active": bool(value)})

    if action == Action.SET_ANSWER_KEY:
        if actor_role not in (Role.COORDINATOR, Role.ADMIN):
            raise AccessDeniedError("Only coordinators and admins can change answer key visibility")
        return Transition(current, {"show_answer_key": bool(value)})

    raise ValidationError(f"Unknown action: {action}")
