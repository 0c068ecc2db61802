import pytest

from quizplatform.services.errors import (
    AccessDeniedError,
    AlreadyApprovedError,
    AlreadyLockedError,
    ValidationError,
)
from quizplatform.services.models import ComposedTest, ReviewStatus, Role
from quizplatform.services.review import Action, current_state, next_review_state


def test_teacher_submission_goes_to_coordinator():
    transition = next_review_state(ReviewStatus.DRAFT, Role.TEACHER, Action.SUBMIT)
    assert transition.new_state == ReviewStatus.SUBMITTED_TO_COORDINATOR
    assert transition.fields == {"review_status": ReviewStatus.SUBMITTED_TO_COORDINATOR, "review_comment": None}


def test_coordinator_submission_goes_to_admin():
    transition = next_review_state(ReviewStatus.DRAFT, Role.COORDINATOR, Action.SUBMIT)
    assert transition.new_state == ReviewStatus.SUBMITTED_TO_ADMIN


def test_students_cannot_submit_tests():
    with pytest.raises(AccessDeniedError):
        next_review_state(ReviewStatus.DRAFT, Role.STUDENT, Action.SUBMIT)


def test_teacher_cannot_edit_accepted_submission():
    with pytest.raises(AlreadyLockedError):
        next_review_state(ReviewStatus.ACCEPTED_BY_COORDINATOR, Role.TEACHER, Action.EDIT)


@pytest.mark.parametrize("role", [Role.TEACHER, Role.COORDINATOR, Role.ADMIN])
def test_approved_tests_are_locked(role):
    with pytest.raises(AlreadyLockedError):
        next_review_state(ReviewStatus.APPROVED, role, Action.EDIT)


def test_teacher_resubmission_clears_comment():
    transition = next_review_state(ReviewStatus.CHANGES_REQUESTED, Role.TEACHER, Action.EDIT)
    assert transition.new_state == ReviewStatus.SUBMITTED_TO_COORDINATOR
    assert transition.fields["review_comment"] is None


def test_coordinator_edit_keeps_state():
    transition = next_review_state(ReviewStatus.SUBMITTED_TO_ADMIN, Role.COORDINATOR, Action.EDIT)
    assert transition.new_state == ReviewStatus.SUBMITTED_TO_ADMIN
    assert transition.fields == {}


def test_return_requires_comment():
    with pytest.raises(ValidationError):
        next_review_state(ReviewStatus.SUBMITTED_TO_COORDINATOR, Role.COORDINATOR, Action.REVIEW_RETURN, "  ")

    transition = next_review_state(
        ReviewStatus.SUBMITTED_TO_COORDINATOR, Role.COORDINATOR, Action.REVIEW_RETURN, " Fix Q3 "
    )
    assert transition.new_state == ReviewStatus.CHANGES_REQUESTED
    assert transition.fields["review_comment"] == "Fix Q3"


def test_accept_clears_comment():
    transition = next_review_state(ReviewStatus.CHANGES_REQUESTED, Role.COORDINATOR, Action.REVIEW_ACCEPT)
    assert transition.new_state == ReviewStatus.ACCEPTED_BY_COORDINATOR
    assert transition.fields["review_comment"] is None


def test_only_coordinators_review():
    with pytest.raises(AccessDeniedError):
        next_review_state(ReviewStatus.SUBMITTED_TO_COORDINATOR, Role.ADMIN, Action.REVIEW_ACCEPT)


def test_accepted_submission_cannot_be_reviewed_again():
    with pytest.raises(AlreadyLockedError):
        next_review_state(ReviewStatus.ACCEPTED_BY_COORDINATOR, Role.COORDINATOR, Action.REVIEW_RETURN, "again")


def test_admin_approves_coordinator_tests_once():
    transition = next_review_state(ReviewStatus.SUBMITTED_TO_ADMIN, Role.ADMIN, Action.APPROVE)
    assert transition.fields == {"approved": True, "review_status": ReviewStatus.APPROVED}

    with pytest.raises(AlreadyApprovedError):
        next_review_state(ReviewStatus.APPROVED, Role.ADMIN, Action.APPROVE)


def test_admin_cannot_approve_teacher_submissions():
    with pytest.raises(AccessDeniedError) as exc:
        next_review_state(ReviewStatus.ACCEPTED_BY_COORDINATOR, Role.ADMIN, Action.APPROVE)
    assert exc.value.message == "Admin can only approve coordinator-created tests"


def test_only_admin_approves():
    with pytest.raises(AccessDeniedError):
        next_review_state(ReviewStatus.SUBMITTED_TO_ADMIN, Role.COORDINATOR, Action.APPROVE)


def test_activation_requires_approval():
    with pytest.raises(ValidationError):
        next_review_state(ReviewStatus.SUBMITTED_TO_ADMIN, Role.COORDINATOR, Action.SET_ACTIVE, value=True)

    assert next_review_state(
        ReviewStatus.APPROVED, Role.COORDINATOR, Action.SET_ACTIVE, value=True
    ).fields == {"active": True}
    assert next_review_state(
        ReviewStatus.SUBMITTED_TO_ADMIN, Role.ADMIN, Action.SET_ACTIVE, value=False
    ).fields == {"active": False}


def test_teacher_cannot_touch_flags():
    with pytest.raises(AccessDeniedError):
        next_review_state(ReviewStatus.SUBMITTED_TO_COORDINATOR, Role.TEACHER, Action.SET_ANSWER_KEY, value=True)
    with pytest.raises(AccessDeniedError):
        next_review_state(ReviewStatus.APPROVED, Role.TEACHER, Action.SET_ACTIVE, value=True)


def test_answer_key_toggle_is_independent_of_approval():
    transition = next_review_state(ReviewStatus.SUBMITTED_TO_ADMIN, Role.ADMIN, Action.SET_ANSWER_KEY, value=True)
    assert transition.fields == {"show_answer_key": True}


def test_current_state_from_document():
    base = {"id": "t", "title": "T", "course_id": "c"}
    assert current_state(ComposedTest(**base)) == ReviewStatus.DRAFT
    assert current_state(ComposedTest(approved=True, **base)) == ReviewStatus.APPROVED
    assert current_state(
        ComposedTest(review_status="changes_requested", **base)
    ) == ReviewStatus.CHANGES_REQUESTED
    # approval that reached only part of a group can be retried
    assert current_state(
        ComposedTest(review_status="approved", approved=False, **base)
    ) == ReviewStatus.SUBMITTED_TO_ADMIN
