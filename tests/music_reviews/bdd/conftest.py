"""Shared BDD fixtures and step definitions for the Music Reviews domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from music_reviews.review.events import (
    ReviewApproved,
    ReviewDeleted,
    ReviewEdited,
    ReviewRejected,
    ReviewSubmitted,
)
from music_reviews.review.review import Review, WorkRef

_REVIEW_EVENT_CLASSES = {
    "ReviewSubmitted": ReviewSubmitted,
    "ReviewEdited": ReviewEdited,
    "ReviewApproved": ReviewApproved,
    "ReviewRejected": ReviewRejected,
    "ReviewDeleted": ReviewDeleted,
}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _submit(**overrides):
    defaults = {
        "author_id": "author-bdd",
        "target": WorkRef(kind="Album", work_id="album-bdd"),
        "rhymes": 5,
        "structure": 5,
        "implementation": 5,
        "individuality": 5,
        "atmosphere": 1,
        "text": "A BDD review.",
    }
    defaults.update(overrides)
    review = Review.submit(**defaults)
    review._events.clear()
    return review


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending review", target_fixture="review")
def pending_review():
    return _submit()


@given("an approved review", target_fixture="review")
def approved_review():
    review = _submit()
    review.approve(moderator_id="admin-1")
    review._events.clear()
    return review


@given("a rejected review", target_fixture="review")
def rejected_review():
    review = _submit()
    review.reject(moderator_id="admin-1")
    review._events.clear()
    return review


@given("the review has been deleted")
def review_deleted(review):
    review.delete(deleted_by="author-bdd")
    review._events.clear()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the review status is "{status}"'))
def review_status_is(review, status):
    assert review.status == status


@then(parsers.cfparse('the review is moderated by "{moderator_id}"'))
def review_moderated_by(review, moderator_id):
    assert review.moderated_by == moderator_id
    assert review.moderated_at is not None


@then("the review has no moderation stamp")
def review_not_moderated(review):
    assert review.moderated_by is None
    assert review.moderated_at is None


@then(parsers.cfparse("the review final score is {score:f}"))
def review_final_score(review, score):
    assert review.final_score == score


@then(parsers.cfparse("the review atmosphere multiplier is {value:f}"))
def review_atmosphere_multiplier(review, value):
    assert review.atmosphere_multiplier == value


@then("the review action fails with a validation error")
def review_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} event is raised"))
def review_event_raised(review, event_type):
    event_cls = _REVIEW_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in review._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in review._events]}"
