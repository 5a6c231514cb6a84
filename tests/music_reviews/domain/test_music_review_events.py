"""Tests for the events raised by Review lifecycle methods."""

from music_reviews.review.events import (
    ReviewApproved,
    ReviewDeleted,
    ReviewRejected,
    ReviewSubmitted,
)
from music_reviews.review.review import Review, ReviewStatus, WorkRef


def _make_review(**overrides):
    defaults = {
        "author_id": "author-001",
        "target": WorkRef(kind="Album", work_id="album-001"),
        "rhymes": 10,
        "structure": 10,
        "implementation": 10,
        "individuality": 10,
        "atmosphere": 10,
        "text": "A masterpiece.",
    }
    defaults.update(overrides)
    return Review.submit(**defaults)


class TestReviewSubmittedEvent:
    def test_raised_on_submit(self):
        review = _make_review()
        assert len(review._events) == 1
        event = review._events[0]
        assert isinstance(event, ReviewSubmitted)
        assert event.review_id == str(review.id)
        assert event.author_id == "author-001"
        assert event.target_kind == "Album"
        assert event.target_id == "album-001"
        assert event.final_score == 90.0
        assert event.status == ReviewStatus.PENDING.value

    def test_carries_auto_approved_status(self):
        review = _make_review(text=None, auto_approve=True)
        assert review._events[0].status == ReviewStatus.APPROVED.value


class TestModerationEvents:
    def test_approved_event(self):
        review = _make_review()
        review._events.clear()
        review.approve(moderator_id="admin-001")

        event = review._events[0]
        assert isinstance(event, ReviewApproved)
        assert event.moderator_id == "admin-001"
        assert event.previous_status == ReviewStatus.PENDING.value
        assert event.final_score == 90.0

    def test_rejected_event(self):
        review = _make_review()
        review.approve(moderator_id="admin-001")
        review._events.clear()
        review.reject(moderator_id="admin-002", reason="Spam")

        event = review._events[0]
        assert isinstance(event, ReviewRejected)
        assert event.previous_status == ReviewStatus.APPROVED.value
        assert event.reason == "Spam"

    def test_reject_without_reason(self):
        review = _make_review()
        review._events.clear()
        review.reject(moderator_id="admin-001")
        assert review._events[0].reason is None


class TestReviewDeletedEvent:
    def test_carries_status_at_deletion(self):
        review = _make_review()
        review.approve(moderator_id="admin-001")
        review._events.clear()
        review.delete(deleted_by="admin-001")

        event = review._events[0]
        assert isinstance(event, ReviewDeleted)
        assert event.deleted_by == "admin-001"
        assert event.previous_status == ReviewStatus.APPROVED.value
