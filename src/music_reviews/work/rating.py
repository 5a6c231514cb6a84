"""Aggregate rating of a work: recomputed from its approved reviews.

A work's ``average_rating`` is the mean final score of its live, approved
reviews, rounded half up to an integer, or 0 when there are none. It is
always recomputed from the full approved set, never adjusted by deltas.

The recompute is a side channel of the review lifecycle: it runs after the
review transition has committed, and a failure here is logged without
failing or undoing that transition. ``recalculate_average_rating`` can be
called directly to repair a rating left stale by such a failure.
"""

from decimal import Decimal

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from music_reviews.domain import music_reviews
from music_reviews.review.events import (
    ReviewApproved,
    ReviewDeleted,
    ReviewEdited,
    ReviewRejected,
    ReviewSubmitted,
)
from music_reviews.review.review import Review, ReviewStatus, work_key
from music_reviews.review.scoring import round_half_up
from music_reviews.work.work import work_aggregate

logger = structlog.get_logger(__name__)


def average_of(scores) -> int:
    """Rounded mean of final scores; 0 for no scores."""
    scores = list(scores)
    if not scores:
        return 0
    total = sum((Decimal(str(score)) for score in scores), Decimal(0))
    return int(round_half_up(total / len(scores)))


def recalculate_average_rating(kind, work_id) -> int:
    """Recompute and store the average rating of one work. Returns the new value."""
    reviews = current_domain.repository_for(Review).approved_for(work_key(kind, work_id))
    average = average_of(review.final_score for review in reviews)

    repo = current_domain.repository_for(work_aggregate(kind))
    work = repo.get(work_id)
    work.record_average_rating(average)
    repo.add(work)

    logger.info(
        "Average rating recalculated",
        work_kind=kind,
        work_id=str(work_id),
        approved_reviews=len(reviews),
        average_rating=average,
    )
    return average


def _was_approved(event) -> bool:
    return event.previous_status == ReviewStatus.APPROVED.value


@music_reviews.event_handler(part_of=Review)
class WorkRatingEventsHandler:
    """Recomputes a work's rating whenever its approved set may have changed."""

    @handle(ReviewSubmitted)
    def on_review_submitted(self, event: ReviewSubmitted) -> None:
        if event.status == ReviewStatus.APPROVED.value:
            self._recalculate(event)

    @handle(ReviewApproved)
    def on_review_approved(self, event: ReviewApproved) -> None:
        self._recalculate(event)

    @handle(ReviewRejected)
    def on_review_rejected(self, event: ReviewRejected) -> None:
        if _was_approved(event):
            self._recalculate(event)

    @handle(ReviewEdited)
    def on_review_edited(self, event: ReviewEdited) -> None:
        if _was_approved(event):
            self._recalculate(event)

    @handle(ReviewDeleted)
    def on_review_deleted(self, event: ReviewDeleted) -> None:
        if _was_approved(event):
            self._recalculate(event)

    def _recalculate(self, event) -> None:
        try:
            recalculate_average_rating(event.target_kind, str(event.target_id))
        except Exception:
            # Best effort: the review transition has already committed.
            logger.exception(
                "Average rating recalculation failed",
                review_id=str(event.review_id),
                work_kind=event.target_kind,
                work_id=str(event.target_id),
            )
