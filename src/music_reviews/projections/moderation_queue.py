"""ModerationQueue: pending reviews awaiting an admin's decision."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from music_reviews.domain import music_reviews
from music_reviews.review.events import (
    ReviewApproved,
    ReviewDeleted,
    ReviewEdited,
    ReviewRejected,
    ReviewSubmitted,
)
from music_reviews.review.review import Review, ReviewStatus


@music_reviews.projection
class ModerationQueue:
    review_id = Identifier(identifier=True, required=True)
    author_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    text = Text()
    final_score = Float(required=True)
    queued_at = DateTime()


def _dequeue(review_id):
    repo = current_domain.repository_for(ModerationQueue)
    try:
        repo.remove(repo.get(review_id))
    except ObjectNotFoundError:
        pass  # Was never queued


@music_reviews.projector(projector_for=ModerationQueue, aggregates=[Review])
class ModerationQueueProjector:
    @on(ReviewSubmitted)
    def on_review_submitted(self, event):
        if event.status != ReviewStatus.PENDING.value:
            return

        current_domain.repository_for(ModerationQueue).add(
            ModerationQueue(
                review_id=event.review_id,
                author_id=event.author_id,
                target_kind=event.target_kind,
                target_id=event.target_id,
                text=event.text,
                final_score=event.final_score,
                queued_at=event.submitted_at,
            )
        )

    @on(ReviewEdited)
    def on_review_edited(self, event):
        if event.status != ReviewStatus.PENDING.value:
            return

        repo = current_domain.repository_for(ModerationQueue)
        try:
            entry = repo.get(event.review_id)
        except ObjectNotFoundError:
            # Sent back to moderation by a text edit
            entry = ModerationQueue(
                review_id=event.review_id,
                author_id=event.author_id,
                target_kind=event.target_kind,
                target_id=event.target_id,
                final_score=event.final_score,
                queued_at=event.edited_at,
            )

        entry.text = event.text
        entry.final_score = event.final_score
        repo.add(entry)

    @on(ReviewApproved)
    def on_review_approved(self, event):
        _dequeue(event.review_id)

    @on(ReviewRejected)
    def on_review_rejected(self, event):
        _dequeue(event.review_id)

    @on(ReviewDeleted)
    def on_review_deleted(self, event):
        _dequeue(event.review_id)
