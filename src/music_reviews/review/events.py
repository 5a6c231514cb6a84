"""Domain events for the Review aggregate.

All events are versioned, immutable facts representing state changes.
Events are used for:
- Recomputing the target work's average rating
- Updating projections via projectors

Events that can change a work's rating carry the review's status before the
transition (``previous_status``) so handlers can tell whether the approved
set was touched.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from music_reviews.domain import music_reviews


@music_reviews.event(part_of="Review")
class ReviewSubmitted:
    """An author submitted a new review of an album or track."""

    __version__ = 1

    review_id = Identifier(required=True)
    author_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    text = Text()
    final_score = Float(required=True)
    status = String(required=True)
    submitted_at = DateTime(required=True)


@music_reviews.event(part_of="Review")
class ReviewEdited:
    """The author or an admin changed the review's text or ratings."""

    __version__ = 1

    review_id = Identifier(required=True)
    author_id = Identifier(required=True)
    editor_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    text = Text()
    final_score = Float(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    text_changed = Boolean(default=False)
    score_changed = Boolean(default=False)
    edited_at = DateTime(required=True)


@music_reviews.event(part_of="Review")
class ReviewApproved:
    """An admin approved the review."""

    __version__ = 1

    review_id = Identifier(required=True)
    author_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    final_score = Float(required=True)
    moderator_id = Identifier(required=True)
    previous_status = String(required=True)
    approved_at = DateTime(required=True)


@music_reviews.event(part_of="Review")
class ReviewRejected:
    """An admin rejected the review."""

    __version__ = 1

    review_id = Identifier(required=True)
    author_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    moderator_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    rejected_at = DateTime(required=True)


@music_reviews.event(part_of="Review")
class ReviewDeleted:
    """The author or an admin soft-deleted the review."""

    __version__ = 1

    review_id = Identifier(required=True)
    author_id = Identifier(required=True)
    target_kind = String(required=True)
    target_id = Identifier(required=True)
    deleted_by = Identifier(required=True)
    previous_status = String(required=True)
    deleted_at = DateTime(required=True)
