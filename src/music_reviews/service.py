"""Entry points for controller code.

Each function takes the authenticated ``Actor`` and the request payload,
translates them into a command and processes it synchronously in the active
domain context.

Check-then-insert commands (submitting a review, changing a like) serialize
themselves per uniqueness key inside their handlers, so these functions add
no locking of their own.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from music_reviews.engagement.ledger import LikeTarget, ToggleLike, UnlikeTarget
from music_reviews.engagement.like import Like
from music_reviews.projections.moderation_queue import ModerationQueue
from music_reviews.review.editing import EditReview
from music_reviews.review.moderation import ModerateReview
from music_reviews.review.removal import DeleteReview
from music_reviews.review.review import ModerationAction, Review, ReviewStatus, WorkKind, work_key
from music_reviews.review.submission import SubmitReview
from music_reviews.work.rating import recalculate_average_rating

DEFAULT_POPULAR_LIMIT = 10
MAX_POPULAR_LIMIT = 50
POPULAR_WINDOW = timedelta(hours=24)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as established by the auth layer."""

    id: str
    is_admin: bool = False


@dataclass(frozen=True)
class ReviewPage:
    """One page of a review listing, with the total across all pages."""

    reviews: list
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Review lifecycle
# ---------------------------------------------------------------------------
def submit_review(
    actor: Actor,
    *,
    rhymes: int,
    structure: int,
    implementation: int,
    individuality: int,
    atmosphere: int,
    album_id: str | None = None,
    track_id: str | None = None,
    text: str | None = None,
    auto_approve: bool | None = None,
) -> str:
    """Submit a review of an album or a track. Returns the new review id."""
    command = SubmitReview(
        author_id=actor.id,
        album_id=album_id,
        track_id=track_id,
        text=text,
        rhymes=rhymes,
        structure=structure,
        implementation=implementation,
        individuality=individuality,
        atmosphere=atmosphere,
        auto_approve=auto_approve,
    )
    return current_domain.process(command, asynchronous=False)


def edit_review(actor: Actor, review_id: str, **patch) -> None:
    """Apply a partial update: ``text`` and any of the five ratings."""
    command = EditReview(
        review_id=review_id,
        editor_id=actor.id,
        editor_is_admin=actor.is_admin,
        **patch,
    )
    current_domain.process(command, asynchronous=False)


def approve_review(actor: Actor, review_id: str) -> None:
    command = ModerateReview(
        review_id=review_id,
        moderator_id=actor.id,
        moderator_is_admin=actor.is_admin,
        action=ModerationAction.APPROVE.value,
    )
    current_domain.process(command, asynchronous=False)


def reject_review(actor: Actor, review_id: str, reason: str | None = None) -> None:
    command = ModerateReview(
        review_id=review_id,
        moderator_id=actor.id,
        moderator_is_admin=actor.is_admin,
        action=ModerationAction.REJECT.value,
        reason=reason,
    )
    current_domain.process(command, asynchronous=False)


def delete_review(actor: Actor, review_id: str) -> None:
    command = DeleteReview(
        review_id=review_id,
        actor_id=actor.id,
        actor_is_admin=actor.is_admin,
    )
    current_domain.process(command, asynchronous=False)


def reconcile_rating(kind: str, work_id: str) -> int:
    """Recompute one work's average rating now. Returns the stored value."""
    return recalculate_average_rating(kind, work_id)


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------
def _process_like(command_cls, actor: Actor, target_type: str, target_id: str) -> bool:
    command = command_cls(user_id=actor.id, target_type=target_type, target_id=target_id)
    return current_domain.process(command, asynchronous=False)


def toggle_like(actor: Actor, target_type: str, target_id: str) -> bool:
    """Flip the like on a target. Returns whether it is liked afterwards."""
    return _process_like(ToggleLike, actor, target_type, target_id)


def like(actor: Actor, target_type: str, target_id: str) -> bool:
    return _process_like(LikeTarget, actor, target_type, target_id)


def unlike(actor: Actor, target_type: str, target_id: str) -> bool:
    return _process_like(UnlikeTarget, actor, target_type, target_id)


def has_liked(actor: Actor, target_type: str, target_id: str) -> bool:
    return current_domain.repository_for(Like).find(actor.id, target_type, target_id) is not None


def like_count(target_type: str, target_id: str) -> int:
    return current_domain.repository_for(Like).count_for(target_type, target_id)


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
def get_review(review_id: str) -> Review:
    """A single review by id; deleted reviews are not found."""
    return current_domain.repository_for(Review).get_live(review_id)


def list_reviews(
    *,
    album_id: str | None = None,
    track_id: str | None = None,
    user_id: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> ReviewPage:
    """Live reviews matching the filters, newest first.

    Only Approved reviews are listed unless ``status`` asks for another one.
    An invalid ``page`` falls back to 1 and an invalid ``page_size`` to 20;
    page sizes above 100 are capped.
    """
    if album_id and track_id:
        raise ValidationError({"target": ["Filter by album_id or track_id, not both"]})

    status = status or ReviewStatus.APPROVED.value
    if status not in {s.value for s in ReviewStatus}:
        raise ValidationError({"status": [f"Unknown review status {status!r}"]})

    if not isinstance(page, int) or page < 1:
        page = 1
    if not isinstance(page_size, int) or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(page_size, MAX_PAGE_SIZE)

    criteria = {"status": status}
    if album_id:
        criteria["target_key"] = work_key(WorkKind.ALBUM.value, album_id)
    if track_id:
        criteria["target_key"] = work_key(WorkKind.TRACK.value, track_id)
    if user_id:
        criteria["author_id"] = user_id

    results = current_domain.repository_for(Review).search(offset=(page - 1) * page_size, limit=page_size, **criteria)
    return ReviewPage(reviews=results.items, total=results.total, page=page, page_size=page_size)


def moderation_queue(limit: int = 100) -> list[ModerationQueue]:
    """Reviews awaiting moderation, oldest first."""
    repo = current_domain.repository_for(ModerationQueue)
    return repo._dao.query.order_by("queued_at").limit(limit).all().items


def popular_reviews(limit: int = DEFAULT_POPULAR_LIMIT) -> list[Review]:
    """Most-liked approved album reviews of the last 24 hours.

    ``limit`` outside 1..50 falls back to the default of 10. Reviews with
    equal like counts keep newest-first order.
    """
    if not isinstance(limit, int) or not 1 <= limit <= MAX_POPULAR_LIMIT:
        limit = DEFAULT_POPULAR_LIMIT

    since = datetime.now(UTC) - POPULAR_WINDOW
    recent = [
        review
        for review in current_domain.repository_for(Review).approved_since(since)
        if review.target.kind == WorkKind.ALBUM.value
    ]

    likes = current_domain.repository_for(Like)
    counts = {str(review.id): likes.count_for("Review", review.id) for review in recent}
    ranked = sorted(recent, key=lambda review: counts[str(review.id)], reverse=True)
    return ranked[:limit]
