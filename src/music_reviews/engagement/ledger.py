"""Like, unlike and toggle commands for the engagement ledger.

All three are idempotent: liking a liked target and unliking a target that
is not liked both succeed without changing anything. Each handler returns
whether the target is liked afterwards.

Each change runs in its own unit of work, committed while the
user/target key is locked. Unliking does not require the target to still
exist; likes of a deleted review are purged when it is deleted.
"""

import structlog
from protean import UnitOfWork
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from music_reviews.domain import music_reviews
from music_reviews.engagement.like import Like, LikeTargetType, like_key
from music_reviews.review.events import ReviewDeleted
from music_reviews.review.review import Review
from music_reviews.utils.locks import KeyedLock
from music_reviews.work.work import work_aggregate

logger = structlog.get_logger(__name__)

like_keys = KeyedLock()


@music_reviews.command(part_of="Like")
class LikeTarget:
    user_id = Identifier(required=True)
    target_type = String(required=True)  # "Review", "Album" or "Track"
    target_id = Identifier(required=True)


@music_reviews.command(part_of="Like")
class UnlikeTarget:
    user_id = Identifier(required=True)
    target_type = String(required=True)
    target_id = Identifier(required=True)


@music_reviews.command(part_of="Like")
class ToggleLike:
    user_id = Identifier(required=True)
    target_type = String(required=True)
    target_id = Identifier(required=True)


def checked_target_type(target_type) -> LikeTargetType:
    try:
        return LikeTargetType(target_type)
    except ValueError:
        raise ValidationError({"target_type": [f"Unknown like target {target_type!r}"]}) from None


def ensure_target_exists(target_type, target_id):
    """Raise ObjectNotFoundError unless the liked target exists."""
    kind = checked_target_type(target_type)

    if kind == LikeTargetType.REVIEW:
        current_domain.repository_for(Review).get_live(target_id)
    else:
        current_domain.repository_for(work_aggregate(kind.value)).get(target_id)


def _add_like(repo, command):
    repo.add(Like.record(command.user_id, command.target_type, command.target_id))
    logger.info(
        "Target liked",
        user_id=str(command.user_id),
        target_type=command.target_type,
        target_id=str(command.target_id),
    )


def _remove_like(repo, like):
    repo.remove(like)
    logger.info(
        "Target unliked",
        user_id=str(like.user_id),
        target_type=like.target_type,
        target_id=str(like.target_id),
    )


def _key(command):
    return like_key(command.user_id, command.target_type, command.target_id)


@music_reviews.command_handler(part_of=Like)
class LikeLedgerHandler:
    @handle(LikeTarget)
    def like(self, command) -> bool:
        ensure_target_exists(command.target_type, command.target_id)

        # The inner unit of work commits before the key is released
        with like_keys.hold(_key(command)), UnitOfWork():
            repo = current_domain.repository_for(Like)
            if repo.find(command.user_id, command.target_type, command.target_id) is None:
                _add_like(repo, command)
        return True

    @handle(UnlikeTarget)
    def unlike(self, command) -> bool:
        checked_target_type(command.target_type)

        # The inner unit of work commits before the key is released
        with like_keys.hold(_key(command)), UnitOfWork():
            repo = current_domain.repository_for(Like)
            like = repo.find(command.user_id, command.target_type, command.target_id)
            if like is not None:
                _remove_like(repo, like)
        return False

    @handle(ToggleLike)
    def toggle(self, command) -> bool:
        ensure_target_exists(command.target_type, command.target_id)

        # The inner unit of work commits before the key is released
        with like_keys.hold(_key(command)), UnitOfWork():
            repo = current_domain.repository_for(Like)
            like = repo.find(command.user_id, command.target_type, command.target_id)
            if like is None:
                _add_like(repo, command)
                liked = True
            else:
                _remove_like(repo, like)
                liked = False
        return liked


@music_reviews.event_handler(part_of=Review)
class DeletedReviewLikesHandler:
    """Drops every like of a review once it is deleted."""

    @handle(ReviewDeleted)
    def on_review_deleted(self, event: ReviewDeleted) -> None:
        repo = current_domain.repository_for(Like)
        likes = repo.for_target(LikeTargetType.REVIEW.value, event.review_id)
        for like in likes:
            repo.remove(like)

        if likes:
            logger.info("Likes of deleted review purged", review_id=str(event.review_id), likes=len(likes))
