"""SubmitReview: submit a new album or track review.

Enforces one live review per author per work. The slot check and the insert
run in their own unit of work, committed while the author/work slot is
locked, so concurrent submissions in one process cannot both pass the check.
Across processes the unique slot column rejects the second insert; either
way the loser gets ``ConflictError``.
"""

import structlog
from protean import UnitOfWork
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from sqlalchemy.exc import IntegrityError

from music_reviews.domain import music_reviews
from music_reviews.errors import ConflictError
from music_reviews.review.review import Review, WorkRef, slot_for
from music_reviews.utils.locks import KeyedLock
from music_reviews.work.work import work_aggregate

logger = structlog.get_logger(__name__)

ALREADY_REVIEWED = {"review": ["You have already reviewed this work"]}

# One lock per author/work slot, shared by every submission in the process
review_slots = KeyedLock()


@music_reviews.command(part_of="Review")
class SubmitReview:
    author_id = Identifier(required=True)
    album_id = Identifier()
    track_id = Identifier()
    text = Text()
    rhymes = Integer(required=True)
    structure = Integer(required=True)
    implementation = Integer(required=True)
    individuality = Integer(required=True)
    atmosphere = Integer(required=True)  # 1-10, stored as a multiplier
    auto_approve = Boolean()  # Falls back to the domain's policy when unset


def auto_approve_textless_reviews() -> bool:
    """Policy flag from the ``[custom]`` section of the domain config."""
    custom = current_domain.config.get("custom") or {}
    return bool(custom.get("auto_approve_textless_reviews", False))


def _is_slot_violation(exc) -> bool:
    # Memory DAO reports {"slot": [...]}; SQL providers name the slot column
    return "slot" in str(exc)


@music_reviews.command_handler(part_of=Review)
class SubmitReviewHandler:
    @handle(SubmitReview)
    def submit_review(self, command):
        target = WorkRef.from_ids(album_id=command.album_id, track_id=command.track_id)
        slot = slot_for(command.author_id, target)

        # Target must exist; raises ObjectNotFoundError otherwise
        current_domain.repository_for(work_aggregate(target.kind)).get(target.work_id)

        auto_approve = command.auto_approve
        if auto_approve is None:
            auto_approve = auto_approve_textless_reviews()

        try:
            # The inner unit of work commits before the slot lock is released
            with review_slots.hold(slot), UnitOfWork():
                repo = current_domain.repository_for(Review)
                if repo.live_in_slot(slot):
                    raise ConflictError(ALREADY_REVIEWED)

                review = Review.submit(
                    author_id=command.author_id,
                    target=target,
                    rhymes=command.rhymes,
                    structure=command.structure,
                    implementation=command.implementation,
                    individuality=command.individuality,
                    atmosphere=command.atmosphere,
                    text=command.text,
                    auto_approve=auto_approve,
                )
                repo.add(review)
        except ConflictError:
            raise
        except (ValidationError, IntegrityError) as exc:
            if not _is_slot_violation(exc):
                raise
            raise ConflictError(ALREADY_REVIEWED) from exc

        logger.info(
            "Review submitted",
            review_id=str(review.id),
            author_id=str(command.author_id),
            work_kind=target.kind,
            work_id=str(target.work_id),
            status=review.status,
        )
        return str(review.id)
