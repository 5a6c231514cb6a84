"""Review aggregate (CQRS): the core of the Music Reviews domain.

A Review scores one album or track on four base criteria (rhymes, structure,
implementation, individuality) and an atmosphere rating that scales them.
It manages its own lifecycle: submission, editing, moderation and
soft deletion.

CQRS (not event sourced): reviews change rarely and have no temporal
query needs.

State Machine (3 states, moderation only):
    PENDING → APPROVED | REJECTED
    REJECTED → APPROVED | REJECTED
    APPROVED → REJECTED

An author's text edit sends the review back to PENDING from any state.
Deletion is a flag, not a state: a deleted review keeps its last status.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text, ValueObject

from music_reviews.domain import music_reviews
from music_reviews.review.events import (
    ReviewApproved,
    ReviewDeleted,
    ReviewEdited,
    ReviewRejected,
    ReviewSubmitted,
)
from music_reviews.review.scoring import (
    MAX_RATING,
    MIN_RATING,
    compute_final_score,
    convert_atmosphere,
)

# Sentinel for distinguishing "not provided" from None in partial updates
_UNSET = object()

# Moderator recorded on reviews approved by policy instead of an admin
SYSTEM_MODERATOR = "system"

RATING_FIELDS = ("rhymes", "structure", "implementation", "individuality")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ReviewStatus(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class WorkKind(Enum):
    ALBUM = "Album"
    TRACK = "Track"


class ModerationAction(Enum):
    APPROVE = "Approve"
    REJECT = "Reject"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.REJECTED: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: {ReviewStatus.REJECTED},
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@music_reviews.value_object(part_of="Review")
class WorkRef:
    """The reviewed work: exactly one album or one track."""

    kind = String(required=True, choices=WorkKind)
    work_id = Identifier(required=True)

    @classmethod
    def from_ids(cls, album_id=None, track_id=None):
        """Build a reference from an inbound album id XOR track id."""
        if bool(album_id) == bool(track_id):
            raise ValidationError({"target": ["Exactly one of album_id or track_id must be provided"]})

        if album_id:
            return cls(kind=WorkKind.ALBUM.value, work_id=album_id)
        return cls(kind=WorkKind.TRACK.value, work_id=track_id)


def work_key(kind, work_id):
    """Filterable form of a work reference, e.g. ``Album:42``."""
    return f"{kind}:{work_id}"


def slot_for(author_id, target):
    """Uniqueness key of a live review: one per author per work."""
    return f"{author_id}|{work_key(target.kind, target.work_id)}"


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@music_reviews.aggregate
class Review:
    """An author's scored review of an album or a track."""

    author_id = Identifier(required=True)
    target = ValueObject(WorkRef, required=True)
    target_key = String(required=True, max_length=255)
    slot = String(required=True, max_length=512, unique=True)

    # Content
    text = Text()

    # Ratings
    rhymes = Integer(required=True)
    structure = Integer(required=True)
    implementation = Integer(required=True)
    individuality = Integer(required=True)
    atmosphere_multiplier = Float(required=True)
    final_score = Float(required=True)

    # Moderation
    status = String(choices=ReviewStatus, default=ReviewStatus.PENDING.value)
    moderated_by = Identifier()
    moderated_at = DateTime()

    # Soft delete
    is_deleted = Boolean(default=False)
    deleted_at = DateTime()

    # Timestamps
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def base_ratings_must_be_in_range(self):
        for name in RATING_FIELDS:
            value = getattr(self, name)
            if value is not None and not MIN_RATING <= value <= MAX_RATING:
                raise ValidationError({name: [f"Rating must be between {MIN_RATING} and {MAX_RATING}"]})

    @invariant.post
    def final_score_must_match_ratings(self):
        ratings = [getattr(self, name) for name in RATING_FIELDS]
        if None in ratings or self.atmosphere_multiplier is None or self.final_score is None:
            return
        if compute_final_score(*ratings, self.atmosphere_multiplier) != self.final_score:
            raise ValidationError({"final_score": ["Final score is out of sync with the ratings"]})

    @invariant.post
    def moderation_stamp_matches_status(self):
        stamped = self.moderated_by is not None and self.moderated_at is not None
        pending = self.status == ReviewStatus.PENDING.value
        if pending and (self.moderated_by is not None or self.moderated_at is not None):
            raise ValidationError({"status": ["Pending reviews cannot carry a moderation stamp"]})
        if not pending and not stamped:
            raise ValidationError({"status": ["Moderated reviews must record who moderated them and when"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def submit(
        cls,
        author_id,
        target,
        rhymes,
        structure,
        implementation,
        individuality,
        atmosphere,
        text=None,
        auto_approve=False,
    ):
        """Submit a new review.

        With ``auto_approve`` a review without text starts Approved, stamped
        by the system moderator. Every other submission starts Pending.
        """
        multiplier = convert_atmosphere(atmosphere)
        final_score = compute_final_score(rhymes, structure, implementation, individuality, multiplier)
        now = datetime.now(UTC)

        approved = auto_approve and not (text or "").strip()

        review = cls(
            author_id=author_id,
            target=target,
            target_key=work_key(target.kind, target.work_id),
            slot=slot_for(author_id, target),
            text=text,
            rhymes=rhymes,
            structure=structure,
            implementation=implementation,
            individuality=individuality,
            atmosphere_multiplier=multiplier,
            final_score=final_score,
            status=ReviewStatus.APPROVED.value if approved else ReviewStatus.PENDING.value,
            moderated_by=SYSTEM_MODERATOR if approved else None,
            moderated_at=now if approved else None,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )

        review.raise_(
            ReviewSubmitted(
                review_id=str(review.id),
                author_id=str(author_id),
                target_kind=target.kind,
                target_id=str(target.work_id),
                text=text,
                final_score=final_score,
                status=review.status,
                submitted_at=now,
            )
        )

        return review

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _assert_live(self):
        if self.is_deleted:
            raise ValidationError({"review": ["Review has been deleted"]})

    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = ReviewStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def is_owned_by(self, actor_id):
        return str(self.author_id) == str(actor_id)

    # -------------------------------------------------------------------
    # Edit
    # -------------------------------------------------------------------
    def edit(
        self,
        editor_id,
        by_admin=False,
        text=_UNSET,
        rhymes=_UNSET,
        structure=_UNSET,
        implementation=_UNSET,
        individuality=_UNSET,
        atmosphere=_UNSET,
    ):
        """Apply a partial update of text and ratings.

        Score and multiplier are always recomputed from the resulting
        ratings. When a non-admin changes the text, the review goes back to
        Pending and loses its moderation stamp; admins never change status.
        """
        self._assert_live()

        previous = ReviewStatus(self.status)
        now = datetime.now(UTC)

        provided = {
            "rhymes": rhymes,
            "structure": structure,
            "implementation": implementation,
            "individuality": individuality,
        }
        ratings = {name: (value if value is not _UNSET else getattr(self, name)) for name, value in provided.items()}
        multiplier = convert_atmosphere(atmosphere) if atmosphere is not _UNSET else self.atmosphere_multiplier
        final_score = compute_final_score(
            ratings["rhymes"],
            ratings["structure"],
            ratings["implementation"],
            ratings["individuality"],
            multiplier,
        )

        text_changed = text is not _UNSET and (text or "") != (self.text or "")
        score_changed = (
            any(ratings[name] != getattr(self, name) for name in RATING_FIELDS)
            or multiplier != self.atmosphere_multiplier
        )

        with atomic_change(self):
            if text_changed:
                self.text = text

            for name, value in ratings.items():
                setattr(self, name, value)
            self.atmosphere_multiplier = multiplier
            self.final_score = final_score

            if text_changed and not by_admin and previous != ReviewStatus.PENDING:
                self.status = ReviewStatus.PENDING.value
                self.moderated_by = None
                self.moderated_at = None

            self.updated_at = now

        self.raise_(
            ReviewEdited(
                review_id=str(self.id),
                author_id=str(self.author_id),
                editor_id=str(editor_id),
                target_kind=self.target.kind,
                target_id=str(self.target.work_id),
                text=self.text,
                final_score=self.final_score,
                previous_status=previous.value,
                status=self.status,
                text_changed=text_changed,
                score_changed=score_changed,
                edited_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------
    def approve(self, moderator_id):
        """Approve the review; it now counts towards the work's rating."""
        self._assert_live()
        self._assert_can_transition(ReviewStatus.APPROVED)

        previous = self.status
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = ReviewStatus.APPROVED.value
            self.moderated_by = moderator_id
            self.moderated_at = now
            self.updated_at = now

        self.raise_(
            ReviewApproved(
                review_id=str(self.id),
                author_id=str(self.author_id),
                target_kind=self.target.kind,
                target_id=str(self.target.work_id),
                final_score=self.final_score,
                moderator_id=str(moderator_id),
                previous_status=previous,
                approved_at=now,
            )
        )

    def reject(self, moderator_id, reason=None):
        """Reject the review."""
        self._assert_live()
        self._assert_can_transition(ReviewStatus.REJECTED)

        previous = self.status
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = ReviewStatus.REJECTED.value
            self.moderated_by = moderator_id
            self.moderated_at = now
            self.updated_at = now

        self.raise_(
            ReviewRejected(
                review_id=str(self.id),
                author_id=str(self.author_id),
                target_kind=self.target.kind,
                target_id=str(self.target.work_id),
                moderator_id=str(moderator_id),
                previous_status=previous,
                reason=reason,
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------
    def delete(self, deleted_by):
        """Soft-delete the review and free its slot for a new one."""
        self._assert_live()

        now = datetime.now(UTC)

        with atomic_change(self):
            self.is_deleted = True
            self.deleted_at = now
            self.slot = f"{self.slot}|deleted|{self.id}"
            self.updated_at = now

        self.raise_(
            ReviewDeleted(
                review_id=str(self.id),
                author_id=str(self.author_id),
                target_kind=self.target.kind,
                target_id=str(self.target.work_id),
                deleted_by=str(deleted_by),
                previous_status=self.status,
                deleted_at=now,
            )
        )
