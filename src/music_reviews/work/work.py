"""Album and Track aggregates: the reviewable works.

Catalogue management lives outside this domain. Works are kept here only so
reviews and likes can check that their target exists, and so every work can
carry its aggregate rating. ``average_rating`` is written by the rating
recalculator and nothing else.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from music_reviews.domain import music_reviews
from music_reviews.review.review import WorkKind


def _checked_rating(value):
    if value is None or value < 0:
        raise ValidationError({"average_rating": ["Average rating must be a non-negative integer"]})
    return value


@music_reviews.aggregate
class Album:
    title = String(required=True, max_length=255)
    artist = String(max_length=255)
    average_rating = Integer(default=0)
    rating_updated_at = DateTime()

    def record_average_rating(self, value):
        self.average_rating = _checked_rating(value)
        self.rating_updated_at = datetime.now(UTC)


@music_reviews.aggregate
class Track:
    title = String(required=True, max_length=255)
    album_id = Identifier()
    average_rating = Integer(default=0)
    rating_updated_at = DateTime()

    def record_average_rating(self, value):
        self.average_rating = _checked_rating(value)
        self.rating_updated_at = datetime.now(UTC)


WORKS = {
    WorkKind.ALBUM.value: Album,
    WorkKind.TRACK.value: Track,
}


def work_aggregate(kind):
    """Aggregate class for a work kind ("Album" or "Track")."""
    try:
        return WORKS[kind]
    except KeyError:
        raise ValidationError({"target": [f"Unknown work kind {kind!r}"]}) from None
