"""Repository for the Review aggregate."""

from protean.exceptions import ObjectNotFoundError

from music_reviews.domain import music_reviews
from music_reviews.review.review import Review, ReviewStatus

# Rows fetched per query when a full scan is needed
PAGE_SIZE = 100


@music_reviews.repository(part_of=Review)
class ReviewRepository:
    """Review lookups used by the lifecycle handlers and read-side queries.

    The base repository provides standard CRUD operations; soft-deleted
    reviews are filtered out here.
    """

    def get_live(self, review_id) -> Review:
        """Fetch a review, treating soft-deleted ones as missing."""
        review = self.get(review_id)
        if review.is_deleted:
            raise ObjectNotFoundError({"review": [f"Review {review_id} does not exist"]})
        return review

    def live_in_slot(self, slot: str) -> list[Review]:
        """Live reviews holding the given author/work slot (zero or one)."""
        return self._dao.query.filter(slot=slot, is_deleted=False).all().items

    def approved_for(self, target_key: str) -> list[Review]:
        """Every live, approved review of a work."""
        return self._scan(target_key=target_key, status=ReviewStatus.APPROVED.value, is_deleted=False)

    def approved_since(self, since) -> list[Review]:
        """Live, approved reviews created at or after ``since``, newest first."""
        reviews = self._scan(status=ReviewStatus.APPROVED.value, is_deleted=False, created_at__gte=since)
        return sorted(reviews, key=lambda review: review.created_at, reverse=True)

    def search(self, offset: int, limit: int, **criteria):
        """One page of live reviews matching ``criteria``, newest first; carries the total."""
        query = self._dao.query.filter(is_deleted=False, **criteria).order_by("-created_at")
        return query.offset(offset).limit(limit).all()

    def _scan(self, **criteria) -> list[Review]:
        items = []
        offset = 0
        while True:
            page = self._dao.query.filter(**criteria).order_by("created_at").offset(offset).limit(PAGE_SIZE).all()
            items.extend(page.items)
            if len(page.items) < PAGE_SIZE:
                return items
            offset += PAGE_SIZE
