"""Application tests for the DeleteReview handler."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

from music_reviews.errors import PermissionDenied
from music_reviews.review.review import Review
from music_reviews.service import Actor, delete_review, submit_review

AUTHOR = Actor(id="author-001")


@pytest.fixture()
def review_id(album):
    return submit_review(
        AUTHOR,
        album_id=album.id,
        rhymes=4,
        structure=4,
        implementation=4,
        individuality=4,
        atmosphere=4,
    )


class TestDeleteReview:
    def test_author_deletes(self, review_id):
        delete_review(AUTHOR, review_id)
        review = current_domain.repository_for(Review).get(review_id)
        assert review.is_deleted is True

    def test_admin_deletes(self, review_id):
        delete_review(Actor(id="admin-001", is_admin=True), review_id)
        assert current_domain.repository_for(Review).get(review_id).is_deleted is True

    def test_deleted_review_hidden_from_live_lookups(self, review_id):
        delete_review(AUTHOR, review_id)
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Review).get_live(review_id)

    def test_other_user_denied(self, review_id):
        with pytest.raises(PermissionDenied):
            delete_review(Actor(id="author-002"), review_id)
        assert current_domain.repository_for(Review).get(review_id).is_deleted is False

    def test_delete_twice_is_not_found(self, review_id):
        delete_review(AUTHOR, review_id)
        with pytest.raises(ObjectNotFoundError):
            delete_review(AUTHOR, review_id)

    def test_missing_review(self):
        with pytest.raises(ObjectNotFoundError):
            delete_review(AUTHOR, "no-such-review")
