"""Integration tests for the average rating kept on albums and tracks."""

from protean import current_domain

from music_reviews.review.review import Review, ReviewStatus
from music_reviews.service import (
    Actor,
    approve_review,
    delete_review,
    edit_review,
    reconcile_rating,
    reject_review,
    submit_review,
)
from music_reviews.work import rating as rating_module
from music_reviews.work.work import Album, Track

ADMIN = Actor(id="admin-001", is_admin=True)

TOP_MARKS = {"rhymes": 10, "structure": 10, "implementation": 10, "individuality": 10, "atmosphere": 10}  # 90.0
MIDDLING = {"rhymes": 5, "structure": 5, "implementation": 5, "individuality": 5, "atmosphere": 1}  # 28.0


def _submit(author_id, text="Worth hearing.", **kwargs):
    return submit_review(Actor(id=author_id), text=text, **kwargs)


def _album_rating(album):
    return current_domain.repository_for(Album).get(album.id).average_rating


class TestRecalculationTriggers:
    def test_no_reviews_means_zero(self, album):
        assert _album_rating(album) == 0

    def test_pending_review_does_not_count(self, album):
        _submit("author-001", album_id=album.id, **TOP_MARKS)
        assert _album_rating(album) == 0

    def test_approval_counts(self, album):
        review_id = _submit("author-001", album_id=album.id, **TOP_MARKS)
        approve_review(ADMIN, review_id)
        assert _album_rating(album) == 90

    def test_mean_of_approved_reviews(self, album):
        for author_id, ratings in (("author-001", TOP_MARKS), ("author-002", MIDDLING)):
            approve_review(ADMIN, _submit(author_id, album_id=album.id, **ratings))
        _submit("author-003", album_id=album.id, **MIDDLING)  # pending, ignored
        assert _album_rating(album) == 59

    def test_rejecting_approved_review(self, album):
        first = _submit("author-001", album_id=album.id, **TOP_MARKS)
        second = _submit("author-002", album_id=album.id, **MIDDLING)
        approve_review(ADMIN, first)
        approve_review(ADMIN, second)

        reject_review(ADMIN, first)
        assert _album_rating(album) == 28

    def test_deleting_sole_approved_review_resets_to_zero(self, album):
        review_id = _submit("author-001", album_id=album.id, **TOP_MARKS)
        approve_review(ADMIN, review_id)
        delete_review(Actor(id="author-001"), review_id)
        assert _album_rating(album) == 0

    def test_rating_edit_of_approved_review(self, album):
        review_id = _submit("author-001", album_id=album.id, **MIDDLING)
        approve_review(ADMIN, review_id)
        edit_review(Actor(id="author-001"), review_id, rhymes=10, structure=10, implementation=10, individuality=10)
        assert _album_rating(album) == 56

    def test_text_edit_withdraws_review_from_rating(self, album):
        review_id = _submit("author-001", album_id=album.id, **TOP_MARKS)
        approve_review(ADMIN, review_id)
        edit_review(Actor(id="author-001"), review_id, text="Changed my mind.")
        assert _album_rating(album) == 0

    def test_auto_approved_submission_counts(self, album):
        _submit("author-001", text=None, auto_approve=True, album_id=album.id, **TOP_MARKS)
        assert _album_rating(album) == 90

    def test_track_rating_is_separate(self, album, track):
        approve_review(ADMIN, _submit("author-001", track_id=track.id, **MIDDLING))
        assert current_domain.repository_for(Track).get(track.id).average_rating == 28
        assert _album_rating(album) == 0


class TestAverageRounding:
    def test_half_up_average(self):
        assert rating_module.average_of([64.3, 90.0]) == 77

    def test_exact_half_rounds_up(self):
        assert rating_module.average_of([7.0, 8.0]) == 8

    def test_empty(self):
        assert rating_module.average_of([]) == 0


class TestBestEffortRecalculation:
    def test_failure_does_not_fail_the_transition(self, album, monkeypatch):
        review_id = _submit("author-001", album_id=album.id, **TOP_MARKS)

        def _broken(kind, work_id):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(rating_module, "recalculate_average_rating", _broken)
        approve_review(ADMIN, review_id)

        assert current_domain.repository_for(Review).get(review_id).status == ReviewStatus.APPROVED.value
        assert _album_rating(album) == 0  # stale

    def test_reconciliation_repairs_stale_rating(self, album, monkeypatch):
        review_id = _submit("author-001", album_id=album.id, **TOP_MARKS)
        monkeypatch.setattr(rating_module, "recalculate_average_rating", lambda kind, work_id: 1 / 0)
        approve_review(ADMIN, review_id)
        monkeypatch.undo()

        assert reconcile_rating("Album", album.id) == 90
        assert _album_rating(album) == 90
