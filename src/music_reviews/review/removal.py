"""DeleteReview: soft-delete a review.

The author or an admin can delete. The author/work slot is freed, so the
author may review the same work again.
"""

from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from music_reviews.domain import music_reviews
from music_reviews.errors import PermissionDenied
from music_reviews.review.review import Review


@music_reviews.command(part_of="Review")
class DeleteReview:
    review_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_is_admin = Boolean(default=False)


@music_reviews.command_handler(part_of=Review)
class DeleteReviewHandler:
    @handle(DeleteReview)
    def delete_review(self, command):
        repo = current_domain.repository_for(Review)
        review = repo.get_live(command.review_id)

        if not command.actor_is_admin and not review.is_owned_by(command.actor_id):
            raise PermissionDenied({"actor_id": ["Only the review author or an admin can delete this review"]})

        review.delete(deleted_by=command.actor_id)
        repo.add(review)
