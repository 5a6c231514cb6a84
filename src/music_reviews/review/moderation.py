"""ModerateReview: approve or reject a review.

Admins only. Approval works from Pending or Rejected; rejection from any
state. The reason is optional and travels with the rejection event.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from music_reviews.domain import music_reviews
from music_reviews.errors import PermissionDenied
from music_reviews.review.review import ModerationAction, Review


@music_reviews.command(part_of="Review")
class ModerateReview:
    review_id = Identifier(required=True)
    moderator_id = Identifier(required=True)
    moderator_is_admin = Boolean(default=False)
    action = String(required=True)  # "Approve" or "Reject"
    reason = String(max_length=500)


@music_reviews.command_handler(part_of=Review)
class ModerateReviewHandler:
    @handle(ModerateReview)
    def moderate_review(self, command):
        if not command.moderator_is_admin:
            raise PermissionDenied({"moderator_id": ["Only admins can moderate reviews"]})

        try:
            action = ModerationAction(command.action)
        except ValueError:
            raise ValidationError({"action": [f"Unknown moderation action {command.action!r}"]}) from None

        repo = current_domain.repository_for(Review)
        review = repo.get_live(command.review_id)

        if action == ModerationAction.APPROVE:
            review.approve(moderator_id=command.moderator_id)
        else:  # ModerationAction.REJECT
            review.reject(moderator_id=command.moderator_id, reason=command.reason)

        repo.add(review)
