"""EditReview: change an existing review's text or ratings.

Only the author or an admin can edit. A non-admin author who changes the
text sends the review back to moderation; rating-only edits keep the status.
"""

from protean.fields import Boolean, Identifier, Integer, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from music_reviews.domain import music_reviews
from music_reviews.errors import PermissionDenied
from music_reviews.review.review import Review

_PATCHABLE = ("text", "rhymes", "structure", "implementation", "individuality", "atmosphere")


@music_reviews.command(part_of="Review")
class EditReview:
    review_id = Identifier(required=True)
    editor_id = Identifier(required=True)
    editor_is_admin = Boolean(default=False)
    text = Text()
    rhymes = Integer()
    structure = Integer()
    implementation = Integer()
    individuality = Integer()
    atmosphere = Integer()


@music_reviews.command_handler(part_of=Review)
class EditReviewHandler:
    @handle(EditReview)
    def edit_review(self, command):
        repo = current_domain.repository_for(Review)
        review = repo.get_live(command.review_id)

        # Verify ownership
        if not command.editor_is_admin and not review.is_owned_by(command.editor_id):
            raise PermissionDenied({"editor_id": ["Only the review author or an admin can edit this review"]})

        # Only forward the fields present in the patch
        kwargs = {name: getattr(command, name) for name in _PATCHABLE if getattr(command, name) is not None}

        review.edit(
            editor_id=command.editor_id,
            by_admin=bool(command.editor_is_admin),
            **kwargs,
        )
        repo.add(review)
