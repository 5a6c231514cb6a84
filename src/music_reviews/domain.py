"""Music Reviews bounded context: scored reviews, moderation, work ratings and likes.

Handles the review lifecycle (CQRS), admin moderation, the aggregate rating
kept on every album and track, and the like ledger for reviews and works.
"""

from protean.domain import Domain

from music_reviews.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
music_reviews = Domain(name="music_reviews")
