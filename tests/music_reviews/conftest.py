import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def music_reviews_bed():
    from music_reviews.domain import music_reviews
    from music_reviews.utils.db import drop_db, setup_db

    bed = DomainFixture(music_reviews)
    bed.setup()
    setup_db(music_reviews)
    yield bed
    drop_db(music_reviews)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(music_reviews_bed):
    with music_reviews_bed.domain_context():
        yield


@pytest.fixture()
def album():
    from music_reviews.work.work import Album

    album = Album(title="Madvillainy", artist="Madvillain")
    current_domain.repository_for(Album).add(album)
    return album


@pytest.fixture()
def track(album):
    from music_reviews.work.work import Track

    track = Track(title="Accordion", album_id=album.id)
    current_domain.repository_for(Track).add(track)
    return track


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()
