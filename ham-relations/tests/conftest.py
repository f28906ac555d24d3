import pytest

from ham_relations import Base, Database

from entities import Article, Country, Post, Profile, Tag, User, post_tag


@pytest.fixture
def database():
    """Fresh in-memory database with the test schema."""
    Database.reset()
    db = Database("sqlite:///:memory:")
    db.init_db(Base)
    yield db
    Database.reset()


@pytest.fixture
def session(database):
    db = database.new_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def seeded(session):
    """
    countries: 1 NL, 2 BE
    users:     1 alice (NL), 2 bob (NL), 3 carol (BE)
    posts:     1, 2 by alice; 3 by bob; 4 by carol
    tags:      post 1 -> python, sql; post 2 -> python
    profiles:  alice, carol
    writings:  1, 2 by bob
    """
    session.add_all([
        Country(id=1, name="NL"),
        Country(id=2, name="BE"),
        User(id=1, name="alice", country_id=1),
        User(id=2, name="bob", country_id=1),
        User(id=3, name="carol", country_id=2),
        Post(id=1, title="Hello", user_id=1),
        Post(id=2, title="ORM", user_id=1),
        Post(id=3, title="Joins", user_id=2),
        Post(id=4, title="Other", user_id=3),
        Tag(id=1, name="python"),
        Tag(id=2, name="sql"),
        Profile(id=1, user_id=1, bio="bio a"),
        Profile(id=2, user_id=3, bio="bio c"),
        Article(id=1, user_id=2, headline="First"),
        Article(id=2, user_id=2, headline="Second"),
    ])
    session.flush()
    session.execute(post_tag.insert(), [
        {"post_id": 1, "tag_id": 1},
        {"post_id": 1, "tag_id": 2},
        {"post_id": 2, "tag_id": 1},
    ])
    session.commit()
    return session
