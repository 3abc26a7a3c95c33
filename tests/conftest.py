"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other.
"""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from resource_abilities.db.base import Base
    from resource_abilities.models import blog  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def blog_data(db_session):
    """
    Seed users, posts and comments.

    - wren (no roles) writes posts 1 and 2
    - erin (editor) writes post 3 and comments on post 1
    - milo (moderator) comments on post 1
    """
    from resource_abilities.models.blog import Comment, Post
    from resource_abilities.models.security import Role, User

    editor = Role(name="editor", description="Edits any post")
    moderator = Role(name="moderator", description="Moderates comments")
    db_session.add_all([editor, moderator])
    db_session.flush()

    wren = User(username="wren", email="wren@example.com", is_active=True)
    erin = User(username="erin", email="erin@example.com", is_active=True)
    erin.roles.append(editor)
    milo = User(username="milo", email="milo@example.com", is_active=True)
    milo.roles.append(moderator)
    db_session.add_all([wren, erin, milo])
    db_session.flush()

    p1 = Post(author_id=wren.id, title="Hello", body="First.", is_published=True)
    p2 = Post(author_id=wren.id, title="Draft", body="Later.", is_published=False)
    p3 = Post(author_id=erin.id, title="Guide", body="Style.", is_published=True)
    db_session.add_all([p1, p2, p3])
    db_session.flush()

    c1 = Comment(post_id=p1.id, author_id=milo.id, body="Welcome!")
    c2 = Comment(post_id=p1.id, author_id=erin.id, body="Nice.")
    db_session.add_all([c1, c2])
    db_session.commit()

    return {
        "users": {"wren": wren, "erin": erin, "milo": milo},
        "posts": [p1, p2, p3],
        "comments": [c1, c2],
    }
