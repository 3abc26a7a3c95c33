from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from resource_abilities.db.base import Base
from resource_abilities.db.session import SessionLocal, engine
from resource_abilities.models.blog import Comment, Post
from resource_abilities.models.security import Role, User


def init_db() -> None:
    """
    Create tables + seed demo data.

    Small and deterministic so abilities can be tried per user
    (`Authorization: Bearer <user id>`) without additional setup.
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Roles
    admin = Role(name="admin", description="System administrator")
    editor = Role(name="editor", description="Edits any post")
    moderator = Role(name="moderator", description="Moderates comments")
    db.add_all([admin, editor, moderator])
    db.flush()

    # Users
    u1 = User(username="alice_admin", email="alice.admin@example.com", is_active=True)
    u1.roles.append(admin)

    u2 = User(username="erin_editor", email="erin.editor@example.com", is_active=True)
    u2.roles.append(editor)

    u3 = User(username="milo_mod", email="milo.mod@example.com", is_active=True)
    u3.roles.append(moderator)

    u4 = User(username="wren_writer", email="wren.writer@example.com", is_active=True)

    db.add_all([u1, u2, u3, u4])
    db.flush()

    # Posts (one draft)
    p1 = Post(author_id=u4.id, title="Hello", body="First post.", is_published=True)
    p2 = Post(author_id=u4.id, title="Draft", body="Not ready yet.", is_published=False)
    p3 = Post(author_id=u2.id, title="Style guide", body="House style.", is_published=True)
    db.add_all([p1, p2, p3])
    db.flush()

    # Comments
    db.add_all(
        [
            Comment(post_id=p1.id, author_id=u3.id, body="Welcome!"),
            Comment(post_id=p1.id, author_id=u2.id, body="Nice start."),
            Comment(post_id=p3.id, author_id=u4.id, body="Thanks for this."),
        ]
    )

    db.commit()
