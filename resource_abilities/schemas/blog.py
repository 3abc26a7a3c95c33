from __future__ import annotations

from datetime import datetime

from resource_abilities.schemas.resource import ResourceModel, when_loaded


class AuthorOut(ResourceModel):
    id: int
    username: str


class CommentOut(ResourceModel):
    id: int
    post_id: int
    author_id: int
    body: str
    created_at: datetime

    author: AuthorOut | None = when_loaded()


class PostOut(ResourceModel):
    id: int
    author_id: int
    title: str
    body: str
    is_published: bool
    created_at: datetime

    author: AuthorOut | None = when_loaded()
    comments: list[CommentOut] | None = when_loaded()
