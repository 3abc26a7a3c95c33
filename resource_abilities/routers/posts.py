from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from resource_abilities.db.loading import abilities, declare_on_loader
from resource_abilities.db.session import get_db
from resource_abilities.models.blog import Comment, Post
from resource_abilities.models.security import User
from resource_abilities.policies.blog import PostPolicy
from resource_abilities.schemas.blog import PostOut
from resource_abilities.schemas.security import UserOut
from resource_abilities.security.context import AbilityContext
from resource_abilities.security.dependencies import get_ability_context, get_current_user

router = APIRouter(tags=["posts"])


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> User:
    return user


@router.get("/posts", response_model=None)
def list_posts(
    db: Session = Depends(get_db),
    ability_context: AbilityContext = Depends(get_ability_context),
) -> list[PostOut]:
    # Only `update` is evaluated per post and `delete` per comment; nothing
    # is re-declared or re-queried per entity.
    stmt = declare_on_loader(
        select(Post)
        .options(selectinload(Post.author), selectinload(Post.comments).selectinload(Comment.author))
        .order_by(Post.id),
        "update",
        relations={"comments": abilities("delete")},
    )
    context = ability_context.validation_context()
    return [PostOut.model_validate(post, context=context) for post in db.scalars(stmt).all()]


@router.get("/posts/{id}", response_model=None)
def get_post(
    id: int,
    db: Session = Depends(get_db),
    ability_context: AbilityContext = Depends(get_ability_context),
) -> PostOut:
    stmt = declare_on_loader(
        select(Post).where(Post.id == id).options(selectinload(Post.author)),
        PostPolicy,
    )
    post = db.scalars(stmt).first()
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return PostOut.model_validate(post, context=ability_context.validation_context())
