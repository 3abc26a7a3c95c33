from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from resource_abilities.abilities.resolver import AbilityResolver
from resource_abilities.db.session import get_db
from resource_abilities.models.security import User
from resource_abilities.security.auth import extract_user_id, load_user
from resource_abilities.security.context import AbilityContext


def get_ability_resolver(request: Request) -> AbilityResolver:
    resolver = getattr(request.app.state, "ability_resolver", None)
    if resolver is None:
        raise RuntimeError("Ability resolver not configured. Did app startup run?")
    return resolver


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    user_id = extract_user_id(request)
    if user_id is None:
        return None
    user = load_user(db, user_id)
    request.state.user = user
    return user


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_ability_context(
    resolver: AbilityResolver = Depends(get_ability_resolver),
    user: User | None = Depends(get_optional_user),
) -> AbilityContext:
    """Ability context for the acting subject (None for anonymous requests)."""
    return AbilityContext(resolver=resolver, subject=user)
