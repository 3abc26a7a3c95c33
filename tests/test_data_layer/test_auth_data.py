"""
Tests for user-loading data access (ORM).

Uses db_session fixture: in-memory SQLite, rolled back after each test.
"""
from __future__ import annotations

import pytest
from fastapi import HTTPException

from resource_abilities.models.security import Role, User
from resource_abilities.security.auth import load_user


def test_load_user_returns_user_with_roles(db_session):
    role = Role(name="admin", description="Admin role")
    db_session.add(role)
    db_session.flush()

    user = User(username="testuser", email="test@example.com", is_active=True)
    user.roles.append(role)
    db_session.add(user)
    db_session.commit()

    loaded = load_user(db_session, user.id)

    assert loaded.id == user.id
    assert loaded.username == "testuser"
    assert len(loaded.roles) == 1
    assert loaded.roles[0].name == "admin"


def test_load_user_raises_when_not_found(db_session):
    with pytest.raises(HTTPException) as exc_info:
        load_user(db_session, 99999)
    assert exc_info.value.status_code == 401


def test_load_user_raises_when_inactive(db_session):
    user = User(username="inactive", email="inactive@example.com", is_active=False)
    db_session.add(user)
    db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        load_user(db_session, user.id)
    assert exc_info.value.status_code == 401
