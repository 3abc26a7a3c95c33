from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from resource_abilities.settings import get_settings


_settings = get_settings()

engine = create_engine(
    _settings.resolved_db_url(),
    connect_args={"check_same_thread": False} if _settings.resolved_db_url().startswith("sqlite") else {},
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    Main DB dependency.

    Ability declarations made with `declare_on_loader` are propagated by the
    `do_orm_execute` listener in resource_abilities.db.loading, registered
    on every Session.
    """

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
