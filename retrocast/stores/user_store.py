"""
retrocast.stores.user_store — Identity Store
=============================================

Users are the root entity; almost every other table references them.
``username`` is unique; a duplicate surfaces as
:class:`~retrocast.errors.ConflictError`.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select, update

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session

logger = logging.getLogger(__name__)


class UserRepository:
    """CRUD over ``users``."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, user: schemas.User) -> None:
        with get_session(self.engine) as session:
            session.add(models.User(
                id=user.id,
                username=user.username,
                display_name=user.display_name,
                avatar_hash=user.avatar_hash,
                password_hash=user.password_hash,
                created_at=user.created_at,
            ))
        logger.debug("User created: id=%d", user.id)

    def get_by_id(self, user_id: int) -> schemas.User | None:
        with get_session(self.engine) as session:
            row = session.get(models.User, user_id)
            return schemas.User.model_validate(row) if row else None

    def get_by_username(self, username: str) -> schemas.User | None:
        with get_session(self.engine) as session:
            row = session.scalar(
                select(models.User).where(models.User.username == username)
            )
            return schemas.User.model_validate(row) if row else None

    def update(self, user: schemas.User) -> None:
        """Replace username, display name, avatar and credential hash."""
        with get_session(self.engine) as session:
            session.execute(
                update(models.User)
                .where(models.User.id == user.id)
                .values(
                    username=user.username,
                    display_name=user.display_name,
                    avatar_hash=user.avatar_hash,
                    password_hash=user.password_hash,
                )
            )

    def delete(self, user_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(delete(models.User).where(models.User.id == user_id))
