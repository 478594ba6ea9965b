"""
retrocast.stores.guild_store — Guild, Membership & Role Store
==============================================================

The community graph: guilds, their members, roles, the member ↔ role
junction, bans and invites.

Rules enforced here:

* ``add_role`` / ``remove_role`` are idempotent: re-adding a held role or
  removing an unheld one is a no-op, never an error.
* Roles list by ``position`` ascending (``id`` breaks ties), both per guild
  and per member.
* Duplicate members, bans and invite codes raise
  :class:`~retrocast.errors.ConflictError`.
* ``increment_uses`` is a relative ``uses = uses + 1`` so concurrent
  redemptions never lose an update.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.orm import Session

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session
from retrocast.database.upsert import insert_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------
class GuildRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, guild: schemas.Guild) -> None:
        with get_session(self.engine) as session:
            session.add(models.Guild(
                id=guild.id,
                name=guild.name,
                icon_hash=guild.icon_hash,
                owner_id=guild.owner_id,
                created_at=guild.created_at,
            ))
        logger.debug("Guild created: id=%d owner=%d", guild.id, guild.owner_id)

    def get_by_id(self, guild_id: int) -> schemas.Guild | None:
        with get_session(self.engine) as session:
            row = session.get(models.Guild, guild_id)
            return schemas.Guild.model_validate(row) if row else None

    def update(self, guild: schemas.Guild) -> None:
        with get_session(self.engine) as session:
            session.execute(
                update(models.Guild)
                .where(models.Guild.id == guild.id)
                .values(name=guild.name, icon_hash=guild.icon_hash, owner_id=guild.owner_id)
            )

    def delete(self, guild_id: int) -> None:
        """Hard delete; channels, roles, members, bans and invites cascade."""
        with get_session(self.engine) as session:
            session.execute(delete(models.Guild).where(models.Guild.id == guild_id))
        logger.debug("Guild deleted: id=%d", guild_id)

    def get_by_user_id(self, user_id: int) -> list[schemas.Guild]:
        """Guilds *user_id* is a member of, ordered by guild id."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Guild)
                .join(models.Member, models.Member.guild_id == models.Guild.id)
                .where(models.Member.user_id == user_id)
                .order_by(models.Guild.id)
            ).all()
            return [schemas.Guild.model_validate(r) for r in rows]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------
def _role_ids_by_user(
    session: Session, guild_id: int, user_ids: list[int],
) -> dict[int, list[int]]:
    """Batch-load role ids for many members of one guild, each list ordered
    by role position then id."""
    grouped: dict[int, list[int]] = defaultdict(list)
    if not user_ids:
        return grouped
    rows = session.execute(
        select(models.MemberRole.user_id, models.MemberRole.role_id)
        .join(models.Role, models.Role.id == models.MemberRole.role_id)
        .where(
            models.MemberRole.guild_id == guild_id,
            models.MemberRole.user_id.in_(user_ids),
        )
        .order_by(models.Role.position, models.Role.id)
    ).all()
    for user_id, role_id in rows:
        grouped[user_id].append(role_id)
    return grouped


def _to_member(row: models.Member, roles: list[int]) -> schemas.Member:
    return schemas.Member(
        guild_id=row.guild_id,
        user_id=row.user_id,
        nickname=row.nickname,
        joined_at=row.joined_at,
        roles=roles,
    )


def _check_page(limit: int, offset: int) -> None:
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise ValueError(f"offset must not be negative, got {offset}")


class MemberRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, member: schemas.Member) -> None:
        """Insert the membership row only; ``member.roles`` is ignored.
        Use :meth:`add_role` for assignments."""
        with get_session(self.engine) as session:
            session.add(models.Member(
                guild_id=member.guild_id,
                user_id=member.user_id,
                nickname=member.nickname,
                joined_at=member.joined_at,
            ))
        logger.debug("Member created: guild=%d user=%d", member.guild_id, member.user_id)

    def get_by_guild_and_user(self, guild_id: int, user_id: int) -> schemas.Member | None:
        with get_session(self.engine) as session:
            row = session.get(models.Member, (guild_id, user_id))
            if row is None:
                return None
            roles = _role_ids_by_user(session, guild_id, [user_id])
            return _to_member(row, roles[user_id])

    def get_by_guild_id(
        self, guild_id: int, limit: int = 100, offset: int = 0,
    ) -> list[schemas.Member]:
        """One page of members, oldest join first, roles hydrated."""
        _check_page(limit, offset)
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Member)
                .where(models.Member.guild_id == guild_id)
                .order_by(models.Member.joined_at, models.Member.user_id)
                .limit(limit)
                .offset(offset)
            ).all()
            roles = _role_ids_by_user(session, guild_id, [r.user_id for r in rows])
            return [_to_member(r, roles[r.user_id]) for r in rows]

    def update(self, member: schemas.Member) -> None:
        """Replace the nickname.  Role assignments are untouched."""
        with get_session(self.engine) as session:
            session.execute(
                update(models.Member)
                .where(
                    models.Member.guild_id == member.guild_id,
                    models.Member.user_id == member.user_id,
                )
                .values(nickname=member.nickname)
            )

    def delete(self, guild_id: int, user_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.Member).where(
                    models.Member.guild_id == guild_id,
                    models.Member.user_id == user_id,
                )
            )

    def add_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.MemberRole).values(
                guild_id=guild_id, user_id=user_id, role_id=role_id,
            )
            session.execute(stmt.on_conflict_do_nothing())

    def remove_role(self, guild_id: int, user_id: int, role_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.MemberRole).where(
                    models.MemberRole.guild_id == guild_id,
                    models.MemberRole.user_id == user_id,
                    models.MemberRole.role_id == role_id,
                )
            )


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
class RoleRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, role: schemas.Role) -> None:
        with get_session(self.engine) as session:
            session.add(models.Role(
                id=role.id,
                guild_id=role.guild_id,
                name=role.name,
                color=role.color,
                permissions=role.permissions,
                position=role.position,
                is_default=role.is_default,
            ))

    def get_by_id(self, role_id: int) -> schemas.Role | None:
        with get_session(self.engine) as session:
            row = session.get(models.Role, role_id)
            return schemas.Role.model_validate(row) if row else None

    def get_by_guild_id(self, guild_id: int) -> list[schemas.Role]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Role)
                .where(models.Role.guild_id == guild_id)
                .order_by(models.Role.position, models.Role.id)
            ).all()
            return [schemas.Role.model_validate(r) for r in rows]

    def update(self, role: schemas.Role) -> None:
        with get_session(self.engine) as session:
            session.execute(
                update(models.Role)
                .where(models.Role.id == role.id)
                .values(
                    name=role.name,
                    color=role.color,
                    permissions=role.permissions,
                    position=role.position,
                    is_default=role.is_default,
                )
            )

    def delete(self, role_id: int) -> None:
        """Hard delete; assignments and channel overrides cascade."""
        with get_session(self.engine) as session:
            session.execute(delete(models.Role).where(models.Role.id == role_id))

    def get_by_member(self, guild_id: int, user_id: int) -> list[schemas.Role]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Role)
                .join(models.MemberRole, models.MemberRole.role_id == models.Role.id)
                .where(
                    models.MemberRole.guild_id == guild_id,
                    models.MemberRole.user_id == user_id,
                )
                .order_by(models.Role.position, models.Role.id)
            ).all()
            return [schemas.Role.model_validate(r) for r in rows]


# ---------------------------------------------------------------------------
# Bans
# ---------------------------------------------------------------------------
class BanRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, ban: schemas.Ban) -> None:
        with get_session(self.engine) as session:
            session.add(models.Ban(
                guild_id=ban.guild_id,
                user_id=ban.user_id,
                reason=ban.reason,
                created_by=ban.created_by,
                created_at=ban.created_at,
            ))
        logger.debug("Ban created: guild=%d user=%d", ban.guild_id, ban.user_id)

    def get_by_guild_and_user(self, guild_id: int, user_id: int) -> schemas.Ban | None:
        with get_session(self.engine) as session:
            row = session.get(models.Ban, (guild_id, user_id))
            return schemas.Ban.model_validate(row) if row else None

    def get_by_guild_id(self, guild_id: int) -> list[schemas.Ban]:
        """Most recent ban first."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Ban)
                .where(models.Ban.guild_id == guild_id)
                .order_by(models.Ban.created_at.desc(), models.Ban.user_id.desc())
            ).all()
            return [schemas.Ban.model_validate(r) for r in rows]

    def delete(self, guild_id: int, user_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.Ban).where(
                    models.Ban.guild_id == guild_id,
                    models.Ban.user_id == user_id,
                )
            )


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------
class InviteRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, invite: schemas.Invite) -> None:
        with get_session(self.engine) as session:
            session.add(models.Invite(
                code=invite.code,
                guild_id=invite.guild_id,
                channel_id=invite.channel_id,
                creator_id=invite.creator_id,
                max_uses=invite.max_uses,
                uses=invite.uses,
                expires_at=invite.expires_at,
                created_at=invite.created_at,
            ))

    def get_by_code(self, code: str) -> schemas.Invite | None:
        with get_session(self.engine) as session:
            row = session.get(models.Invite, code)
            return schemas.Invite.model_validate(row) if row else None

    def get_by_guild_id(self, guild_id: int) -> list[schemas.Invite]:
        """Newest invite first."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Invite)
                .where(models.Invite.guild_id == guild_id)
                .order_by(models.Invite.created_at.desc(), models.Invite.code)
            ).all()
            return [schemas.Invite.model_validate(r) for r in rows]

    def increment_uses(self, code: str) -> None:
        with get_session(self.engine) as session:
            session.execute(
                update(models.Invite)
                .where(models.Invite.code == code)
                .values(uses=models.Invite.uses + 1)
            )

    def delete(self, code: str) -> None:
        with get_session(self.engine) as session:
            session.execute(delete(models.Invite).where(models.Invite.code == code))
