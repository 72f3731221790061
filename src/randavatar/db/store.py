"""User store: key-value persistence for avatar users.

Users are addressed by (team_id, user_id). Writes are upserts via
``session.merge`` so the store never has to distinguish insert from
update. Every call is bounded by ``store_timeout_s``; SQLAlchemy failures,
connection errors and timeouts are reported as ``PersistenceError``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from randavatar.config import settings
from randavatar.db.models import UserEntity, WorkspaceBot
from randavatar.errors import PersistenceError, ValidationError
from randavatar.frequency import DEFAULT_UPDATE_FREQUENCY_SECONDS

logger = structlog.get_logger()

T = TypeVar("T")

_store: UserStore | None = None


def _require_ids(**ids: str | None) -> None:
    for name, value in ids.items():
        if value is None or not str(value).strip():
            raise ValidationError(f"{name} is required")


class UserStore:
    """Async access to user and workspace-bot records."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        timeout_s: float | None = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._timeout_s = timeout_s if timeout_s is not None else settings.store_timeout_s

    async def _run(
        self,
        operation: str,
        fn: Callable[[AsyncSession], Awaitable[T]],
        timeout_s: float | None = None,
    ) -> T:
        async def _in_session() -> T:
            async with self._sessionmaker() as session:
                try:
                    result = await fn(session)
                    await session.commit()
                    return result
                except Exception:
                    await session.rollback()
                    raise

        seconds = timeout_s if timeout_s is not None else self._timeout_s
        try:
            return await asyncio.wait_for(_in_session(), timeout=seconds)
        except asyncio.TimeoutError as e:
            raise PersistenceError(f"{operation} timed out after {seconds:.1f}s") from e
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"{operation} failed: {e}") from e

    # ── Users ─────────────────────────────────────────────────

    async def list_users(self, include_errors: bool = False) -> list[UserEntity]:
        """All users, or only those not in an error state (the default)."""

        async def _query(session: AsyncSession) -> list[UserEntity]:
            stmt = select(UserEntity)
            if not include_errors:
                stmt = stmt.where(UserEntity.valid.is_(True))
            result = await session.execute(stmt)
            return list(result.scalars().all())

        return await self._run("list_users", _query)

    async def get_user(
        self, user_id: str, team_id: str, timeout_s: float | None = None,
    ) -> UserEntity | None:
        _require_ids(user_id=user_id, team_id=team_id)

        async def _query(session: AsyncSession) -> UserEntity | None:
            return await session.get(UserEntity, (team_id.strip(), user_id.strip()))

        return await self._run("get_user", _query, timeout_s)

    async def upsert_user(
        self, user: UserEntity, timeout_s: float | None = None,
    ) -> UserEntity:
        _require_ids(user_id=user.user_id, team_id=user.team_id)

        async def _merge(session: AsyncSession) -> UserEntity:
            return await session.merge(user)

        return await self._run("upsert_user", _merge, timeout_s)

    async def try_upsert_user(
        self, user: UserEntity, timeout_s: float | None = None,
    ) -> PersistenceError | None:
        """Best-effort upsert: returns the failure instead of raising it."""
        try:
            await self.upsert_user(user, timeout_s=timeout_s)
        except PersistenceError as e:
            logger.warning(
                "user_upsert_failed",
                team_id=user.team_id,
                user_id=user.user_id,
                error=str(e),
            )
            return e
        return None

    async def register_authorization(self, access: dict[str, Any]) -> UserEntity:
        """Create or refresh a user from an ``oauth.v2.access`` response.

        The user is (re)marked valid with the fresh token; an existing
        cadence and update history are kept. A bot token in the same
        response is stored as the workspace credential.
        """
        authed_user = access.get("authed_user") or {}
        team = access.get("team") or {}
        user_id = (authed_user.get("id") or "").strip()
        team_id = (team.get("id") or "").strip()
        if not access.get("ok") or not user_id or not team_id:
            raise ValidationError("The provided authorization response is not valid")

        user = await self.get_user(user_id, team_id)
        if user is None:
            user = UserEntity(
                team_id=team_id,
                user_id=user_id,
                update_frequency_seconds=DEFAULT_UPDATE_FREQUENCY_SECONDS,
                last_avatar_change=None,
            )
        user.access_token = authed_user.get("access_token") or ""
        user.valid = True
        user = await self.upsert_user(user)

        if access.get("token_type") == "bot" and access.get("access_token"):
            await self.upsert_workspace_bot(WorkspaceBot(
                team_id=team_id,
                access_token=access["access_token"],
                bot_user_id=access.get("bot_user_id"),
            ))

        logger.info("user_authorized", team_id=team_id, user_id=user_id)
        return user

    # ── Workspace bots ────────────────────────────────────────

    async def get_workspace_bot(self, team_id: str) -> WorkspaceBot | None:
        _require_ids(team_id=team_id)

        async def _query(session: AsyncSession) -> WorkspaceBot | None:
            return await session.get(WorkspaceBot, team_id.strip())

        return await self._run("get_workspace_bot", _query)

    async def upsert_workspace_bot(self, bot: WorkspaceBot) -> WorkspaceBot:
        _require_ids(team_id=bot.team_id)

        async def _merge(session: AsyncSession) -> WorkspaceBot:
            return await session.merge(bot)

        return await self._run("upsert_workspace_bot", _merge)


def get_store() -> UserStore:
    """Process-wide store bound to the configured database."""
    global _store
    if _store is None:
        from randavatar.db.session import get_sessionmaker

        _store = UserStore(get_sessionmaker())
    return _store
