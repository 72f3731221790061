"""Avatar updater: one scheduled pass over every active user.

On each tick the updater loads all valid users, picks the ones whose
cadence has come around, and for each of them fetches a fresh image,
normalizes it and uploads it with the user's token.

Failure isolation is the central rule: whatever goes wrong for one user
(bad token, image source down, undecodable image, Slack refusing the
upload, even the final upsert) is contained to that user. A failed user
is flagged ``valid = False`` and left out of future ticks. Only a failure
to load the user list at all aborts the tick.

Eligibility uses a ±10% tolerance window around the ideal next-update
instant so scheduler jitter never causes systematic misses.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog

from randavatar.config import settings
from randavatar.db.models import UserEntity, as_utc
from randavatar.db.store import UserStore
from randavatar.errors import AvatarError, ValidationError
from randavatar.images import normalize
from randavatar.integrations.image_source import ImageSource
from randavatar.integrations.slack_profile import SlackProfileClient, is_user_token

logger = structlog.get_logger()

DEFAULT_TOLERANCE = 0.1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def due_window(
    last_change: datetime, frequency_seconds: int, tolerance: float = DEFAULT_TOLERANCE,
) -> tuple[datetime, datetime]:
    """The [start, end] band in which the next update is due."""
    last_change = as_utc(last_change)
    return (
        last_change + timedelta(seconds=(1 - tolerance) * frequency_seconds),
        last_change + timedelta(seconds=(1 + tolerance) * frequency_seconds),
    )


def is_due(user: UserEntity, now: datetime, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """Whether ``user`` should be updated on a tick running at ``now``.

    Users that were never updated are always due. Stored cadences are
    trusted as-is.
    """
    if user.last_avatar_change is None:
        return True
    start, end = due_window(
        user.last_avatar_change, user.update_frequency_seconds, tolerance,
    )
    return start <= as_utc(now) <= end


@dataclass
class TickReport:
    """Outcome counts for one tick."""

    evaluated: int = 0
    eligible: int = 0
    succeeded: int = 0
    failed: int = 0
    persist_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AvatarUpdater:
    """Runs avatar update ticks against a user store."""

    def __init__(
        self,
        store: UserStore,
        image_source: ImageSource | None = None,
        profile_client: SlackProfileClient | None = None,
        max_concurrency: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        self.store = store
        self.image_source = image_source or ImageSource()
        self.profile_client = profile_client or SlackProfileClient()
        self.max_concurrency = max(1, max_concurrency or settings.max_concurrent_updates)
        self.clock = clock
        self.tolerance = tolerance

    async def run_tick(self, now: datetime | None = None) -> TickReport:
        """Evaluate every valid user and update the ones that are due.

        Raises ``PersistenceError`` only if the user list cannot be loaded.
        """
        now = as_utc(now) if now is not None else self.clock()
        users = await self.store.list_users()

        report = TickReport(evaluated=len(users))
        due = [u for u in users if u.valid and is_due(u, now, self.tolerance)]
        report.eligible = len(due)

        logger.info("avatar_tick_started", now=now.isoformat(), users=len(users), due=len(due))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(user: UserEntity) -> tuple[bool, bool]:
            async with semaphore:
                return await self._process_user(user)

        results = await asyncio.gather(*(_bounded(u) for u in due))
        for succeeded, persisted in results:
            if succeeded:
                report.succeeded += 1
            else:
                report.failed += 1
            if not persisted:
                report.persist_failed += 1

        logger.info("avatar_tick_finished", **report.to_dict())
        return report

    async def _process_user(self, user: UserEntity) -> tuple[bool, bool]:
        """Update one user and record the outcome. Never raises."""
        log = logger.bind(team_id=user.team_id, user_id=user.user_id)
        try:
            await self._update_avatar(user)
        except AvatarError as e:
            log.warning("avatar_update_failed", error=str(e), error_type=type(e).__name__)
            succeeded = False
        except Exception as e:
            log.exception("avatar_update_crashed", error=str(e))
            succeeded = False
        else:
            succeeded = True

        if succeeded:
            changed_at = self.clock()
            previous = as_utc(user.last_avatar_change)
            user.last_avatar_change = max(previous, changed_at) if previous else changed_at
            log.info("avatar_updated", changed_at=user.last_avatar_change.isoformat())
        else:
            user.valid = False

        try:
            error = await self.store.try_upsert_user(user)
        except Exception as e:
            log.exception("user_upsert_crashed", error=str(e))
            return succeeded, False
        return succeeded, error is None

    async def _update_avatar(self, user: UserEntity) -> None:
        # fetch -> normalize -> upload; each step needs the previous result
        if not is_user_token(user.access_token):
            raise ValidationError("Stored credential is not a user token")

        raw = await self.image_source.fetch()
        image = await asyncio.to_thread(normalize, raw)
        await self.profile_client.set_photo(user.access_token, image)
