"""Database models for the avatar service.

Users are keyed by the Slack (team, user) pair: team as the partition,
user as the row within it. Rows are never deleted by the service; a user in
an error state is flagged with ``valid = False`` and skipped by the updater.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from randavatar.config import settings
from randavatar.frequency import DEFAULT_UPDATE_FREQUENCY_SECONDS


class Base(DeclarativeBase):
    """Base class with common utilities."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dict for serialization."""
        return {
            c.name: getattr(self, c.name)
            for c in self.__table__.columns
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to timestamps read back from drivers that drop tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class UserEntity(Base):
    """A Slack user whose avatar we rotate."""

    __tablename__ = settings.user_table_name

    team_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # User token (xoxp-) with users.profile:write
    access_token: Mapped[str] = mapped_column(Text, default="")

    last_avatar_change: Mapped[datetime | None] = mapped_column(
        nullable=True,
        comment="UTC time of the last successful avatar change",
    )
    update_frequency_seconds: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_UPDATE_FREQUENCY_SECONDS
    )
    valid: Mapped[bool] = mapped_column(
        Boolean, default=True, index=True,
        comment="False once an update failed; excluded from scheduling",
    )

    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<UserEntity {self.team_id}/{self.user_id} "
            f"every={self.update_frequency_seconds}s valid={self.valid}>"
        )


class WorkspaceBot(Base):
    """Bot credential for a workspace, used to publish the home tab."""

    __tablename__ = "workspace_bots"

    team_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    access_token: Mapped[str] = mapped_column(Text)
    bot_user_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow
    )
