"""Scheduled avatar rotation: the tick scheduler and the per-tick updater."""

from randavatar.crons.scheduler import (
    AvatarScheduler,
    get_scheduler,
    validate_cron_expression,
)
from randavatar.crons.updater import AvatarUpdater, TickReport, due_window, is_due

__all__ = [
    "AvatarScheduler",
    "AvatarUpdater",
    "TickReport",
    "due_window",
    "get_scheduler",
    "is_due",
    "validate_cron_expression",
]
