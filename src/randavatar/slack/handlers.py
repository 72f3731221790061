"""Slack event handlers for randavatar.

Handles:
- app_home_opened: publish the settings panel
- static_select-action: cadence changes arriving through the Bolt endpoint
"""

from __future__ import annotations

from typing import Any

import structlog
from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncBoltContext

from randavatar.db.store import UserStore
from randavatar.errors import AvatarError
from randavatar.slack.home_tab import publish_home_tab
from randavatar.slack.interactivity import FREQUENCY_ACTION_ID, apply_interaction

logger = structlog.get_logger()


def register_handlers(app: AsyncApp, store: UserStore) -> None:
    """Register all Slack event handlers with the Bolt app."""

    # ═══ APP HOME ═══════════════════════════════════════════════════════

    @app.event("app_home_opened")
    async def handle_app_home_opened(
        event: dict[str, Any],
        context: AsyncBoltContext,
    ) -> None:
        if event.get("tab", "home") != "home":
            return
        user_id = event.get("user") or ""
        team_id = context.get("team_id") or event.get("view", {}).get("team_id") or ""

        try:
            await publish_home_tab(store, user_id, team_id)
        except AvatarError as e:
            logger.warning(
                "home_tab_publish_failed",
                team_id=team_id,
                user_id=user_id,
                error=str(e),
            )

    # ═══ BLOCK KIT ACTIONS ═════════════════════════════════════════════

    @app.action(FREQUENCY_ACTION_ID)
    async def handle_frequency_selected(
        ack: AsyncAck,
        body: dict[str, Any],
    ) -> None:
        await ack()
        outcome = await apply_interaction(body, store)
        logger.info("frequency_action_handled", outcome=outcome.value)
