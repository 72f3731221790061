"""Block Kit interaction handling for the home tab cadence picker.

Slack POSTs interactions as ``application/x-www-form-urlencoded`` with a
single ``payload`` field holding JSON, and expects a 2xx within 3 seconds.
The only interaction this app cares about is the ``static_select-action``
select on the home tab:

https://api.slack.com/reference/interaction-payloads/block-actions

Anything malformed is rejected uniformly; the caller never learns why.
Once a known user picked a value the request is accepted, whether or not
the value is offered and whether or not the write lands in time.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import parse_qs

import structlog

from randavatar.config import settings
from randavatar.db.store import UserStore
from randavatar.errors import PersistenceError, ValidationError
from randavatar.frequency import FREQUENCY_OPTIONS, is_known_frequency

logger = structlog.get_logger()

BLOCK_ACTIONS = "block_actions"
FREQUENCY_ACTION_ID = "static_select-action"


class InteractionOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


def parse_payload(raw_body: str | bytes | None) -> dict[str, Any] | None:
    """Decode the form body's ``payload`` field, or None if unusable."""
    if raw_body is None:
        return None
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    raw_body = raw_body.strip()
    if not raw_body:
        return None

    fields = parse_qs(raw_body, keep_blank_values=True)
    payload_values = fields.get("payload")
    if not payload_values or not payload_values[0].strip():
        return None
    try:
        payload = json.loads(payload_values[0])
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def _is_block_actions(payload: dict[str, Any]) -> bool:
    kind = payload.get("type")
    actions = payload.get("actions")
    return (
        isinstance(kind, str)
        and kind.lower() == BLOCK_ACTIONS
        and isinstance(actions, list)
        and len(actions) > 0
    )


def _find_action(payload: dict[str, Any], action_id: str) -> dict[str, Any] | None:
    for action in payload.get("actions", []):
        if isinstance(action, dict) and action.get("action_id") == action_id:
            return action
    return None


def selected_value(action: dict[str, Any]) -> str:
    """Value of a select (``selected_option.value``) or a button (``value``)."""
    option = action.get("selected_option")
    if isinstance(option, dict) and option.get("value"):
        return str(option["value"]).strip()
    return str(action.get("value") or "").strip()


def _ids(payload: dict[str, Any]) -> tuple[str, str]:
    user = payload.get("user")
    team = payload.get("team")
    if not isinstance(user, dict):
        user = {}
    if not isinstance(team, dict):
        team = {}
    user_id = str(user.get("id") or "").strip()
    team_id = str(user.get("team_id") or team.get("id") or "").strip()
    return user_id, team_id


def _parse_frequency(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


async def handle_interaction(
    raw_body: str | bytes | None,
    store: UserStore,
    options: Mapping[int, str] = FREQUENCY_OPTIONS,
    timeout_s: float | None = None,
) -> InteractionOutcome:
    """Handle a raw interaction request body from Slack."""
    return await apply_interaction(parse_payload(raw_body), store, options, timeout_s)


async def apply_interaction(
    payload: dict[str, Any] | None,
    store: UserStore,
    options: Mapping[int, str] = FREQUENCY_OPTIONS,
    timeout_s: float | None = None,
) -> InteractionOutcome:
    """Apply a cadence selection from an already decoded payload.

    Store calls are bounded by ``interaction_timeout_s`` so the
    acknowledgment stays inside Slack's 3 second window.
    """
    timeout_s = timeout_s if timeout_s is not None else settings.interaction_timeout_s

    if payload is None or not _is_block_actions(payload):
        logger.info("interaction_rejected", reason="envelope")
        return InteractionOutcome.REJECTED

    action = _find_action(payload, FREQUENCY_ACTION_ID)
    if action is None:
        logger.info("interaction_rejected", reason="unknown_action")
        return InteractionOutcome.REJECTED

    user_id, team_id = _ids(payload)
    value = selected_value(action)
    if not user_id or not team_id or not value:
        logger.info("interaction_rejected", reason="missing_fields")
        return InteractionOutcome.REJECTED

    try:
        user = await store.get_user(user_id, team_id, timeout_s=timeout_s)
    except (PersistenceError, ValidationError) as e:
        logger.warning("interaction_lookup_failed", team_id=team_id, user_id=user_id, error=str(e))
        return InteractionOutcome.REJECTED
    if user is None:
        logger.info("interaction_rejected", reason="unknown_user", team_id=team_id, user_id=user_id)
        return InteractionOutcome.REJECTED

    frequency = _parse_frequency(value)
    if frequency is None or not is_known_frequency(frequency, options):
        logger.info("frequency_ignored", team_id=team_id, user_id=user_id, value=value)
        return InteractionOutcome.ACCEPTED

    user.update_frequency_seconds = frequency
    error = await store.try_upsert_user(user, timeout_s=timeout_s)
    if error is None:
        logger.info(
            "frequency_updated",
            team_id=team_id,
            user_id=user_id,
            update_frequency_seconds=frequency,
        )
    return InteractionOutcome.ACCEPTED
