"""App Home tab: the settings panel where users pick their update cadence.

The view is rendered from two JSON templates by plain placeholder
substitution:

  HomeTab.json           {USER_ID}, {OPTION_LIST}, {INITIAL_OPTION}
  FrequencyOptions.json  {OPTION_VALUE}, {OPTION_TEXT}

Options are always listed in ascending order of seconds.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from slack_sdk.web.async_client import AsyncWebClient

from randavatar.config import settings
from randavatar.db.store import UserStore
from randavatar.errors import ConfigurationError, ValidationError
from randavatar.frequency import FREQUENCY_OPTIONS, label_for, sorted_options

logger = structlog.get_logger()

HOME_TAB_FILE = "HomeTab.json"
FREQUENCY_OPTION_FILE = "FrequencyOptions.json"
EMPTY_OPTION = "{}"
OPTION_SEPARATOR = ", "


@dataclass(frozen=True)
class ViewTemplates:
    home: str
    option: str


@lru_cache(maxsize=4)
def load_templates(views_dir: Path | None = None) -> ViewTemplates:
    """Read the home tab and option templates from ``views_dir``."""
    base = Path(views_dir or settings.views_dir)
    return ViewTemplates(
        home=(base / HOME_TAB_FILE).read_text(encoding="utf-8"),
        option=(base / FREQUENCY_OPTION_FILE).read_text(encoding="utf-8"),
    )


def render_frequency_option(
    template: str,
    value: int,
    options: Mapping[int, str] = FREQUENCY_OPTIONS,
) -> str:
    """Render one select option, or "" when ``value`` is not offered."""
    label = label_for(value, options)
    if label is None:
        return ""
    return (
        template
        .replace("{OPTION_VALUE}", str(value))
        .replace("{OPTION_TEXT}", label)
    )


def render_home_tab(
    user_id: str | int,
    current_frequency_seconds: int | None,
    templates: ViewTemplates | None = None,
    options: Mapping[int, str] = FREQUENCY_OPTIONS,
) -> str:
    """Render the full views.publish document for one user."""
    templates = templates or load_templates()

    rendered: dict[int, str] = {}
    for value, _label in sorted_options(options):
        fragment = render_frequency_option(templates.option, value, options)
        if fragment:
            rendered[value] = fragment

    initial = EMPTY_OPTION
    if current_frequency_seconds in rendered:
        initial = rendered[current_frequency_seconds]

    return (
        templates.home
        .replace("{USER_ID}", str(user_id))
        .replace("{OPTION_LIST}", OPTION_SEPARATOR.join(rendered.values()))
        .replace("{INITIAL_OPTION}", initial)
    )


def _strip_empty_initial_option(view: dict[str, Any]) -> None:
    # Slack rejects an empty initial_option, so leave the select unset instead
    for block in view.get("blocks", []):
        accessory = block.get("accessory")
        if isinstance(accessory, dict) and accessory.get("initial_option") == {}:
            del accessory["initial_option"]


async def publish_home_tab(
    store: UserStore,
    user_id: str,
    team_id: str,
    client: AsyncWebClient | None = None,
    templates: ViewTemplates | None = None,
) -> dict[str, Any] | None:
    """Render and publish the home tab for a registered user.

    Returns the Slack response, or None when the user is not registered.
    """
    if not user_id or not user_id.strip():
        raise ValidationError("user_id is required")
    if not team_id or not team_id.strip():
        raise ValidationError("team_id is required")

    user = await store.get_user(user_id, team_id)
    if user is None:
        logger.info("home_tab_unknown_user", team_id=team_id, user_id=user_id)
        return None

    if client is None:
        bot = await store.get_workspace_bot(team_id)
        token = bot.access_token if bot else settings.slack_bot_token
        if not token:
            raise ConfigurationError(f"No bot credential for team '{team_id}'")
        client = AsyncWebClient(token=token, timeout=int(settings.slack_api_timeout_s))

    document = render_home_tab(user_id, user.update_frequency_seconds, templates)
    try:
        payload = json.loads(document)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Home tab template rendered invalid JSON: {e}") from e

    view = payload["view"]
    _strip_empty_initial_option(view)
    resp = await client.views_publish(user_id=payload["user_id"], view=view)
    logger.info("home_tab_published", team_id=team_id, user_id=user_id)
    return dict(resp.data) if isinstance(resp.data, dict) else None
