"""Slack integration: home tab rendering, interactivity, Bolt handlers."""

from randavatar.slack.home_tab import (
    ViewTemplates,
    load_templates,
    publish_home_tab,
    render_frequency_option,
    render_home_tab,
)
from randavatar.slack.interactivity import (
    FREQUENCY_ACTION_ID,
    InteractionOutcome,
    apply_interaction,
    handle_interaction,
)

__all__ = [
    "FREQUENCY_ACTION_ID",
    "InteractionOutcome",
    "ViewTemplates",
    "apply_interaction",
    "handle_interaction",
    "load_templates",
    "publish_home_tab",
    "render_frequency_option",
    "render_home_tab",
]
