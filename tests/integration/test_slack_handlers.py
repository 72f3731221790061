"""Bolt handler registration tests.

Uses a minimal stand-in for AsyncApp that records the decorated
listeners, so no Slack credentials or network are needed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from randavatar.errors import ConfigurationError
from randavatar.slack.handlers import register_handlers
from randavatar.slack.interactivity import FREQUENCY_ACTION_ID


class RecordingApp:
    def __init__(self) -> None:
        self.events: dict = {}
        self.actions: dict = {}

    def event(self, name):
        def decorator(fn):
            self.events[name] = fn
            return fn
        return decorator

    def action(self, action_id):
        def decorator(fn):
            self.actions[action_id] = fn
            return fn
        return decorator


def _registered(store) -> RecordingApp:
    app = RecordingApp()
    register_handlers(app, store)
    return app


class TestRegistration:
    def test_listeners_registered(self, store):
        app = _registered(store)
        assert set(app.events) == {"app_home_opened"}
        assert set(app.actions) == {FREQUENCY_ACTION_ID}


class TestAppHomeOpened:
    async def test_publishes_home_tab(self, store):
        app = _registered(store)
        publish = AsyncMock(return_value={"ok": True})

        with patch("randavatar.slack.handlers.publish_home_tab", publish):
            await app.events["app_home_opened"](
                event={"type": "app_home_opened", "user": "U001", "tab": "home"},
                context={"team_id": "T001"},
            )

        publish.assert_awaited_once_with(store, "U001", "T001")

    async def test_messages_tab_ignored(self, store):
        app = _registered(store)
        publish = AsyncMock()

        with patch("randavatar.slack.handlers.publish_home_tab", publish):
            await app.events["app_home_opened"](
                event={"user": "U001", "tab": "messages"},
                context={"team_id": "T001"},
            )

        publish.assert_not_awaited()

    async def test_publish_errors_contained(self, store):
        app = _registered(store)
        publish = AsyncMock(side_effect=ConfigurationError("no bot token"))

        with patch("randavatar.slack.handlers.publish_home_tab", publish):
            await app.events["app_home_opened"](
                event={"user": "U001", "tab": "home"},
                context={"team_id": "T001"},
            )

        publish.assert_awaited_once()


class TestFrequencyAction:
    async def test_acks_and_updates(self, store, user_factory):
        await store.upsert_user(user_factory(frequency=3600))
        app = _registered(store)
        ack = AsyncMock()
        body = {
            "type": "block_actions",
            "user": {"id": "U001", "team_id": "T001"},
            "actions": [{
                "action_id": FREQUENCY_ACTION_ID,
                "selected_option": {"value": "604800"},
            }],
        }

        await app.actions[FREQUENCY_ACTION_ID](ack=ack, body=body)

        ack.assert_awaited_once()
        assert (await store.get_user("U001", "T001")).update_frequency_seconds == 604800
