"""Outbound collaborators: the image provider and Slack's profile API."""

from randavatar.integrations.image_source import ImageSource
from randavatar.integrations.slack_profile import (
    USER_TOKEN_PREFIX,
    SlackProfileClient,
    is_user_token,
)

__all__ = ["USER_TOKEN_PREFIX", "ImageSource", "SlackProfileClient", "is_user_token"]
