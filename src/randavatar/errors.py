"""Error kinds shared across the avatar service.

Per-user failures inside a tick are contained by the updater; envelope
problems in the interaction endpoint become a uniform rejection. Only
configuration errors and the initial store read are allowed to escape.
"""

from __future__ import annotations


class AvatarError(Exception):
    """Base class for every error raised by randavatar."""


class ValidationError(AvatarError):
    """Bad or missing required input (blank identifiers, malformed payloads)."""


class UpstreamError(AvatarError):
    """The image source or the Slack API returned a failure."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class PersistenceError(AvatarError):
    """The user store could not be read or written."""


class ConfigurationError(AvatarError):
    """A required setting is absent."""


class ImageNormalizationError(AvatarError):
    """The source image could not be turned into an avatar PNG."""


class InvalidImage(ImageNormalizationError):
    """The raw bytes could not be decoded as an image."""


class EncodingFailed(ImageNormalizationError):
    """The resized image could not be encoded as PNG."""
