"""
Errors raised by the YouTube Data API layer.
"""


class YouTubeAPIError(Exception):
    """A YouTube Data API request failed."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class NoApiKeyError(YouTubeAPIError):
    """No API key is configured."""


class QuotaExhaustedError(YouTubeAPIError):
    """Every key in the pool has run out of quota."""


class ChannelNotFoundError(YouTubeAPIError):
    """A channel reference could not be resolved to a channel id."""
