# YouTube Data API access
from .errors import ChannelNotFoundError, NoApiKeyError, QuotaExhaustedError, YouTubeAPIError
from .keypool import KeyPool, parse_api_keys
from .client import YouTubeClient
