"""
YouTube Data API v3 client.

Every request goes through the injected KeyPool: a 403 quota error
rotates to the next key, any other error is raised.
"""
import logging
import re
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from ..discovery.models import ChannelStats, VideoRecord
from ..discovery.scoring import channel_url
from ..discovery.stats import parse_iso_duration_seconds
from ..similar.models import CandidateChannel
from .errors import ChannelNotFoundError, QuotaExhaustedError, YouTubeAPIError
from .keypool import KeyPool

logger = logging.getLogger(__name__)

YT_API = "https://www.googleapis.com/youtube/v3"
BATCH_SIZE = 50  # YouTube API allows up to 50 IDs per request
RECENT_TITLES_LIMIT = 12

# Quota units per endpoint; anything not listed costs 1
QUOTA_COSTS = {"/search": 100}

_CHANNEL_ID_RE = re.compile(r"^UC[\w-]{20,}$")


def is_quota_exceeded(message: str) -> bool:
    """True if an API error body reports an exhausted quota."""
    m = (message or "").lower()
    return "quota" in m and ("exceeded" in m or "quotaexceeded" in m)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp from the API; None if missing or invalid."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class YouTubeClient:
    """Thin wrapper over the YouTube Data API endpoints used by creatorops."""

    def __init__(
        self,
        key_pool: KeyPool,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30,
    ):
        self.key_pool = key_pool
        self.timeout = timeout
        self._client = http_client or httpx.Client()
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _get(self, path: str, params: dict[str, Any]) -> dict:
        """GET an API path, rotating keys on quota errors."""
        cost = QUOTA_COSTS.get(path, 1)
        query = {k: v for k, v in params.items() if v is not None and v != ""}
        tried: list[str] = []
        last_error = ""

        while True:
            try:
                key = self.key_pool.acquire(exclude=tried)
            except QuotaExhaustedError:
                raise QuotaExhaustedError(
                    last_error or "YouTube API quota exceeded on all keys", 403
                )

            try:
                resp = self._client.get(
                    f"{YT_API}{path}",
                    params={**query, "key": key},
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
                if resp.status_code < 400:
                    data = resp.json()
                    self.key_pool.release(key, success=True, cost=cost)
                    return data
            except (httpx.HTTPError, ValueError) as e:
                self.key_pool.release(key, success=False)
                logger.error("YouTube API request failed on %s: %s", path, e)
                raise YouTubeAPIError(f"YouTube API request failed: {e}") from e

            text = resp.text
            last_error = f"YouTube API error {resp.status_code}: {text}"

            if resp.status_code == 403 and is_quota_exceeded(text):
                self.key_pool.mark_exhausted(key)
                tried.append(key)
                continue

            self.key_pool.release(key, success=False)
            logger.error("YouTube API error on %s: %s", path, resp.status_code)
            raise YouTubeAPIError(last_error, resp.status_code)

    def search_video_ids(
        self,
        query: str,
        published_after: Optional[datetime] = None,
        max_results: int = 50,
        region_code: str = "US",
        language: str = "en",
        order: str = "viewCount",
    ) -> list[str]:
        """Search videos and return unique video ids in result order."""
        data = self._get(
            "/search",
            {
                "part": "snippet",
                "type": "video",
                "order": order,
                "q": query,
                "maxResults": min(max_results, BATCH_SIZE),
                "publishedAfter": (
                    published_after.strftime("%Y-%m-%dT%H:%M:%SZ")
                    if published_after else None
                ),
                "regionCode": region_code,
                "relevanceLanguage": language,
            },
        )

        video_ids: list[str] = []
        for item in data.get("items", []):
            video_id = (item.get("id") or {}).get("videoId")
            if video_id and video_id not in video_ids:
                video_ids.append(video_id)
        return video_ids

    def get_videos(self, video_ids: list[str]) -> list[VideoRecord]:
        """Fetch snippet, statistics and duration for the given videos."""
        records = []
        for start in range(0, len(video_ids), BATCH_SIZE):
            batch = video_ids[start:start + BATCH_SIZE]
            data = self._get(
                "/videos",
                {
                    "part": "snippet,statistics,contentDetails",
                    "id": ",".join(batch),
                    "maxResults": BATCH_SIZE,
                },
            )
            for item in data.get("items", []):
                snippet = item.get("snippet", {})
                stats = item.get("statistics", {})
                content = item.get("contentDetails", {})
                records.append(
                    VideoRecord(
                        channel_id=snippet.get("channelId", ""),
                        channel_title=snippet.get("channelTitle", "Unknown"),
                        title=snippet.get("title", ""),
                        view_count=int(stats.get("viewCount", 0) or 0),
                        duration_sec=parse_iso_duration_seconds(content.get("duration")),
                        published_at=parse_timestamp(snippet.get("publishedAt")),
                    )
                )
        return records

    def get_channel_stats(self, channel_ids: list[str]) -> dict[str, ChannelStats]:
        """Fetch subscriber counts and creation dates, keyed by channel id.

        Hidden subscriber counts are reported as None.
        """
        result: dict[str, ChannelStats] = {}
        for start in range(0, len(channel_ids), BATCH_SIZE):
            batch = channel_ids[start:start + BATCH_SIZE]
            data = self._get(
                "/channels",
                {"part": "snippet,statistics", "id": ",".join(batch), "maxResults": BATCH_SIZE},
            )
            for item in data.get("items", []):
                stats = item.get("statistics", {})
                subscribers = None
                if not stats.get("hiddenSubscriberCount") and "subscriberCount" in stats:
                    subscribers = int(stats["subscriberCount"])
                result[item["id"]] = ChannelStats(
                    channel_id=item["id"],
                    subscriber_count=subscribers,
                    published_at=parse_timestamp(item.get("snippet", {}).get("publishedAt")),
                )
        return result

    def search_channels(self, query: str, max_results: int = 20) -> list[CandidateChannel]:
        """Search channels by keyword, ordered by relevance."""
        data = self._get(
            "/search",
            {
                "part": "snippet",
                "type": "channel",
                "q": query,
                "maxResults": max_results,
                "order": "relevance",
            },
        )

        channels = []
        for item in data.get("items", []):
            snippet = item.get("snippet") or {}
            channel_id = snippet.get("channelId")
            if not channel_id:
                continue
            channels.append(
                CandidateChannel(
                    channel_id=channel_id,
                    channel_title=snippet.get("channelTitle"),
                    channel_url=channel_url(channel_id),
                )
            )
        return channels

    def resolve_channel_id(self, raw_input: str) -> str:
        """Resolve a channel id from an id, @handle, username or channel URL.

        Raises:
            ChannelNotFoundError: Nothing matched the input.
        """
        raw = (raw_input or "").strip()
        if not raw:
            raise ChannelNotFoundError("channel input is required")

        if _CHANNEL_ID_RE.match(raw):
            return raw

        handle_or_query = raw
        if raw.startswith(("http://", "https://")):
            parts = [p for p in urlparse(raw).path.split("/") if p]
            if len(parts) >= 2 and parts[0] == "channel":
                return parts[1]
            if parts and parts[0].startswith("@"):
                handle_or_query = parts[0]
            else:
                handle_or_query = " ".join(parts)

        if handle_or_query.startswith("@"):
            data = self._get(
                "/channels",
                {"part": "id", "forHandle": handle_or_query[1:], "maxResults": 1},
            )
            items = data.get("items") or []
            if items and items[0].get("id"):
                return items[0]["id"]

        # Legacy username lookup
        username = handle_or_query[1:] if handle_or_query.startswith("@") else handle_or_query
        data = self._get(
            "/channels",
            {"part": "id", "forUsername": username, "maxResults": 1},
        )
        items = data.get("items") or []
        if not items or not items[0].get("id"):
            raise ChannelNotFoundError(
                f"Unable to resolve channel id from '{raw}' (use a UC... id or @handle)"
            )
        return items[0]["id"]

    def get_recent_titles(self, channel_id: str, max_results: int = RECENT_TITLES_LIMIT) -> list[str]:
        """Titles of the channel's most recent uploads."""
        channel = self._get(
            "/channels",
            {"part": "contentDetails", "id": channel_id, "maxResults": 1},
        )
        items = channel.get("items") or []
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items else None
        )
        if not uploads:
            return []

        playlist = self._get(
            "/playlistItems",
            {"part": "contentDetails", "playlistId": uploads, "maxResults": max_results},
        )
        ids = [
            (item.get("contentDetails") or {}).get("videoId")
            for item in playlist.get("items", [])
        ]
        ids = [i for i in ids if i]
        if not ids:
            return []

        videos = self._get("/videos", {"part": "snippet", "id": ",".join(ids)})
        titles = [(v.get("snippet") or {}).get("title", "") for v in videos.get("items", [])]
        return [t for t in titles if t]
