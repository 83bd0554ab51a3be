"""
Tests for the YouTube key pool and API client.
"""
import os
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from creatorops.youtube.client import YouTubeClient, is_quota_exceeded, parse_timestamp
from creatorops.youtube.errors import (
    ChannelNotFoundError,
    NoApiKeyError,
    QuotaExhaustedError,
    YouTubeAPIError,
)
from creatorops.youtube.keypool import (
    STATUS_ACTIVE,
    STATUS_ERROR,
    STATUS_EXHAUSTED,
    STATUS_LIMITED,
    KeyPool,
    parse_api_keys,
)


SEED_ID = "UC" + "a" * 22
QUOTA_BODY = '{"error": {"errors": [{"reason": "quotaExceeded"}], "message": "The request cannot be completed because you have exceeded your quota."}}'


def _response(status=200, json_data=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = json_data if json_data is not None else {}
    resp.text = text
    return resp


def _client(responses, keys=("key-one-1234", "key-two-5678")):
    http = MagicMock()
    http.get.side_effect = list(responses)
    pool = KeyPool(list(keys))
    return YouTubeClient(pool, http_client=http), http, pool


# ── Key pool ──────────────────────────────────────────────────────────


class TestParseApiKeys:
    def test_comma_list(self):
        assert parse_api_keys(" a , b,,c ") == ["a", "b", "c"]

    def test_falls_back_to_single(self):
        assert parse_api_keys("", "solo") == ["solo"]

    def test_nothing_configured(self):
        assert parse_api_keys(None, None) == []


class TestKeyPool:
    def test_empty_pool_raises(self):
        with pytest.raises(NoApiKeyError):
            KeyPool([]).acquire()

    def test_duplicate_keys_collapsed(self):
        assert len(KeyPool(["a", "a", "b"])) == 2

    def test_acquire_prefers_most_remaining(self):
        pool = KeyPool(["a", "b"])
        pool.release("a", success=True, cost=100)
        assert pool.acquire() == "b"

    def test_ties_go_to_least_recently_used(self):
        ticks = iter([10.0, 20.0])
        pool = KeyPool(["a", "b"], clock=lambda: next(ticks))
        pool.release("b", success=True, cost=0)
        pool.release("a", success=True, cost=0)
        assert pool.acquire() == "b"

    def test_limited_below_twenty_percent(self):
        pool = KeyPool(["a"], quota_per_key=10000)
        pool.release("a", success=True, cost=8001)
        assert pool.status_of("a").status == STATUS_LIMITED
        assert pool.acquire() == "a"

    def test_exhausted_key_skipped(self):
        pool = KeyPool(["a", "b"])
        pool.mark_exhausted("b")
        pool.release("a", success=True, cost=500)
        assert pool.status_of("b").status == STATUS_EXHAUSTED
        assert pool.acquire() == "a"

    def test_all_exhausted_raises(self):
        pool = KeyPool(["a"])
        pool.mark_exhausted("a")
        with pytest.raises(QuotaExhaustedError):
            pool.acquire()

    def test_error_after_three_failures(self):
        pool = KeyPool(["a"])
        for _ in range(3):
            pool.release("a", success=False)
        assert pool.status_of("a").status == STATUS_ERROR

    def test_success_resets_error_count(self):
        pool = KeyPool(["a"])
        pool.release("a", success=False)
        pool.release("a", success=False)
        pool.release("a", success=True)
        pool.release("a", success=False)
        assert pool.status_of("a").status == STATUS_ACTIVE

    def test_reset_daily_quota(self):
        pool = KeyPool(["a"])
        pool.mark_exhausted("a")
        pool.reset_daily_quota()
        assert pool.status_of("a").status == STATUS_ACTIVE
        assert pool.status_of("a").quota_used == 0

    def test_stats_hide_full_key(self):
        pool = KeyPool(["abcdefghijklmnop"])
        pool.release("abcdefghijklmnop", cost=100)
        stats = pool.stats()
        assert stats["keys"][0]["key_prefix"] == "abcdefgh..."
        assert stats["total_quota_used"] == 100
        assert stats["healthy_key_count"] == 1

    def test_quota_warning(self):
        pool = KeyPool(["a"], quota_per_key=100)
        assert pool.quota_warning()[0] is False
        pool.release("a", cost=95)
        warn, message = pool.quota_warning()
        assert warn is True
        assert "95%" in message

    def test_no_keys_warning(self):
        assert KeyPool([]).quota_warning() == (True, "No API keys configured")


# ── Client helpers ────────────────────────────────────────────────────


class TestHelpers:
    def test_quota_detection(self):
        assert is_quota_exceeded(QUOTA_BODY)
        assert not is_quota_exceeded("forbidden")

    def test_parse_timestamp(self):
        assert parse_timestamp("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert parse_timestamp(None) is None
        assert parse_timestamp("yesterday") is None


# ── Client ────────────────────────────────────────────────────────────


class TestYouTubeClient:
    def test_search_video_ids_dedupes(self):
        client, http, pool = _client([
            _response(json_data={"items": [
                {"id": {"videoId": "v1"}},
                {"id": {"videoId": "v2"}},
                {"id": {"videoId": "v1"}},
                {"id": {}},
            ]}),
        ])

        ids = client.search_video_ids("homestead", max_results=80)

        assert ids == ["v1", "v2"]
        params = http.get.call_args.kwargs["params"]
        assert params["maxResults"] == 50
        assert params["order"] == "viewCount"
        assert "publishedAfter" not in params
        # search costs 100 units
        assert pool.stats()["total_quota_used"] == 100

    def test_get_videos_parses_records(self):
        client, _, _ = _client([
            _response(json_data={"items": [{
                "snippet": {
                    "channelId": "UC_x",
                    "channelTitle": "X",
                    "title": "Build a barn",
                    "publishedAt": "2025-01-01T00:00:00Z",
                },
                "statistics": {"viewCount": "12345"},
                "contentDetails": {"duration": "PT10M5S"},
            }]}),
        ])

        [video] = client.get_videos(["v1"])

        assert video.channel_id == "UC_x"
        assert video.view_count == 12345
        assert video.duration_sec == 605

    def test_get_channel_stats_hidden_subscribers(self):
        client, _, _ = _client([
            _response(json_data={"items": [
                {"id": "UC_a", "statistics": {"subscriberCount": "500"},
                 "snippet": {"publishedAt": "2020-01-01T00:00:00Z"}},
                {"id": "UC_b", "statistics": {"hiddenSubscriberCount": True}},
            ]}),
        ])

        stats = client.get_channel_stats(["UC_a", "UC_b"])

        assert stats["UC_a"].subscriber_count == 500
        assert stats["UC_b"].subscriber_count is None
        assert stats["UC_b"].published_at is None

    def test_rotates_key_on_quota_error(self):
        client, http, pool = _client([
            _response(403, text=QUOTA_BODY),
            _response(json_data={"items": []}),
        ])

        assert client.search_video_ids("q") == []
        used = [c.kwargs["params"]["key"] for c in http.get.call_args_list]
        assert len(set(used)) == 2
        assert pool.status_of(used[0]).status == STATUS_EXHAUSTED

    def test_all_keys_exhausted(self):
        client, _, _ = _client([
            _response(403, text=QUOTA_BODY),
            _response(403, text=QUOTA_BODY),
        ])
        with pytest.raises(QuotaExhaustedError):
            client.search_video_ids("q")

    def test_other_errors_raise_immediately(self):
        client, http, pool = _client([_response(500, text="backend error")])

        with pytest.raises(YouTubeAPIError) as exc_info:
            client.get_videos(["v1"])

        assert exc_info.value.status_code == 500
        assert http.get.call_count == 1
        key = http.get.call_args.kwargs["params"]["key"]
        assert pool.status_of(key).error_count == 1

    def test_no_keys(self):
        client, http, _ = _client([], keys=())
        with pytest.raises(NoApiKeyError):
            client.search_video_ids("q")
        http.get.assert_not_called()


class TestResolveChannelId:
    def test_raw_id(self):
        client, http, _ = _client([])
        assert client.resolve_channel_id(SEED_ID) == SEED_ID
        http.get.assert_not_called()

    def test_channel_url(self):
        client, _, _ = _client([])
        assert client.resolve_channel_id(f"https://www.youtube.com/channel/{SEED_ID}/videos") == SEED_ID

    def test_handle(self):
        client, http, _ = _client([_response(json_data={"items": [{"id": SEED_ID}]})])
        assert client.resolve_channel_id("@homesteadlife") == SEED_ID
        assert http.get.call_args.kwargs["params"]["forHandle"] == "homesteadlife"

    def test_handle_url_falls_back_to_username(self):
        client, http, _ = _client([
            _response(json_data={"items": []}),
            _response(json_data={"items": [{"id": SEED_ID}]}),
        ])
        assert client.resolve_channel_id("https://youtube.com/@oldname") == SEED_ID
        assert http.get.call_args.kwargs["params"]["forUsername"] == "oldname"

    def test_unresolvable(self):
        client, _, _ = _client([_response(json_data={"items": []})])
        with pytest.raises(ChannelNotFoundError):
            client.resolve_channel_id("nobody")

    def test_empty_input(self):
        client, _, _ = _client([])
        with pytest.raises(ChannelNotFoundError):
            client.resolve_channel_id("   ")


class TestRecentTitles:
    def test_uploads_playlist_chain(self):
        client, _, _ = _client([
            _response(json_data={"items": [
                {"contentDetails": {"relatedPlaylists": {"uploads": "UU_a"}}}
            ]}),
            _response(json_data={"items": [
                {"contentDetails": {"videoId": "v1"}},
                {"contentDetails": {"videoId": "v2"}},
            ]}),
            _response(json_data={"items": [
                {"snippet": {"title": "First"}},
                {"snippet": {"title": ""}},
            ]}),
        ])
        assert client.get_recent_titles("UC_a") == ["First"]

    def test_missing_uploads_playlist(self):
        client, http, _ = _client([_response(json_data={"items": []})])
        assert client.get_recent_titles("UC_a") == []
        assert http.get.call_count == 1


class TestTransportErrors:
    def test_connect_error_wrapped(self):
        client, http, pool = _client([])
        http.get.side_effect = httpx.ConnectError("down")

        with pytest.raises(YouTubeAPIError) as exc_info:
            client.get_channel_stats(["UC_a"])

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        key = http.get.call_args.kwargs["params"]["key"]
        assert pool.status_of(key).error_count == 1

    def test_timeout_wrapped(self):
        client, http, _ = _client([])
        http.get.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(YouTubeAPIError):
            client.search_channels("garden")
        assert http.get.call_count == 1

    def test_non_json_body(self):
        resp = _response()
        resp.json.side_effect = ValueError("Expecting value")
        client, _, pool = _client([resp])

        with pytest.raises(YouTubeAPIError):
            client.search_video_ids("q")

        assert pool.stats()["total_quota_used"] == 0
