"""
Discovery pipeline orchestrator.

Searches recent videos for a query, aggregates them by channel, scores and
ranks the channels, optionally filtering by channel-level bounds.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..db.database import Database
from ..youtube.client import YouTubeClient
from ..youtube.errors import YouTubeAPIError
from .aggregator import aggregate_by_channel
from .filters import enrich_with_stats, filter_and_rank
from .models import DiscoveryBounds, DiscoveryResult, WeightVector
from .scoring import build_candidates

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
DEFAULT_MIN_DURATION_SEC = 240
MAX_SEARCH_RESULTS = 50


class DiscoveryPipeline:
    """Finds fast-growing channels for a search query."""

    def __init__(self, client: YouTubeClient, db: Optional[Database] = None):
        self.client = client
        self.db = db

    def run(
        self,
        query: str,
        region_code: str = "US",
        language: str = "en",
        days: int = DEFAULT_WINDOW_DAYS,
        max_results: int = MAX_SEARCH_RESULTS,
        min_duration_sec: int = DEFAULT_MIN_DURATION_SEC,
        weights: Optional[WeightVector] = None,
        bounds: Optional[DiscoveryBounds] = None,
        niche: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DiscoveryResult:
        """Run one discovery pass.

        Steps:
            1. Search videos published in the last ``days`` by view count
            2. Fetch details and drop videos shorter than ``min_duration_sec``
            3. Aggregate by channel and score
            4. Enrich with channel stats (only when bounds are set)
            5. Filter, rank and keep the top 20
            6. Save the run to DB (if a database is attached)

        Args:
            query: Search keywords.
            region_code: YouTube region code.
            language: Relevance language.
            days: Lookback window in days.
            max_results: Max videos to search (capped at 50).
            min_duration_sec: Minimum video duration to count.
            weights: Score weights (defaults used when None).
            bounds: Optional channel-level filter bounds.
            niche: Niche preset slug, recorded with the saved run.
            now: Reference time for the window and channel ages.

        Returns:
            DiscoveryResult with ranked channels and video counts.
        """
        now = now or datetime.now(timezone.utc)
        published_after = now - timedelta(days=days)

        # 1. Search
        logger.info("Step 1: Searching videos for '%s' (last %d days)", query, days)
        video_ids = self.client.search_video_ids(
            query,
            published_after=published_after,
            max_results=min(max_results, MAX_SEARCH_RESULTS),
            region_code=region_code,
            language=language,
        )
        if not video_ids:
            logger.warning("No videos found for '%s'", query)
            return self._finish(query, niche, DiscoveryResult([], 0, 0))

        # 2. Details + duration filter
        videos = self.client.get_videos(video_ids)
        long_enough = [v for v in videos if v.duration_sec >= min_duration_sec]
        logger.info(
            "Step 2: %d videos fetched, %d at least %ds long",
            len(videos), len(long_enough), min_duration_sec,
        )

        # 3. Aggregate + score
        candidates = build_candidates(aggregate_by_channel(long_enough), weights)
        logger.info("Step 3: Scored %d channels", len(candidates))

        # 4. Enrich
        if bounds is not None and not bounds.is_empty() and candidates:
            try:
                stats = self.client.get_channel_stats([c.channel_id for c in candidates])
            except YouTubeAPIError as e:
                logger.warning("Channel stats unavailable, bounded filters will exclude all: %s", e)
                stats = {}
            for candidate in candidates:
                enrich_with_stats(candidate, stats.get(candidate.channel_id), now=now)

        # 5. Filter + rank
        ranked = filter_and_rank(candidates, bounds)
        logger.info("Step 5: %d channels after filters", len(ranked))

        result = DiscoveryResult(
            channels=ranked,
            fetched_videos=len(videos),
            filtered_videos=len(long_enough),
        )
        return self._finish(query, niche, result)

    def _finish(self, query: str, niche: Optional[str], result: DiscoveryResult) -> DiscoveryResult:
        # 6. Save
        if self.db is not None:
            self.db.ensure_discovery_tables()
            run_id = self.db.save_discovery_run(query, niche, result)
            logger.info("Saved discovery run #%d", run_id)
        return result
