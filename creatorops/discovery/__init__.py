"""
Channel discovery: duration/median helpers, per-channel aggregation,
log-scale scoring and bounded ranking.

DiscoveryPipeline lives in ``creatorops.discovery.pipeline``.
"""
from .aggregator import aggregate_by_channel
from .filters import enrich_with_stats, filter_and_rank, passes_bounds
from .models import (
    ChannelCandidate,
    ChannelStats,
    DiscoveryBounds,
    DiscoveryResult,
    VideoRecord,
    WeightVector,
)
from .scoring import build_candidates, score_channel
from .stats import median, parse_iso_duration_seconds

__all__ = [
    "aggregate_by_channel",
    "enrich_with_stats",
    "filter_and_rank",
    "passes_bounds",
    "ChannelCandidate",
    "ChannelStats",
    "DiscoveryBounds",
    "DiscoveryResult",
    "VideoRecord",
    "WeightVector",
    "build_candidates",
    "score_channel",
    "median",
    "parse_iso_duration_seconds",
]
