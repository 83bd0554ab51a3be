"""
Bound filters and ranking for discovered channels.
"""
from datetime import datetime, timezone
from typing import Optional

from .models import ChannelCandidate, ChannelStats, DiscoveryBounds

MAX_RANKED_CHANNELS = 20


def _at_least(value, bound) -> bool:
    if bound is None:
        return True
    return value is not None and value >= bound


def _at_most(value, bound) -> bool:
    if bound is None:
        return True
    return value is not None and value <= bound


def passes_bounds(candidate: ChannelCandidate, bounds: Optional[DiscoveryBounds]) -> bool:
    """Check one candidate against every set bound.

    An unset bound is a no-op. A set bound rejects candidates whose value
    for it is unknown (``None``).
    """
    if bounds is None:
        return True
    return (
        _at_least(candidate.subscriber_count, bounds.min_subscribers)
        and _at_most(candidate.subscriber_count, bounds.max_subscribers)
        and _at_most(candidate.channel_age_days, bounds.max_channel_age_days)
        and _at_least(candidate.view_sub_ratio, bounds.min_view_sub_ratio)
        and _at_most(candidate.view_sub_ratio, bounds.max_view_sub_ratio)
    )


def filter_and_rank(
    candidates: list[ChannelCandidate],
    bounds: Optional[DiscoveryBounds] = None,
    limit: int = MAX_RANKED_CHANNELS,
) -> list[ChannelCandidate]:
    """Apply bounds, sort by score descending and keep the top ``limit``.

    Ties keep their input order.
    """
    kept = [c for c in candidates if passes_bounds(c, bounds)]
    kept.sort(key=lambda c: c.score, reverse=True)
    return kept[:limit]


def enrich_with_stats(
    candidate: ChannelCandidate,
    stats: Optional[ChannelStats],
    now: Optional[datetime] = None,
) -> ChannelCandidate:
    """Fill subscriber count, channel age and view/sub ratio in place.

    Hidden or zero subscriber counts leave the ratio unknown.
    """
    if stats is None:
        return candidate

    candidate.subscriber_count = stats.subscriber_count

    if stats.published_at is not None:
        now = now or datetime.now(timezone.utc)
        published = stats.published_at
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        candidate.channel_age_days = max(0, (now - published).days)

    if stats.subscriber_count:
        candidate.view_sub_ratio = round(
            candidate.views_sum_7d / stats.subscriber_count, 4
        )

    return candidate
