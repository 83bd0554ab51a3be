"""
Channel popularity score.

Signals are log-scaled so a single viral upload cannot dominate the
ranking, and upload frequency is capped at 7 videos per window.
"""
import math
from typing import Optional

from .models import ChannelAggregate, ChannelCandidate, DEFAULT_WEIGHTS, WeightVector
from .stats import median

UPLOAD_CAP = 7
CHANNEL_URL_TEMPLATE = "https://www.youtube.com/channel/{channel_id}"


def channel_url(channel_id: str) -> str:
    return CHANNEL_URL_TEMPLATE.format(channel_id=channel_id)


def score_channel(
    views_sum: float,
    views_median: float,
    video_count: int,
    weights: Optional[WeightVector] = None,
) -> float:
    """Weighted log-scale score, multiplied by 10 and rounded to 2 decimals.

    score = w.view_sum * ln(views_sum + 1)
          + w.median_view * ln(views_median + 1)
          + w.upload * min(video_count, 7)

    Args:
        views_sum: Total views over the lookback window.
        views_median: Median views per video over the window.
        video_count: Number of qualifying uploads in the window.
        weights: Coefficients; defaults to 0.45 / 0.30 / 0.25.

    Returns:
        The rounded score.
    """
    w = weights or DEFAULT_WEIGHTS
    score = (
        w.view_sum * math.log(max(0.0, views_sum) + 1)
        + w.median_view * math.log(max(0.0, views_median) + 1)
        + w.upload * min(video_count, UPLOAD_CAP)
    )
    return round(score * 10, 2)


def build_candidates(
    aggregates: dict[str, ChannelAggregate],
    weights: Optional[WeightVector] = None,
) -> list[ChannelCandidate]:
    """Turn per-channel aggregates into scored candidates (unsorted)."""
    candidates = []
    for channel_id, row in aggregates.items():
        views_sum = sum(row.views)
        views_median = median(row.views)
        candidates.append(
            ChannelCandidate(
                channel_id=channel_id,
                channel_title=row.channel_title,
                channel_url=channel_url(channel_id),
                video_count_7d=row.count,
                views_sum_7d=views_sum,
                views_median_7d=views_median,
                score=score_channel(views_sum, views_median, row.count, weights),
                sample_titles=list(row.sample_titles),
            )
        )
    return candidates
