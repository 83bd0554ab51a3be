"""
Data models for the channel discovery pipeline.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class VideoRecord:
    """A YouTube video returned by search + videos.list, one per discovery run."""
    channel_id: str
    channel_title: str
    title: str
    view_count: int
    duration_sec: int
    published_at: Optional[datetime]


@dataclass
class WeightVector:
    """Linear coefficients for the channel score. Need not sum to 1."""
    view_sum: float = 0.45
    median_view: float = 0.30
    upload: float = 0.25


DEFAULT_WEIGHTS = WeightVector()


@dataclass
class DiscoveryBounds:
    """Optional filter bounds. ``None`` means the bound is not applied.

    When a bound is set, channels whose corresponding value is unknown
    are excluded. When it is unset, unknown values pass through.
    """
    min_subscribers: Optional[int] = None
    max_subscribers: Optional[int] = None
    max_channel_age_days: Optional[int] = None
    min_view_sub_ratio: Optional[float] = None
    max_view_sub_ratio: Optional[float] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.min_subscribers,
                self.max_subscribers,
                self.max_channel_age_days,
                self.min_view_sub_ratio,
                self.max_view_sub_ratio,
            )
        )


@dataclass
class ChannelAggregate:
    """Per-channel running totals collected by the aggregator."""
    channel_id: str
    channel_title: str
    views: list[int] = field(default_factory=list)
    count: int = 0
    sample_titles: list[str] = field(default_factory=list)


@dataclass
class ChannelCandidate:
    """A scored channel from one discovery run."""
    channel_id: str
    channel_title: str
    channel_url: str
    video_count_7d: int
    views_sum_7d: int
    views_median_7d: float
    score: float
    sample_titles: list[str]
    subscriber_count: Optional[int] = None
    channel_age_days: Optional[int] = None
    view_sub_ratio: Optional[float] = None


@dataclass
class ChannelStats:
    """Channel-level statistics used to enrich a candidate."""
    channel_id: str
    subscriber_count: Optional[int]
    published_at: Optional[datetime]


@dataclass
class DiscoveryResult:
    """Outcome of a discovery run."""
    channels: list[ChannelCandidate]
    fetched_videos: int
    filtered_videos: int
