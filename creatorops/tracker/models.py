"""
Data models for episode performance tracking.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class EpisodeMetrics:
    """One published episode and the metrics recorded for it.

    Any metric may be unknown (None) until it has been filled in.
    ``ctr`` and ``retention_30s`` are percentages (e.g. 6.5 for 6.5%).
    """
    topic: str
    target_keyword: Optional[str]
    created_at: datetime
    ctr: Optional[float] = None
    retention_30s: Optional[float] = None
    views_7d: Optional[int] = None
    win_or_fail: Optional[str] = None
    planned_date: Optional[str] = None
    episode_id: Optional[int] = None

    def is_measured(self) -> bool:
        return any(v is not None for v in (self.ctr, self.retention_30s, self.views_7d))


@dataclass
class KeywordScore:
    """Averaged performance of every episode targeting one keyword."""
    keyword: str
    count: int
    avg_ctr: float
    avg_retention: float
    avg_views: int
    score: float


@dataclass
class CompetitorTrend:
    """Average discovery score of the channels found for one query."""
    keyword: str
    avg_score: float
    sample_count: int


@dataclass
class WeeklyReport:
    """Keyword winners and losers for the past week, plus next week's plan."""
    period_from: datetime
    period_to: datetime
    created_episodes: int
    measured_episodes: int
    avg_ctr: float
    avg_retention_30s: float
    winners: list[KeywordScore] = field(default_factory=list)
    losers: list[KeywordScore] = field(default_factory=list)
    must_do: list[str] = field(default_factory=list)
    backup: list[str] = field(default_factory=list)
    experiments: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
