# Episode performance tracking: keyword scores, weekly reports, next actions
from .models import CompetitorTrend, EpisodeMetrics, KeywordScore, WeeklyReport
from .reports import (
    competitor_trends,
    keyword_scores,
    next_actions,
    tracker_summary,
    weekly_report,
)
