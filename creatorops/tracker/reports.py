"""
Keyword scoring, weekly reports and next actions over episode metrics.

Keyword score formula:
    0.45 * avg_ctr + 0.35 * avg_retention + 0.2 * ln(avg_views + 1)

Episodes without a target keyword are grouped under "unknown", which is
never ranked.
"""
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .models import CompetitorTrend, EpisodeMetrics, KeywordScore, WeeklyReport

CTR_WEIGHT = 0.45
RETENTION_WEIGHT = 0.35
VIEWS_WEIGHT = 0.2

UNKNOWN_KEYWORD = "unknown"

REPORT_WINDOW_DAYS = 7
REPORT_EPISODE_LIMIT = 200
ACTIONS_EPISODE_LIMIT = 120
SUMMARY_EPISODE_LIMIT = 100
TREND_WINDOW_DAYS = 14
TREND_LIMIT = 10

WINNER_COUNT = 3
BACKUP_COUNT = 4
EXPERIMENTS = ["new-angle", "new-thumbnail-style", "short-vs-long-title"]

# Own-channel focus thresholds (percent)
LOW_CTR = 5
LOW_RETENTION = 55


def average(values: Iterable[float]) -> float:
    """Arithmetic mean; 0 for no values."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def _round_whole(x: float) -> int:
    return int(math.floor(x + 0.5))


def newest_first(episodes: Iterable[EpisodeMetrics], limit: Optional[int] = None) -> list[EpisodeMetrics]:
    ordered = sorted(episodes, key=lambda e: e.created_at, reverse=True)
    return ordered if limit is None else ordered[:limit]


def keyword_scores(episodes: Iterable[EpisodeMetrics]) -> list[KeywordScore]:
    """Score each target keyword, best first.

    Averages only use the metrics that are known; ``count`` includes every
    episode with the keyword. Ties keep first-seen order.
    """
    groups: dict[str, dict[str, list]] = defaultdict(lambda: {"ctr": [], "retention": [], "views": [], "all": []})
    for episode in episodes:
        keyword = (episode.target_keyword or UNKNOWN_KEYWORD).lower()
        row = groups[keyword]
        row["all"].append(episode)
        if episode.ctr is not None:
            row["ctr"].append(episode.ctr)
        if episode.retention_30s is not None:
            row["retention"].append(episode.retention_30s)
        if episode.views_7d is not None:
            row["views"].append(episode.views_7d)

    scores = []
    for keyword, row in groups.items():
        if keyword == UNKNOWN_KEYWORD:
            continue
        ctr = average(row["ctr"])
        retention = average(row["retention"])
        views = average(row["views"])
        scores.append(KeywordScore(
            keyword=keyword,
            count=len(row["all"]),
            avg_ctr=round(ctr, 2),
            avg_retention=round(retention, 2),
            avg_views=_round_whole(views),
            score=round(
                CTR_WEIGHT * ctr + RETENTION_WEIGHT * retention + VIEWS_WEIGHT * math.log(views + 1),
                2,
            ),
        ))

    scores.sort(key=lambda s: s.score, reverse=True)
    return scores


def winners_and_losers(scores: list[KeywordScore]) -> tuple[list[KeywordScore], list[KeywordScore]]:
    """Top 3 and bottom 3 keywords. With fewer than 6 keywords they overlap."""
    return scores[:WINNER_COUNT], scores[-WINNER_COUNT:]


def weekly_report(
    episodes: Iterable[EpisodeMetrics],
    now: Optional[datetime] = None,
    days: int = REPORT_WINDOW_DAYS,
) -> WeeklyReport:
    """Summarise the episodes created in the last ``days`` days.

    Args:
        episodes: Episode metrics, in any order.
        now: End of the reporting period (defaults to now).
        days: Length of the reporting period.

    Returns:
        WeeklyReport with averages, winners/losers and next week's plan.
    """
    now = now or datetime.now()
    since = now - timedelta(days=days)

    recent = newest_first((e for e in episodes if e.created_at >= since), REPORT_EPISODE_LIMIT)
    measured = [e for e in recent if e.is_measured()]

    scores = keyword_scores(measured)
    winners, losers = winners_and_losers(scores)

    recommendations = [
        f"加码关键词：{' / '.join(s.keyword for s in winners)}" if winners
        else "本周有效样本不足，先补齐指标回填",
        f"降权关键词：{' / '.join(s.keyword for s in losers)}" if losers
        else "暂无明显降权关键词",
        "下周执行结构：必做3条 + 备选4条 + 实验3条",
    ]

    return WeeklyReport(
        period_from=since,
        period_to=now,
        created_episodes=len(recent),
        measured_episodes=len(measured),
        # zero means "not filled in" for the headline averages
        avg_ctr=round(average(e.ctr for e in measured if e.ctr), 2),
        avg_retention_30s=round(average(e.retention_30s for e in measured if e.retention_30s), 2),
        winners=winners,
        losers=losers,
        must_do=[s.keyword for s in winners],
        backup=[s.keyword for s in scores[WINNER_COUNT:WINNER_COUNT + BACKUP_COUNT]],
        experiments=list(EXPERIMENTS),
        recommendations=recommendations,
    )


def next_actions(episodes: Iterable[EpisodeMetrics]) -> tuple[list[KeywordScore], list[str]]:
    """Keyword scores of the latest episodes and the keep/pause actions they imply."""
    scores = keyword_scores(newest_first(episodes, ACTIONS_EPISODE_LIMIT))
    keep, pause = winners_and_losers(scores)

    actions = [
        f"下周加码关键词：{' / '.join(s.keyword for s in keep) or '暂无'}",
        f"下周降权关键词：{' / '.join(s.keyword for s in pause) or '暂无'}",
        "发布节奏建议：必做3条 + 备选4条 + 实验3条",
        "封面策略：高分关键词优先使用数字+结果式文案",
    ]
    return scores, actions


def competitor_trends(discovered: Iterable[dict]) -> list[CompetitorTrend]:
    """Average channel score per discovery query, best 10 first.

    Args:
        discovered: Rows with ``query`` and ``score`` keys, one per
            channel found by a recent discovery run.
    """
    totals: dict[str, list[float]] = defaultdict(list)
    for row in discovered:
        keyword = (row.get("query") or UNKNOWN_KEYWORD).lower()
        totals[keyword].append(row.get("score") or 0.0)

    trends = [
        CompetitorTrend(keyword=k, avg_score=round(sum(v) / max(len(v), 1), 2), sample_count=len(v))
        for k, v in totals.items()
    ]
    trends.sort(key=lambda t: t.avg_score, reverse=True)
    return trends[:TREND_LIMIT]


def own_focus(avg_ctr: float, avg_retention: float) -> str:
    """What to improve first on the own channel."""
    if avg_ctr < LOW_CTR:
        return "优先优化标题与封面（CTR偏低）"
    if avg_retention < LOW_RETENTION:
        return "优先优化前30秒结构（留存偏低）"
    return "维持当前结构，扩大高表现主题产能"


def tracker_summary(episodes: Iterable[EpisodeMetrics], discovered: Iterable[dict]) -> dict:
    """Own-channel averages, external keyword trends and a recommendation.

    Args:
        episodes: Episode metrics, in any order; the latest 100 are used.
        discovered: Discovery rows (``query``, ``score``) from the last 14 days.
    """
    own = newest_first(episodes, SUMMARY_EPISODE_LIMIT)
    ctrs = [e.ctr for e in own if e.ctr is not None]
    retention = [e.retention_30s for e in own if e.retention_30s is not None]
    views = [e.views_7d for e in own if e.views_7d is not None]

    trends = competitor_trends(discovered)

    return {
        "own_summary": {
            "avg_ctr": round(average(ctrs), 2),
            "avg_retention_30s": round(average(retention), 2),
            "avg_views_7d": _round_whole(average(views)),
            "measured_count": len(ctrs),
        },
        "competitor_trends": trends,
        "recommendation": {
            "own_focus": own_focus(average(ctrs), average(retention)),
            "market_signal": (
                f"近期外部热度最高关键词：{trends[0].keyword}" if trends else "暂无外部趋势数据"
            ),
        },
    }
