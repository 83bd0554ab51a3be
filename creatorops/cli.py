#!/usr/bin/env python3
"""
CLI for creator content operations

Usage:
    python -m creatorops.cli discover --query "homestead"
    python -m creatorops.cli discover --niche fitness --max-subs 100000
    python -m creatorops.cli discover-history
    python -m creatorops.cli analyze --run-id 3
    python -m creatorops.cli similar @somechannel
    python -m creatorops.cli similar-history
    python -m creatorops.cli script-generate --seeds "@a,@b" --direction "10种省钱方法"
    python -m creatorops.cli script-check script.json --direction "10种"
    python -m creatorops.cli metrics-add --topic "番茄实测" --keyword tomato --ctr 6.2 --views 12000
    python -m creatorops.cli report-weekly
    python -m creatorops.cli tracker-summary
    python -m creatorops.cli niches
    python -m creatorops.cli key-stats
"""
import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .config import Settings, get_niche_preset, list_niche_presets
from .db.database import Database
from .discovery.models import DiscoveryBounds
from .discovery.pipeline import DiscoveryPipeline
from .planner.contract import GenerationConstraints, check_contract
from .planner.generator import ScriptGenerator
from .planner.models import MalformedScriptError, parse_script_payload
from .planner.quality import evaluate_script_quality
from .planner.quality_enhanced import evaluate_script_quality_enhanced
from .similar.matcher import SimilarChannelFinder
from .similar.models import CandidateChannel
from .similar.terms import analyze_titles
from .tracker.models import EpisodeMetrics
from .tracker.reports import TREND_WINDOW_DAYS, next_actions, tracker_summary, weekly_report
from .youtube.client import YouTubeClient
from .youtube.errors import YouTubeAPIError
from .youtube.keypool import KeyPool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(settings: Optional[Settings] = None):
    """Parse command line arguments."""
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Creator content operations CLI"
    )
    parser.add_argument(
        "--db-path",
        default=settings.db_path,
        help=f"Path to SQLite database (default: {settings.db_path})"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Channel discovery

    discover_parser = subparsers.add_parser(
        "discover",
        help="Find fast-growing channels for a search query"
    )
    discover_parser.add_argument("--query", help="Search query (default: niche primary query)")
    discover_parser.add_argument("--niche", help="Niche preset slug (see `niches`)")
    discover_parser.add_argument("--region", default="US", help="Region code (default: US)")
    discover_parser.add_argument("--language", default="en", help="Relevance language (default: en)")
    discover_parser.add_argument("--days", type=int, help="Lookback window in days (default: 7)")
    discover_parser.add_argument("--max-results", type=int, help="Max videos to search (default: 50)")
    discover_parser.add_argument("--min-duration", type=int, help="Min video duration in seconds (default: 240)")
    discover_parser.add_argument("--min-subs", type=int, help="Minimum subscriber count")
    discover_parser.add_argument("--max-subs", type=int, help="Maximum subscriber count")
    discover_parser.add_argument("--max-age-days", type=int, help="Maximum channel age in days")
    discover_parser.add_argument("--min-ratio", type=float, help="Minimum 7-day views / subscribers")
    discover_parser.add_argument("--max-ratio", type=float, help="Maximum 7-day views / subscribers")

    discover_history_parser = subparsers.add_parser(
        "discover-history",
        help="Show past discovery runs"
    )
    discover_history_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of recent runs to show (default: 5)"
    )

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze sample titles of a discovery run"
    )
    analyze_parser.add_argument(
        "--run-id",
        type=int,
        help="Discovery run to analyze (default: latest)"
    )

    # Similar channels

    similar_parser = subparsers.add_parser(
        "similar",
        help="Find channels similar to a seed channel"
    )
    similar_parser.add_argument(
        "seed",
        help="Seed channel: UC… id, @handle, username or channel URL"
    )
    similar_parser.add_argument(
        "--candidates",
        nargs="*",
        default=[],
        help="Extra candidate channel ids to compare"
    )

    similar_history_parser = subparsers.add_parser(
        "similar-history",
        help="Show past similar-channel runs"
    )
    similar_history_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of recent runs to show (default: 5)"
    )

    # Scripts

    generate_parser = subparsers.add_parser(
        "script-generate",
        help="Generate a shootable script styled after reference channels"
    )
    generate_parser.add_argument(
        "--seeds",
        required=True,
        help="Up to 5 reference channels, comma separated"
    )
    generate_parser.add_argument("--direction", default="", help="Free-text direction, e.g. '10种省钱方法'")
    generate_parser.add_argument("--topic-lock", default="", help="Term the script must stay on")
    generate_parser.add_argument("--banned", default="", help="Comma separated banned words")
    generate_parser.add_argument("--language", choices=["zh", "en"], default="zh")
    generate_parser.add_argument(
        "--llm-model",
        default=settings.llm_model,
        help=f"Ollama model (default: {settings.llm_model})"
    )
    generate_parser.add_argument(
        "--max-attempts",
        type=int,
        default=2,
        help="Model attempts before falling back to the template (default: 2)"
    )
    generate_parser.add_argument("--enhanced", action="store_true", help="Use six-dimension scoring")

    check_parser = subparsers.add_parser(
        "script-check",
        help="Score a script JSON file and check it against a contract"
    )
    check_parser.add_argument("path", help="Path to script JSON")
    check_parser.add_argument("--direction", default="", help="Direction text the script was generated for")
    check_parser.add_argument("--topic-lock", default="", help="Term the script must stay on")
    check_parser.add_argument("--banned", default="", help="Comma separated banned words")
    check_parser.add_argument("--enhanced", action="store_true", help="Use six-dimension scoring")

    # Performance tracking

    metrics_parser = subparsers.add_parser(
        "metrics-add",
        help="Record metrics for a published episode"
    )
    metrics_parser.add_argument("--topic", required=True, help="Episode topic")
    metrics_parser.add_argument("--keyword", help="Target keyword")
    metrics_parser.add_argument("--planned-date", help="Planned publish date (YYYY-MM-DD)")
    metrics_parser.add_argument("--ctr", type=float, help="Click-through rate in percent")
    metrics_parser.add_argument("--retention", type=float, help="30-second retention in percent")
    metrics_parser.add_argument("--views", type=int, help="Views after 7 days")
    metrics_parser.add_argument("--result", choices=["win", "fail"], help="Outcome label")

    report_parser = subparsers.add_parser(
        "report-weekly",
        help="Keyword winners and losers for the past week"
    )
    report_parser.add_argument(
        "--days",
        type=int,
        default=7,
        help="Report window in days (default: 7)"
    )

    subparsers.add_parser(
        "tracker-summary",
        help="Own-channel averages, next actions and competitor trends"
    )

    # Misc

    subparsers.add_parser("niches", help="List niche presets")
    subparsers.add_parser("key-stats", help="Show YouTube API key pool status")

    return parser.parse_args()


def _split_words(text: str) -> list[str]:
    return [w.strip() for w in (text or "").split(",") if w.strip()]


def _pick(value, fallback):
    return fallback if value is None else value


def make_youtube_client(settings: Settings) -> YouTubeClient:
    return YouTubeClient(KeyPool(settings.youtube_api_keys, settings.quota_per_key))


def cmd_discover(db: Database, args, client: YouTubeClient) -> dict:
    """Execute the discover command."""
    preset = get_niche_preset(args.niche)
    if args.niche and preset is None:
        return {"command": "discover", "success": False, "error": f"Unknown niche: {args.niche}"}

    query = args.query or (preset.primary_query if preset else None)
    if not query:
        return {"command": "discover", "success": False, "error": "Provide --query or --niche"}

    preset_bounds = preset.bounds() if preset else DiscoveryBounds()
    bounds = DiscoveryBounds(
        min_subscribers=_pick(args.min_subs, preset_bounds.min_subscribers),
        max_subscribers=_pick(args.max_subs, preset_bounds.max_subscribers),
        max_channel_age_days=_pick(args.max_age_days, preset_bounds.max_channel_age_days),
        min_view_sub_ratio=_pick(args.min_ratio, preset_bounds.min_view_sub_ratio),
        max_view_sub_ratio=_pick(args.max_ratio, preset_bounds.max_view_sub_ratio),
    )

    pipeline = DiscoveryPipeline(client, db)
    result = pipeline.run(
        query,
        region_code=args.region,
        language=args.language,
        days=_pick(args.days, preset.window_days if preset else 7),
        max_results=_pick(args.max_results, preset.max_results if preset else 50),
        min_duration_sec=_pick(args.min_duration, preset.min_duration_sec if preset else 240),
        weights=preset.weights() if preset else None,
        bounds=bounds,
        niche=preset.slug if preset else None,
    )

    return {
        "command": "discover",
        "success": True,
        "query": query,
        "niche": preset.slug if preset else None,
        "fetched_videos": result.fetched_videos,
        "filtered_videos": result.filtered_videos,
        "channels": [
            {
                "channel_id": c.channel_id,
                "channel_title": c.channel_title,
                "channel_url": c.channel_url,
                "video_count_7d": c.video_count_7d,
                "views_sum_7d": c.views_sum_7d,
                "views_median_7d": c.views_median_7d,
                "score": c.score,
                "sample_titles": c.sample_titles,
                "subscriber_count": c.subscriber_count,
                "channel_age_days": c.channel_age_days,
                "view_sub_ratio": c.view_sub_ratio,
            }
            for c in result.channels
        ],
    }


def cmd_discover_history(db: Database, args) -> dict:
    """Execute the discover-history command."""
    db.ensure_discovery_tables()
    return {
        "command": "discover-history",
        "runs": db.get_discovery_history(limit=args.limit),
    }


def cmd_similar(db: Database, args, client: YouTubeClient) -> dict:
    """Execute the similar command."""
    finder = SimilarChannelFinder(client)
    pool = [CandidateChannel(channel_id=cid) for cid in args.candidates]
    run = finder.find(args.seed, candidate_channels=pool)

    db.ensure_similar_tables()
    run_id = db.save_similar_run(run)

    return {
        "command": "similar",
        "run_id": run_id,
        "seed_input": run.seed_input,
        "seed_channel_id": run.seed_channel_id,
        "query": run.query,
        "seed_terms": run.seed_terms,
        "items": [
            {
                "channel_id": i.channel_id,
                "channel_title": i.channel_title,
                "channel_url": i.channel_url,
                "similarity": i.similarity,
                "matched_terms": i.matched_terms,
            }
            for i in run.items
        ],
    }


def cmd_similar_history(db: Database, args) -> dict:
    """Execute the similar-history command."""
    db.ensure_similar_tables()
    return {
        "command": "similar-history",
        "runs": db.get_similar_history(limit=args.limit),
    }


def _score(script, enhanced: bool):
    if enhanced:
        return evaluate_script_quality_enhanced(script)
    return evaluate_script_quality(script)


def cmd_script_generate(db: Database, args, client: YouTubeClient) -> dict:
    """Execute the script-generate command."""
    generator = ScriptGenerator(client, model=args.llm_model, max_attempts=args.max_attempts)
    generated = generator.generate(
        args.seeds,
        language=args.language,
        direction=args.direction,
        topic_lock=args.topic_lock,
        banned_words=_split_words(args.banned),
    )
    quality = _score(generated.script, args.enhanced)

    db.ensure_script_tables()
    script_id = db.save_script(generated.script, quality)

    return {
        "command": "script-generate",
        "script_id": script_id,
        "provider": generated.script.provider,
        "attempts": generated.attempts,
        "errors": generated.errors,
        "seeds": generated.seeds,
        "sampled_titles": generated.sampled_titles,
        "quality": quality.to_dict(),
        "script": generated.script.model_dump(by_alias=True),
    }


def cmd_script_check(db: Database, args) -> dict:
    """Execute the script-check command."""
    script = parse_script_payload(Path(args.path).read_text(encoding="utf-8"))
    constraints = GenerationConstraints(
        direction=args.direction,
        topic_lock=args.topic_lock,
        banned_words=_split_words(args.banned),
    )
    report = check_contract(script, constraints)

    return {
        "command": "script-check",
        "path": args.path,
        "quality": _score(script, args.enhanced).to_dict(),
        "contract": {
            "is_valid": report.is_valid,
            "violations": [{"kind": v.kind, "message": str(v)} for v in report.violations],
        },
    }


def cmd_analyze(db: Database, args) -> dict:
    """Execute the analyze command."""
    db.ensure_discovery_tables()
    run = db.get_run_sample_titles(args.run_id)
    if run is None:
        return {"command": "analyze", "success": False, "error": "No discovery runs found"}

    return {
        "command": "analyze",
        "success": True,
        "run_id": run["run_id"],
        "run_at": run["run_at"],
        "query": run["query"],
        **analyze_titles(run["titles"]),
    }


def cmd_metrics_add(db: Database, args) -> dict:
    """Execute the metrics-add command."""
    episode = EpisodeMetrics(
        topic=args.topic,
        target_keyword=args.keyword,
        created_at=datetime.now(),
        ctr=args.ctr,
        retention_30s=args.retention,
        views_7d=args.views,
        win_or_fail=args.result,
        planned_date=args.planned_date,
    )
    db.ensure_episode_tables()
    return {
        "command": "metrics-add",
        "episode_id": db.save_episode_metrics(episode),
        "topic": episode.topic,
        "target_keyword": episode.target_keyword,
    }


def cmd_report_weekly(db: Database, args) -> dict:
    """Execute the report-weekly command."""
    db.ensure_episode_tables()
    report = weekly_report(db.get_episode_metrics(limit=200), days=args.days)

    data = asdict(report)
    data["period_from"] = report.period_from.isoformat()
    data["period_to"] = report.period_to.isoformat()
    return {"command": "report-weekly", **data}


def cmd_tracker_summary(db: Database, args) -> dict:
    """Execute the tracker-summary command."""
    db.ensure_episode_tables()
    db.ensure_discovery_tables()

    episodes = db.get_episode_metrics(limit=120)
    scores, actions = next_actions(episodes)
    discovered = db.get_discovery_scores(datetime.now() - timedelta(days=TREND_WINDOW_DAYS))
    summary = tracker_summary(episodes, discovered)

    return {
        "command": "tracker-summary",
        "own_summary": summary["own_summary"],
        "competitor_trends": [asdict(t) for t in summary["competitor_trends"]],
        "recommendation": summary["recommendation"],
        "keyword_scores": [asdict(s) for s in scores],
        "next_actions": actions,
    }


def cmd_niches(db: Database, args) -> dict:
    """Execute the niches command."""
    return {
        "command": "niches",
        "niches": [p.model_dump() for p in list_niche_presets()],
    }


def cmd_key_stats(db: Database, args, client: YouTubeClient) -> dict:
    """Execute the key-stats command."""
    pool = client.key_pool
    warn, message = pool.quota_warning()
    return {
        "command": "key-stats",
        **pool.stats(),
        "warning": warn,
        "message": message,
    }


def _print_discover(result: dict) -> None:
    if not result.get("success"):
        print(f"Error: {result.get('error', 'Unknown error')}")
        return
    print(f"Query: {result['query']}" + (f" (niche: {result['niche']})" if result["niche"] else ""))
    print(f"Videos: {result['fetched_videos']} fetched, {result['filtered_videos']} long enough")
    print(f"Channels: {len(result['channels'])}")
    for i, ch in enumerate(result["channels"], 1):
        print(f"\n  #{i} [{ch['score']:.2f}] {ch['channel_title'][:50]}")
        print(f"     {ch['channel_url']}")
        print(f"     Videos: {ch['video_count_7d']} | Views: {ch['views_sum_7d']:,} "
              f"| Median: {ch['views_median_7d']:,.0f}")
        if ch["subscriber_count"] is not None:
            print(f"     Subs: {ch['subscriber_count']:,} | Age: {ch['channel_age_days']}d "
                  f"| Views/subs: {ch['view_sub_ratio']}")


def _print_quality(quality: dict) -> None:
    print(f"Quality: {quality['overall']} ({quality['grade']})")
    for name in ("structure", "shootability", "concreteness", "creativity", "emotion", "rhythm"):
        if name not in quality:
            continue
        dim = quality[name]
        print(f"  {name}: {dim['score']}")
        for detail in dim["details"]:
            print(f"    {detail}")


def print_result(command: str, result: dict) -> None:
    """Human-readable output for a command result."""
    print(f"\n{'=' * 50}")
    print(f"Command: {result['command']}")
    print(f"{'=' * 50}")

    if command == "discover":
        _print_discover(result)

    elif command == "discover-history":
        runs = result.get("runs", [])
        if not runs:
            print("No discovery runs found.")
        for run in runs:
            print(f"\n  Run #{run['run_id']} at {run['run_at']}: '{run['query']}'")
            print(f"    Videos: {run['fetched_videos']} fetched, {run['filtered_videos']} kept, "
                  f"Channels: {run['channels_count']}")
            for ch in run.get("top_channels", [])[:5]:
                print(f"    [{ch['score']:.2f}] {ch['channel_title'][:50]}")

    elif command == "similar":
        print(f"Seed: {result['seed_channel_id']} ({result['seed_input']})")
        print(f"Terms: {', '.join(result['seed_terms']) or '-'}")
        print(f"Query: {result['query']}")
        if not result["items"]:
            print("No similar channels found.")
        for item in result["items"]:
            print(f"  [{item['similarity']:>6.2f}%] {item['channel_title'][:40]} "
                  f"({', '.join(item['matched_terms'])})")

    elif command == "similar-history":
        runs = result.get("runs", [])
        if not runs:
            print("No similar-channel runs found.")
        for run in runs:
            print(f"\n  Run #{run['run_id']} at {run['run_at']}: {run['seed_input']}")
            for item in run.get("items", [])[:5]:
                print(f"    [{item['similarity']:>6.2f}%] {item['channel_title'][:40]}")

    elif command == "script-generate":
        script = result["script"]
        print(f"Provider: {result['provider']} (attempts: {result['attempts']})")
        for err in result["errors"]:
            print(f"  rejected: {err.splitlines()[0]}")
        print(f"Title: {script['title']}")
        print(f"Segments: {len(script['timeline'])}, Items: {len(script['contentItems'])}")
        _print_quality(result["quality"])
        print(f"Saved as script #{result['script_id']}")

    elif command == "script-check":
        _print_quality(result["quality"])
        contract = result["contract"]
        if contract["is_valid"]:
            print("Contract: OK")
        else:
            print(f"Contract: {len(contract['violations'])} violation(s)")
            for v in contract["violations"]:
                print(f"  - {v['kind']}: {v['message']}")

    elif command == "analyze":
        if not result.get("success"):
            print(f"Error: {result.get('error', 'Unknown error')}")
        else:
            print(f"Run #{result['run_id']} at {result['run_at']}: '{result['query']}'")
            print(f"Titles: {result['total_titles']}")
            for p in result["top_patterns"][:5]:
                print(f"  pattern x{p['count']}: {p['pattern']}")
            print("Keywords: " + ", ".join(f"{k['keyword']}({k['count']})" for k in result["top_keywords"][:10]))
            for r in result["risk_hits"]:
                print(f"  risk word '{r['word']}' x{r['count']}")

    elif command == "metrics-add":
        print(f"Saved episode #{result['episode_id']}: {result['topic']}")

    elif command == "report-weekly":
        print(f"Period: {result['period_from'][:10]} .. {result['period_to'][:10]}")
        print(f"Episodes: {result['created_episodes']} created, {result['measured_episodes']} measured")
        print(f"Avg CTR: {result['avg_ctr']}% | Avg retention 30s: {result['avg_retention_30s']}%")
        for label in ("winners", "losers"):
            print(f"{label.capitalize()}:")
            for s in result[label]:
                print(f"  [{s['score']:.2f}] {s['keyword']} (n={s['count']}, ctr={s['avg_ctr']}, "
                      f"retention={s['avg_retention']}, views={s['avg_views']:,})")
        print(f"Must do: {', '.join(result['must_do']) or '-'}")
        print(f"Backup: {', '.join(result['backup']) or '-'}")
        print(f"Experiments: {', '.join(result['experiments'])}")
        for rec in result["recommendations"]:
            print(f"  - {rec}")

    elif command == "tracker-summary":
        own = result["own_summary"]
        print(f"Own: CTR {own['avg_ctr']}% | retention {own['avg_retention_30s']}% "
              f"| views {own['avg_views_7d']:,} ({own['measured_count']} measured)")
        print(f"Focus: {result['recommendation']['own_focus']}")
        print(f"Market: {result['recommendation']['market_signal']}")
        for t in result["competitor_trends"]:
            print(f"  [{t['avg_score']:.2f}] {t['keyword']} ({t['sample_count']} channels)")
        for action in result["next_actions"]:
            print(f"  - {action}")

    elif command == "niches":
        for p in result["niches"]:
            print(f"  {p['slug']:<12} {p['name']:<24} query='{p['primary_query']}' "
                  f"window={p['window_days']}d min_duration={p['min_duration_sec']}s")

    elif command == "key-stats":
        print(f"Keys: {len(result['keys'])} ({result['healthy_key_count']} active)")
        print(f"Quota used: {result['total_quota_used']:,} / {result['total_quota_limit']:,}")
        for k in result["keys"]:
            print(f"  {k['key_prefix']:<12} {k['status']:<10} used={k['quota_used']:,}")
        if result["warning"]:
            print(f"Warning: {result['message']}")

    print(f"{'=' * 50}\n")


def run_command(args, settings: Settings) -> dict:
    """Open the database and YouTube client and dispatch ``args.command``."""
    db_dir = os.path.dirname(args.db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    with Database(args.db_path) as db, make_youtube_client(settings) as client:
        if args.command == "discover":
            return cmd_discover(db, args, client)
        elif args.command == "discover-history":
            return cmd_discover_history(db, args)
        elif args.command == "analyze":
            return cmd_analyze(db, args)
        elif args.command == "similar":
            return cmd_similar(db, args, client)
        elif args.command == "similar-history":
            return cmd_similar_history(db, args)
        elif args.command == "script-generate":
            return cmd_script_generate(db, args, client)
        elif args.command == "script-check":
            return cmd_script_check(db, args)
        elif args.command == "metrics-add":
            return cmd_metrics_add(db, args)
        elif args.command == "report-weekly":
            return cmd_report_weekly(db, args)
        elif args.command == "tracker-summary":
            return cmd_tracker_summary(db, args)
        elif args.command == "niches":
            return cmd_niches(db, args)
        elif args.command == "key-stats":
            return cmd_key_stats(db, args, client)
        raise ValueError(f"Unknown command: {args.command}")


def main():
    """Main entry point."""
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    try:
        settings = Settings.from_env()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    args = parse_args(settings)

    try:
        result = run_command(args, settings)
    except (YouTubeAPIError, MalformedScriptError, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print_result(args.command, result)


if __name__ == "__main__":
    main()
