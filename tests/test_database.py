"""
Tests for the database module.
"""
import json
import os
import sys
import tempfile
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from creatorops.db.database import Database
from creatorops.discovery.models import ChannelCandidate, DiscoveryResult
from creatorops.planner.quality import evaluate_script_quality
from creatorops.similar.models import SimilarityResult, SimilarRunResult
from creatorops.tracker.models import EpisodeMetrics


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    yield db_path

    # Cleanup
    os.unlink(db_path)


def _candidate(channel_id, score, **kwargs):
    return ChannelCandidate(
        channel_id=channel_id,
        channel_title=f"Title {channel_id}",
        channel_url=f"https://www.youtube.com/channel/{channel_id}",
        video_count_7d=3,
        views_sum_7d=30000,
        views_median_7d=10000.0,
        score=score,
        sample_titles=["家庭菜园", "Winter prep"],
        **kwargs,
    )


class TestDatabaseConnection:
    def test_context_manager(self, temp_db):
        with Database(temp_db) as db:
            assert db._conn is not None
        assert db._conn is None

    def test_requires_connection(self, temp_db):
        db = Database(temp_db)
        with pytest.raises(RuntimeError):
            db.ensure_discovery_tables()

    def test_tables_are_idempotent(self, temp_db):
        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            db.ensure_discovery_tables()
            db.ensure_similar_tables()
            db.ensure_similar_tables()
            db.ensure_script_tables()
            db.ensure_script_tables()
            db.ensure_episode_tables()
            db.ensure_episode_tables()


class TestDiscoveryRuns:
    def test_save_and_history(self, temp_db):
        result = DiscoveryResult(
            channels=[
                _candidate("UC_low", 40.0),
                _candidate("UC_high", 80.0, subscriber_count=5000, channel_age_days=100, view_sub_ratio=6.0),
            ],
            fetched_videos=50,
            filtered_videos=30,
        )

        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            run_id = db.save_discovery_run("homestead", "homestead", result)
            history = db.get_discovery_history()

        assert len(history) == 1
        run = history[0]
        assert run["run_id"] == run_id
        assert run["query"] == "homestead"
        assert run["niche"] == "homestead"
        assert run["fetched_videos"] == 50
        assert run["filtered_videos"] == 30
        assert run["channels_count"] == 2
        assert [c["channel_id"] for c in run["top_channels"]] == ["UC_high", "UC_low"]
        assert run["top_channels"][0]["sample_titles"] == ["家庭菜园", "Winter prep"]

    def test_history_newest_first_and_limited(self, temp_db):
        empty = DiscoveryResult(channels=[], fetched_videos=0, filtered_videos=0)

        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            for query in ("a", "b", "c"):
                db.save_discovery_run(query, None, empty)
            history = db.get_discovery_history(limit=2)

        assert [r["query"] for r in history] == ["c", "b"]
        assert history[0]["top_channels"] == []

    def test_sample_titles_of_latest_run(self, temp_db):
        first = DiscoveryResult(channels=[_candidate("UC_a", 50.0)], fetched_videos=5, filtered_videos=5)
        second = DiscoveryResult(
            channels=[_candidate("UC_b", 70.0), _candidate("UC_c", 60.0)],
            fetched_videos=9,
            filtered_videos=8,
        )

        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            first_id = db.save_discovery_run("garden", None, first)
            second_id = db.save_discovery_run("bees", None, second)
            latest = db.get_run_sample_titles()
            by_id = db.get_run_sample_titles(first_id)
            missing = db.get_run_sample_titles(999)

        assert latest["run_id"] == second_id
        assert latest["query"] == "bees"
        assert latest["titles"] == ["家庭菜园", "Winter prep", "家庭菜园", "Winter prep"]
        assert by_id["query"] == "garden"
        assert len(by_id["titles"]) == 2
        assert missing is None

    def test_sample_titles_without_runs(self, temp_db):
        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            assert db.get_run_sample_titles() is None

    def test_discovery_scores_since(self, temp_db):
        result = DiscoveryResult(
            channels=[_candidate("UC_a", 50.0), _candidate("UC_b", 30.0)],
            fetched_videos=5,
            filtered_videos=5,
        )

        with Database(temp_db) as db:
            db.ensure_discovery_tables()
            db.save_discovery_run("Garden", None, result)
            recent = db.get_discovery_scores(datetime.now() - timedelta(days=14))
            future = db.get_discovery_scores(datetime.now() + timedelta(days=1))

        assert recent == [{"query": "Garden", "score": 50.0}, {"query": "Garden", "score": 30.0}]
        assert future == []


class TestSimilarRuns:
    def test_save_and_history(self, temp_db):
        run = SimilarRunResult(
            seed_input="@seed",
            seed_channel_id="UC_seed",
            query="garden chicken",
            seed_terms=["garden", "chicken"],
            items=[
                SimilarityResult("UC_a", "A", "https://www.youtube.com/channel/UC_a", 50.0, ["garden"]),
                SimilarityResult("UC_b", "B", "https://www.youtube.com/channel/UC_b", 100.0, ["garden", "chicken"]),
            ],
        )

        with Database(temp_db) as db:
            db.ensure_similar_tables()
            run_id = db.save_similar_run(run)
            history = db.get_similar_history()

        saved = history[0]
        assert saved["run_id"] == run_id
        assert saved["seed_channel_id"] == "UC_seed"
        assert saved["seed_terms"] == ["garden", "chicken"]
        assert saved["results_count"] == 2
        assert [i["channel_id"] for i in saved["items"]] == ["UC_b", "UC_a"]
        assert saved["items"][0]["matched_terms"] == ["garden", "chicken"]

    def test_empty_history(self, temp_db):
        with Database(temp_db) as db:
            db.ensure_similar_tables()
            assert db.get_similar_history() == []


class TestScripts:
    def test_save_with_quality(self, temp_db, script_factory):
        script = script_factory()
        quality = evaluate_script_quality(script)

        with Database(temp_db) as db:
            db.ensure_script_tables()
            script_id = db.save_script(script, quality)
            [row] = db.get_recent_scripts()

        assert row["id"] == script_id
        assert row["title"] == script.title
        assert row["provider"] == "ai"
        assert row["quality_overall"] == quality.overall
        assert row["quality_grade"] == quality.grade
        assert row["script"]["contentItems"] == script.content_items

    def test_save_without_quality(self, temp_db, script_factory):
        with Database(temp_db) as db:
            db.ensure_script_tables()
            db.save_script(script_factory(provider="template"))
            [row] = db.get_recent_scripts()

        assert row["provider"] == "template"
        assert row["quality_overall"] is None
        assert json.dumps(row["script"], ensure_ascii=False)


class TestEpisodeMetrics:
    def test_save_and_read_newest_first(self, temp_db):
        now = datetime(2025, 6, 8, 12, 0)
        older = EpisodeMetrics(
            topic="番茄实测",
            target_keyword="tomato",
            created_at=now - timedelta(days=2),
            ctr=6.2,
            views_7d=12000,
            win_or_fail="win",
            planned_date="2025-06-06",
        )
        newer = EpisodeMetrics(topic="Winter prep", target_keyword=None, created_at=now)

        with Database(temp_db) as db:
            db.ensure_episode_tables()
            older_id = db.save_episode_metrics(older)
            newer_id = db.save_episode_metrics(newer)
            episodes = db.get_episode_metrics()

        assert [e.episode_id for e in episodes] == [newer_id, older_id]
        assert episodes[0].target_keyword is None
        assert episodes[0].is_measured() is False

        stored = episodes[1]
        assert stored.created_at == older.created_at
        assert stored.topic == "番茄实测"
        assert stored.ctr == 6.2
        assert stored.retention_30s is None
        assert stored.views_7d == 12000
        assert stored.win_or_fail == "win"
        assert stored.planned_date == "2025-06-06"

    def test_limit(self, temp_db):
        now = datetime(2025, 6, 8, 12, 0)
        with Database(temp_db) as db:
            db.ensure_episode_tables()
            for i in range(5):
                db.save_episode_metrics(EpisodeMetrics(
                    topic=f"t{i}", target_keyword="k", created_at=now + timedelta(hours=i),
                ))
            episodes = db.get_episode_metrics(limit=3)

        assert [e.topic for e in episodes] == ["t4", "t3", "t2"]
