"""
SQLite persistence for discovery runs, similar-channel runs, generated scripts
and episode metrics.
"""
import json
import sqlite3
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..tracker.models import EpisodeMetrics


class Database:
    """SQLite store for run history and generated scripts."""

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Path to the SQLite file, or ":memory:".
        """
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Establish database connection."""
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if not self._conn:
            raise RuntimeError("Database not connected")
        return self._conn

    # Discovery runs

    def ensure_discovery_tables(self) -> None:
        """Create discovery tables if they don't exist."""
        conn = self._require_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS discovery_runs (
                run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                query TEXT NOT NULL,
                niche TEXT,
                fetched_videos INTEGER,
                filtered_videos INTEGER,
                channels_count INTEGER
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS discovery_channels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id INTEGER REFERENCES discovery_runs(run_id),
                channel_id TEXT NOT NULL,
                channel_title TEXT,
                channel_url TEXT,
                video_count_7d INTEGER,
                views_sum_7d INTEGER,
                views_median_7d REAL,
                score REAL,
                sample_titles TEXT,
                subscriber_count INTEGER,
                channel_age_days INTEGER,
                view_sub_ratio REAL,
                UNIQUE(run_id, channel_id)
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_discovery_channels_run
            ON discovery_channels(run_id)
        """)
        conn.commit()

    def save_discovery_run(self, query: str, niche: Optional[str], result) -> int:
        """Save a discovery run and its ranked channels; return its run_id.

        Args:
            query: Search query of the run.
            niche: Niche preset slug, if any.
            result: DiscoveryResult from the pipeline.
        """
        conn = self._require_conn()

        cursor = conn.execute("""
            INSERT INTO discovery_runs
                (run_at, query, niche, fetched_videos, filtered_videos, channels_count)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            datetime.now().isoformat(), query, niche,
            result.fetched_videos, result.filtered_videos, len(result.channels),
        ))
        run_id = cursor.lastrowid

        for ch in result.channels:
            conn.execute("""
                INSERT INTO discovery_channels
                    (run_id, channel_id, channel_title, channel_url, video_count_7d,
                     views_sum_7d, views_median_7d, score, sample_titles,
                     subscriber_count, channel_age_days, view_sub_ratio)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                run_id, ch.channel_id, ch.channel_title, ch.channel_url,
                ch.video_count_7d, ch.views_sum_7d, ch.views_median_7d, ch.score,
                json.dumps(ch.sample_titles, ensure_ascii=False),
                ch.subscriber_count, ch.channel_age_days, ch.view_sub_ratio,
            ))
        conn.commit()
        return run_id

    def get_discovery_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent discovery runs with their top channels.

        Args:
            limit: Max number of runs to return.

        Returns:
            List of dicts with run info and top channels.
        """
        conn = self._require_conn()

        runs = conn.execute("""
            SELECT run_id, run_at, query, niche, fetched_videos,
                   filtered_videos, channels_count
            FROM discovery_runs
            ORDER BY run_at DESC, run_id DESC
            LIMIT ?
        """, (limit,)).fetchall()

        results = []
        for run in runs:
            channels = conn.execute("""
                SELECT channel_id, channel_title, channel_url, video_count_7d,
                       views_sum_7d, views_median_7d, score, sample_titles
                FROM discovery_channels
                WHERE run_id = ?
                ORDER BY score DESC
                LIMIT 10
            """, (run["run_id"],)).fetchall()

            results.append({
                "run_id": run["run_id"],
                "run_at": run["run_at"],
                "query": run["query"],
                "niche": run["niche"],
                "fetched_videos": run["fetched_videos"],
                "filtered_videos": run["filtered_videos"],
                "channels_count": run["channels_count"],
                "top_channels": [
                    {
                        "channel_id": c["channel_id"],
                        "channel_title": c["channel_title"],
                        "channel_url": c["channel_url"],
                        "video_count_7d": c["video_count_7d"],
                        "views_sum_7d": c["views_sum_7d"],
                        "views_median_7d": c["views_median_7d"],
                        "score": c["score"],
                        "sample_titles": json.loads(c["sample_titles"] or "[]"),
                    }
                    for c in channels
                ],
            })

        return results

    def get_run_sample_titles(self, run_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Sample titles of every channel in a discovery run.

        Args:
            run_id: Run to read; the latest run when None.

        Returns:
            Dict with run_id, run_at, query and titles, or None if the run
            does not exist.
        """
        conn = self._require_conn()

        if run_id is None:
            run = conn.execute("""
                SELECT run_id, run_at, query FROM discovery_runs
                ORDER BY run_at DESC, run_id DESC
                LIMIT 1
            """).fetchone()
        else:
            run = conn.execute("""
                SELECT run_id, run_at, query FROM discovery_runs WHERE run_id = ?
            """, (run_id,)).fetchone()
        if run is None:
            return None

        rows = conn.execute("""
            SELECT sample_titles FROM discovery_channels WHERE run_id = ? ORDER BY id
        """, (run["run_id"],)).fetchall()

        titles = []
        for row in rows:
            titles.extend(json.loads(row["sample_titles"] or "[]"))

        return {
            "run_id": run["run_id"],
            "run_at": run["run_at"],
            "query": run["query"],
            "titles": titles,
        }

    def get_discovery_scores(self, since: datetime, limit: int = 500) -> List[Dict[str, Any]]:
        """(query, score) of channels found by discovery runs since ``since``."""
        conn = self._require_conn()

        rows = conn.execute("""
            SELECT r.query, c.score
            FROM discovery_channels c
            JOIN discovery_runs r ON r.run_id = c.run_id
            WHERE r.run_at >= ?
            ORDER BY r.run_at DESC, c.id
            LIMIT ?
        """, (since.isoformat(), limit)).fetchall()

        return [{"query": r["query"], "score": r["score"]} for r in rows]

    # Similar-channel runs

    def ensure_similar_tables(self) -> None:
        """Create similar-channel tables if they don't exist."""
        conn = self._require_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS similar_runs (
                run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                seed_input TEXT NOT NULL,
                seed_channel_id TEXT NOT NULL,
                query TEXT,
                seed_terms TEXT,
                results_count INTEGER
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS similar_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id INTEGER REFERENCES similar_runs(run_id),
                channel_id TEXT NOT NULL,
                channel_title TEXT,
                channel_url TEXT,
                similarity REAL,
                matched_terms TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_similar_results_run
            ON similar_results(run_id)
        """)
        conn.commit()

    def save_similar_run(self, run) -> int:
        """Save a SimilarRunResult and return its run_id."""
        conn = self._require_conn()

        cursor = conn.execute("""
            INSERT INTO similar_runs
                (run_at, seed_input, seed_channel_id, query, seed_terms, results_count)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            datetime.now().isoformat(), run.seed_input, run.seed_channel_id,
            run.query, json.dumps(run.seed_terms), len(run.items),
        ))
        run_id = cursor.lastrowid

        for item in run.items:
            conn.execute("""
                INSERT INTO similar_results
                    (run_id, channel_id, channel_title, channel_url, similarity, matched_terms)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                run_id, item.channel_id, item.channel_title, item.channel_url,
                item.similarity, json.dumps(item.matched_terms),
            ))
        conn.commit()
        return run_id

    def get_similar_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent similar-channel runs with their results."""
        conn = self._require_conn()

        runs = conn.execute("""
            SELECT run_id, run_at, seed_input, seed_channel_id, query,
                   seed_terms, results_count
            FROM similar_runs
            ORDER BY run_at DESC, run_id DESC
            LIMIT ?
        """, (limit,)).fetchall()

        results = []
        for run in runs:
            items = conn.execute("""
                SELECT channel_id, channel_title, channel_url, similarity, matched_terms
                FROM similar_results
                WHERE run_id = ?
                ORDER BY similarity DESC
            """, (run["run_id"],)).fetchall()

            results.append({
                "run_id": run["run_id"],
                "run_at": run["run_at"],
                "seed_input": run["seed_input"],
                "seed_channel_id": run["seed_channel_id"],
                "query": run["query"],
                "seed_terms": json.loads(run["seed_terms"] or "[]"),
                "results_count": run["results_count"],
                "items": [
                    {
                        "channel_id": i["channel_id"],
                        "channel_title": i["channel_title"],
                        "channel_url": i["channel_url"],
                        "similarity": i["similarity"],
                        "matched_terms": json.loads(i["matched_terms"] or "[]"),
                    }
                    for i in items
                ],
            })

        return results

    # Generated scripts

    def ensure_script_tables(self) -> None:
        """Create the generated scripts table if it doesn't exist."""
        conn = self._require_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS generated_scripts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                topic TEXT,
                title TEXT,
                provider TEXT,
                quality_overall INTEGER,
                quality_grade TEXT,
                body TEXT NOT NULL
            )
        """)
        conn.commit()

    def save_script(self, script, quality=None) -> int:
        """Save a DetailedScript (and optionally its quality score).

        Args:
            script: Accepted DetailedScript.
            quality: ScriptQualityScore for the script, if computed.

        Returns:
            The row id of the saved script.
        """
        conn = self._require_conn()

        cursor = conn.execute("""
            INSERT INTO generated_scripts
                (created_at, topic, title, provider, quality_overall, quality_grade, body)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            datetime.now().isoformat(), script.topic, script.title, script.provider,
            quality.overall if quality else None,
            quality.grade if quality else None,
            script.model_dump_json(by_alias=True),
        ))
        conn.commit()
        return cursor.lastrowid

    def get_recent_scripts(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recently saved scripts, newest first."""
        conn = self._require_conn()

        rows = conn.execute("""
            SELECT id, created_at, topic, title, provider, quality_overall,
                   quality_grade, body
            FROM generated_scripts
            ORDER BY created_at DESC, id DESC
            LIMIT ?
        """, (limit,)).fetchall()

        return [
            {
                "id": r["id"],
                "created_at": r["created_at"],
                "topic": r["topic"],
                "title": r["title"],
                "provider": r["provider"],
                "quality_overall": r["quality_overall"],
                "quality_grade": r["quality_grade"],
                "script": json.loads(r["body"]),
            }
            for r in rows
        ]

    # Episode performance

    def ensure_episode_tables(self) -> None:
        """Create the episode metrics table if it doesn't exist."""
        conn = self._require_conn()

        conn.execute("""
            CREATE TABLE IF NOT EXISTS episode_metrics (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TIMESTAMP NOT NULL,
                topic TEXT NOT NULL,
                target_keyword TEXT,
                planned_date TEXT,
                ctr REAL,
                retention_30s REAL,
                views_7d INTEGER,
                win_or_fail TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_episode_metrics_created
            ON episode_metrics(created_at)
        """)
        conn.commit()

    def save_episode_metrics(self, episode: EpisodeMetrics) -> int:
        """Save one episode's metrics and return its row id."""
        conn = self._require_conn()

        cursor = conn.execute("""
            INSERT INTO episode_metrics
                (created_at, topic, target_keyword, planned_date, ctr,
                 retention_30s, views_7d, win_or_fail)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            episode.created_at.isoformat(), episode.topic, episode.target_keyword,
            episode.planned_date, episode.ctr, episode.retention_30s,
            episode.views_7d, episode.win_or_fail,
        ))
        conn.commit()
        return cursor.lastrowid

    def get_episode_metrics(self, limit: int = 200) -> List[EpisodeMetrics]:
        """Most recent episodes, newest first."""
        conn = self._require_conn()

        rows = conn.execute("""
            SELECT id, created_at, topic, target_keyword, planned_date, ctr,
                   retention_30s, views_7d, win_or_fail
            FROM episode_metrics
            ORDER BY created_at DESC, id DESC
            LIMIT ?
        """, (limit,)).fetchall()

        return [
            EpisodeMetrics(
                episode_id=r["id"],
                created_at=datetime.fromisoformat(r["created_at"]),
                topic=r["topic"],
                target_keyword=r["target_keyword"],
                planned_date=r["planned_date"],
                ctr=r["ctr"],
                retention_30s=r["retention_30s"],
                views_7d=r["views_7d"],
                win_or_fail=r["win_or_fail"],
            )
            for r in rows
        ]
