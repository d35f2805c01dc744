"""SQLite storage adapter.

Implements the core PostStoragePort and RollHistoryPort using a simple
SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable, Tuple

from core.models import HistoricalRoll, Post, RollSingle


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the storage and history ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - posts: one row per transcript entry, keyed by (campaign, post id)
        - rolls: evaluated expressions attached to a post
        - single_rolls: individual dice of a roll
        """

        with self._connect() as conn:
            # Post ids are only unique inside one transcript (Fantasy Grounds
            # ids are a per-file counter), so the campaign is part of the key.
            # Fields:
            # - campaign_name: configured campaign the transcript belongs to
            # - post_id: source-defined identifier
            # - sender_name: name shown in the transcript
            # - timestamp: ISO-8601 UTC instant
            # - raw_content: message text, may be empty
            # - is_message: 1 for chat messages, 0 for roll entries
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS posts (
                    campaign_name TEXT NOT NULL,
                    post_id TEXT NOT NULL,
                    sender_name TEXT NOT NULL,
                    timestamp TIMESTAMP NOT NULL,
                    raw_content TEXT NOT NULL,
                    is_message INTEGER NOT NULL,
                    PRIMARY KEY (campaign_name, post_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rolls (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_name TEXT NOT NULL,
                    post_id TEXT NOT NULL,
                    formula TEXT NOT NULL,
                    outcome REAL NOT NULL,
                    FOREIGN KEY (campaign_name, post_id)
                        REFERENCES posts (campaign_name, post_id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS single_rolls (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    roll_id INTEGER NOT NULL REFERENCES rolls (id) ON DELETE CASCADE,
                    faces INTEGER NOT NULL,
                    outcome INTEGER NOT NULL
                )
                """
            )

    def known_post_ids(self, campaign_name: str) -> set[str]:
        """Return every post id already stored for a campaign."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT post_id FROM posts WHERE campaign_name = ?",
                (campaign_name,),
            ).fetchall()
        return {row["post_id"] for row in rows}

    def save_post(self, campaign_name: str, post: Post) -> None:
        """Insert a post with its rolls; an already stored id is left as is."""

        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO posts (
                    campaign_name,
                    post_id,
                    sender_name,
                    timestamp,
                    raw_content,
                    is_message
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    campaign_name,
                    post.id,
                    post.sender_name,
                    post.timestamp.isoformat(),
                    post.raw_content,
                    int(post.is_message),
                ),
            )
            if cur.rowcount == 0:
                return

            for roll in post.rolls:
                roll_cur = conn.execute(
                    """
                    INSERT INTO rolls (campaign_name, post_id, formula, outcome)
                    VALUES (?, ?, ?, ?)
                    """,
                    (campaign_name, post.id, roll.formula, roll.outcome),
                )
                conn.executemany(
                    "INSERT INTO single_rolls (roll_id, faces, outcome) VALUES (?, ?, ?)",
                    [(roll_cur.lastrowid, single.faces, single.outcome) for single in roll.single_rolls],
                )

    def fetch_single_rolls(self, senders: Iterable[Tuple[str, str]]) -> list[RollSingle]:
        """Return every individual die rolled by the (campaign, sender) pairs."""

        pairs = list(senders)
        if not pairs:
            return []
        conditions = " OR ".join("(posts.campaign_name = ? AND posts.sender_name = ?)" for _ in pairs)
        params = [value for pair in pairs for value in pair]
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT single_rolls.faces, single_rolls.outcome FROM single_rolls
                    JOIN rolls ON single_rolls.roll_id = rolls.id
                    JOIN posts ON rolls.campaign_name = posts.campaign_name
                        AND rolls.post_id = posts.post_id
                WHERE {conditions}
                ORDER BY single_rolls.id
                """,
                params,
            ).fetchall()
        return [RollSingle(faces=row["faces"], outcome=row["outcome"]) for row in rows]

    def fetch_rolls(self) -> list[HistoricalRoll]:
        """Return every stored roll with its sender and time."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT posts.campaign_name, posts.sender_name, posts.timestamp,
                       rolls.formula, rolls.outcome
                FROM rolls
                    JOIN posts ON rolls.campaign_name = posts.campaign_name
                        AND rolls.post_id = posts.post_id
                ORDER BY rolls.id
                """
            ).fetchall()
        return [
            HistoricalRoll(
                campaign_name=row["campaign_name"],
                sender_name=row["sender_name"],
                formula=row["formula"],
                outcome=row["outcome"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
            for row in rows
        ]
