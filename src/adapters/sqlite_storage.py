"""SQLite storage adapter.

Implements the core RuleStorePort and EventStorePort using a simple SQLite
database.
"""

from __future__ import annotations

import sqlite3
import time
from typing import List, Optional

from core.categories import ShieldLevel, parse_tags
from core.matcher import split_keywords
from core.models import KEYWORD_DELIMITER, Record, Rule


def _now_ms() -> int:
    return int(time.time() * 1000)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the rule and event store contracts."""

    def __init__(self, db_path: str, default_shield_level: ShieldLevel = ShieldLevel.SMART) -> None:
        self._db_path = db_path
        self._default_level = default_shield_level

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - app_rules: one shield rule per (source, profile_id)
        - blocked: append-only log of suppressed notifications
        """

        with self._connect() as conn:
            # Fields:
            # - shield_level: stored as text, unknown values read back as the default
            # - active_tags / custom_keywords: comma-separated lists
            # - last_updated: epoch milliseconds of the last edit
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_rules (
                    source TEXT NOT NULL,
                    profile_id TEXT NOT NULL,
                    shield_level TEXT NOT NULL,
                    active_tags TEXT NOT NULL DEFAULT '',
                    custom_keywords TEXT NOT NULL DEFAULT '',
                    last_updated INTEGER NOT NULL,
                    PRIMARY KEY (source, profile_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS blocked (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source TEXT NOT NULL,
                    title TEXT,
                    body TEXT,
                    timestamp INTEGER NOT NULL,
                    category TEXT,
                    is_blocked INTEGER NOT NULL DEFAULT 1
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_blocked_source ON blocked (source)")

    def _row_to_rule(self, row: sqlite3.Row) -> Rule:
        return Rule(
            source=row["source"],
            profile_id=row["profile_id"],
            shield_level=ShieldLevel.parse(row["shield_level"], self._default_level),
            active_tags=parse_tags(row["active_tags"].split(",")),
            custom_keywords=tuple(split_keywords(row["custom_keywords"])),
            last_updated=int(row["last_updated"]),
        )

    def get_rule(self, source: str, profile_id: str) -> Optional[Rule]:
        """Return the rule for a source in a profile, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM app_rules WHERE source = ? AND profile_id = ?",
                (source, profile_id),
            ).fetchone()
        return self._row_to_rule(row) if row else None

    def upsert_rule(self, rule: Rule) -> None:
        """Insert or replace the rule keyed by (source, profile_id)."""

        tags = ",".join(sorted(tag.value for tag in rule.active_tags))
        last_updated = rule.last_updated or _now_ms()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO app_rules (
                    source, profile_id, shield_level, active_tags, custom_keywords, last_updated
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(source, profile_id) DO UPDATE SET
                    shield_level = excluded.shield_level,
                    active_tags = excluded.active_tags,
                    custom_keywords = excluded.custom_keywords,
                    last_updated = excluded.last_updated
                """,
                (
                    rule.source,
                    rule.profile_id,
                    rule.shield_level.value,
                    tags,
                    KEYWORD_DELIMITER.join(rule.custom_keywords),
                    last_updated,
                ),
            )

    def delete_rule(self, source: str, profile_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM app_rules WHERE source = ? AND profile_id = ?",
                (source, profile_id),
            )

    def list_rules(self, profile_id: str) -> List[Rule]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM app_rules WHERE profile_id = ? ORDER BY source",
                (profile_id,),
            ).fetchall()
        return [self._row_to_rule(row) for row in rows]

    def append(self, record: Record) -> None:
        """Persist a record to the append-only blocked table."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO blocked (source, title, body, timestamp, category, is_blocked)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.source,
                    record.title,
                    record.body,
                    record.timestamp or _now_ms(),
                    record.category,
                    int(record.is_blocked),
                ),
            )

    def list_blocked(self, source: Optional[str] = None) -> List[Record]:
        """Return blocked records, newest first, optionally for one source."""

        query = "SELECT * FROM blocked WHERE is_blocked = 1"
        params: tuple = ()
        if source is not None:
            query += " AND source = ?"
            params = (source,)
        query += " ORDER BY timestamp DESC, id DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            Record(
                id=row["id"],
                source=row["source"],
                title=row["title"] or "",
                body=row["body"] or "",
                timestamp=int(row["timestamp"]),
                category=row["category"] or "",
                is_blocked=bool(row["is_blocked"]),
            )
            for row in rows
        ]

    def list_sources_with_records(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT DISTINCT source FROM blocked ORDER BY source").fetchall()
        return [row["source"] for row in rows]

    def delete_older_than(self, timestamp: int) -> int:
        """Delete records older than ``timestamp`` (epoch ms) and return the count."""

        with self._connect() as conn:
            cur = conn.execute("DELETE FROM blocked WHERE timestamp < ?", (timestamp,))
            return cur.rowcount

    def clear(self, source: Optional[str] = None) -> int:
        """Delete records for one source, or all of them."""

        with self._connect() as conn:
            if source is None:
                cur = conn.execute("DELETE FROM blocked")
            else:
                cur = conn.execute("DELETE FROM blocked WHERE source = ?", (source,))
            return cur.rowcount
