"""Async Data Access Layer for journal ENTRY rows.

The relay reads entries to build the conversation context snapshot and to
answer `get_memory` tool calls, and writes one entry when a session is
saved. Goals and situations are carried as `@goal:` / `@situation:` tags.
"""

from __future__ import annotations

import json
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from models.session_models import EntryContext, MoodTrajectory
from utils.database_init import AsyncDatabaseInitializer

GOAL_TAG_PREFIX = "@goal:"
SITUATION_TAG_PREFIX = "@situation:"


def _tag_values(tag_rows: Sequence[Sequence[object]], prefix: str, limit: int) -> List[str]:
    values: List[str] = []
    for (raw_tags,) in tag_rows:
        try:
            tags = json.loads(raw_tags or "[]")
        except (TypeError, ValueError):
            continue
        for tag in tags:
            if isinstance(tag, str) and tag.startswith(prefix):
                value = tag[len(prefix):].replace("_", " ")
                if value not in values:
                    values.append(value)
    return values[:limit]


class EntryDAL:
    """Read/write access to journal entries for one relay process."""

    _COLUMNS = ("id", "effective_date", "title", "text", "mood_score")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_entry(
        self,
        user_id: str,
        text: str,
        *,
        title: Optional[str] = None,
        tags: Optional[List[str]] = None,
        source: str = "voice",
        mood_score: Optional[float] = None,
        created_at: Optional[int] = None,
    ) -> str:
        """Insert a new ENTRY row and return its id."""
        entry_id = uuid.uuid4().hex
        created_at = created_at or int(time.time())
        effective_date = datetime.fromtimestamp(created_at, tz=timezone.utc).strftime("%Y-%m-%d")
        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO ENTRY (id, user_id, effective_date, title, text, mood_score, tags, source, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry_id,
                    user_id,
                    effective_date,
                    title,
                    text,
                    mood_score,
                    json.dumps(tags or []),
                    source,
                    created_at,
                ),
            )
            await conn.commit()
        return entry_id

    async def get_recent_entries(self, user_id: str, limit: int = 5) -> List[EntryContext]:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM ENTRY WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cur.fetchall()
        return [self._row_to_context(row) for row in rows]

    async def get_active_goals(self, user_id: str) -> List[str]:
        return _tag_values(await self._recent_tags(user_id), GOAL_TAG_PREFIX, limit=5)

    async def get_open_situations(self, user_id: str) -> List[str]:
        return _tag_values(await self._recent_tags(user_id), SITUATION_TAG_PREFIX, limit=3)

    async def get_mood_trajectory(self, user_id: str) -> MoodTrajectory:
        """Compare the three newest mood scores with the older ones (last 7 entries)."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT mood_score FROM ENTRY WHERE user_id = ? ORDER BY created_at DESC LIMIT 7",
                (user_id,),
            )
            rows = await cur.fetchall()
        scores = [float(row[0]) for row in rows if row[0] is not None]
        if len(scores) < 2:
            return MoodTrajectory()

        recent = scores[:3]
        older = scores[3:]
        recent_avg = sum(recent) / len(recent)
        older_avg = sum(older) / max(1, len(older))
        diff = recent_avg - older_avg
        shown = f"{recent_avg * 10:.1f}/10"

        if diff > 0.1:
            return MoodTrajectory("improving", f"Your mood has been improving lately (avg {shown}).", recent_avg)
        if diff < -0.1:
            return MoodTrajectory("declining", f"Your mood has been a bit lower recently (avg {shown}).", recent_avg)
        return MoodTrajectory("stable", f"Your mood has been fairly stable (avg {shown}).", recent_avg)

    async def search_entries(
        self,
        user_id: str,
        query: str,
        *,
        entity_type: Optional[str] = None,
        limit: int = 3,
    ) -> List[EntryContext]:
        """Return the newest entries whose title, text or tags mention `query`."""
        terms = [term for term in query.lower().split() if len(term) > 2] or [query.lower()]
        clauses = " OR ".join(["LOWER(title) LIKE ? OR LOWER(text) LIKE ? OR LOWER(tags) LIKE ?"] * len(terms))
        params: List[object] = [user_id]
        for term in terms:
            params.extend([f"%{term}%"] * 3)
        sql = f"SELECT {self._COLUMN_LIST} FROM ENTRY WHERE user_id = ? AND ({clauses})"
        if entity_type in ("goal", "situation"):
            sql += " AND tags LIKE ?"
            params.append(f"%@{entity_type}:%")
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        async with self._db.connection() as conn:
            cur = await conn.execute(sql, tuple(params))
            rows = await cur.fetchall()
        return [self._row_to_context(row) for row in rows]

    async def _recent_tags(self, user_id: str, limit: int = 20) -> List[Sequence[object]]:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT tags FROM ENTRY WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
                (user_id, limit),
            )
            return list(await cur.fetchall())

    @staticmethod
    def _row_to_context(row: Sequence[object]) -> EntryContext:
        """Convert a DB row tuple into an EntryContext."""
        return EntryContext(
            id=str(row[0]),
            effective_date=str(row[1] or "unknown"),
            title=str(row[2] or "Untitled"),
            text=str(row[3] or ""),
            mood_score=float(row[4]) if row[4] is not None else None,
        )
