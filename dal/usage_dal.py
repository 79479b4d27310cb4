"""Async Data Access Layer for the VOICE_USAGE ledger.

Provides UsageDAL with a read for admission checks and a transactional
increment for session-end accounting, on top of
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional, Sequence

from models.usage_models import UsageRecord
from utils.database_init import AsyncDatabaseInitializer


def usage_day(now: Optional[float] = None) -> str:
    """Return the UTC calendar day (YYYY-MM-DD) that usage is billed against."""
    moment = datetime.fromtimestamp(now if now is not None else time.time(), tz=timezone.utc)
    return moment.strftime("%Y-%m-%d")


class UsageDAL:
    """Per-user, per-day voice usage ledger.

    Rows only ever grow: `increment` adds minutes and cost and never
    subtracts, and each increment runs in its own `BEGIN IMMEDIATE`
    transaction so concurrent session ends cannot lose updates.
    """

    _COLUMNS = (
        "user_id",
        "usage_date",
        "realtime_minutes",
        "standard_minutes",
        "estimated_cost_usd",
        "last_updated",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def get_usage(self, user_id: str, day: Optional[str] = None) -> UsageRecord:
        """Return the usage for `user_id` on `day` (today by default), zeroed if absent."""
        day = day or usage_day()
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM VOICE_USAGE WHERE user_id = ? AND usage_date = ?",
                (user_id, day),
            )
            row = await cur.fetchone()
        return self._row_to_record(row) if row else UsageRecord(user_id=user_id, usage_date=day)

    async def increment(
        self,
        user_id: str,
        mode: str,
        duration_minutes: float,
        cost_usd: float,
        day: Optional[str] = None,
    ) -> UsageRecord:
        """Atomically add one session's minutes and cost to the ledger.

        Args:
            user_id: Owner of the session.
            mode: "realtime" or "standard"; selects which minutes column grows.
            duration_minutes: Session length in minutes (negative values are clamped to 0).
            cost_usd: Estimated session cost (negative values are clamped to 0).
            day: Override the billing day, mainly for tests.

        Returns:
            The ledger row after the increment.
        """
        if mode not in ("realtime", "standard"):
            raise ValueError(f"Unknown processing mode: {mode!r}")
        day = day or usage_day()
        minutes = max(0.0, float(duration_minutes))
        cost = max(0.0, float(cost_usd))
        realtime = minutes if mode == "realtime" else 0.0
        standard = minutes if mode == "standard" else 0.0

        async with self._db.connection() as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                await conn.execute(
                    """
                    INSERT INTO VOICE_USAGE
                        (user_id, usage_date, realtime_minutes, standard_minutes, estimated_cost_usd, last_updated)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (user_id, usage_date) DO UPDATE SET
                        realtime_minutes = realtime_minutes + excluded.realtime_minutes,
                        standard_minutes = standard_minutes + excluded.standard_minutes,
                        estimated_cost_usd = estimated_cost_usd + excluded.estimated_cost_usd,
                        last_updated = excluded.last_updated
                    """,
                    (user_id, day, realtime, standard, cost, int(time.time())),
                )
                cur = await conn.execute(
                    f"SELECT {self._COLUMN_LIST} FROM VOICE_USAGE WHERE user_id = ? AND usage_date = ?",
                    (user_id, day),
                )
                row = await cur.fetchone()
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
        return self._row_to_record(row)

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> UsageRecord:
        """Convert a DB row tuple into a UsageRecord."""
        return UsageRecord(
            user_id=row[0],
            usage_date=row[1],
            realtime_minutes=float(row[2] or 0.0),
            standard_minutes=float(row[3] or 0.0),
            estimated_cost_usd=float(row[4] or 0.0),
            last_updated=row[5],
        )
