"""Usage ledger records and admission limits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class UsageRecord:
	"""Voice usage for one user on one UTC calendar day."""

	user_id: str
	usage_date: str
	realtime_minutes: float = 0.0
	standard_minutes: float = 0.0
	estimated_cost_usd: float = 0.0
	last_updated: Optional[int] = None


@dataclass(frozen=True)
class UsageLimits:
	max_session_seconds: int = 900
	max_daily_realtime_minutes: float = 10.0
	max_daily_standard_minutes: float = 60.0
	max_daily_cost_usd: float = 5.0


# USD per minute of session time.
COST_RATES: Dict[str, float] = {
	"realtime": 0.30,
	"standard": 0.03,
}


@dataclass(frozen=True)
class AdmissionDecision:
	allowed: bool
	reason: Optional[str] = None
	suggestion: Optional[str] = None
