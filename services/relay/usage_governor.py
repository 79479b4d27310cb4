"""Admission control and cost accounting on top of the usage ledger."""

from __future__ import annotations

import logging
import time
from typing import Optional

from dal.usage_dal import UsageDAL
from models.session_models import Session
from models.usage_models import COST_RATES, AdmissionDecision, UsageLimits, UsageRecord

DAILY_COST_SUGGESTION = "You've reached your daily voice limit. Try text journaling or come back tomorrow!"
REALTIME_MINUTES_SUGGESTION = "Realtime voice is limited today. Try a guided session instead (they use less quota)."
STANDARD_MINUTES_SUGGESTION = "You've used a lot of voice journaling today. Try text entry or come back tomorrow!"


def session_cost(mode: str, duration_minutes: float) -> float:
	"""Estimated USD cost of a session of `duration_minutes` in `mode`."""
	return duration_minutes * COST_RATES[mode]


class UsageGovernor:
	"""Checks daily caps before a session starts and charges it when it ends."""

	def __init__(self, usage_dal: UsageDAL, limits: Optional[UsageLimits] = None) -> None:
		self.usage_dal = usage_dal
		self.limits = limits or UsageLimits()

	async def check_usage_limits(self, user_id: str, mode: str) -> AdmissionDecision:
		usage = await self.usage_dal.get_usage(user_id)
		return self.evaluate(usage, mode)

	def evaluate(self, usage: UsageRecord, mode: str) -> AdmissionDecision:
		"""Apply the caps in priority order; a cap that is already met rejects."""
		if usage.estimated_cost_usd >= self.limits.max_daily_cost_usd:
			return AdmissionDecision(False, "daily_cost", DAILY_COST_SUGGESTION)
		if mode == "realtime" and usage.realtime_minutes >= self.limits.max_daily_realtime_minutes:
			return AdmissionDecision(False, "realtime_minutes", REALTIME_MINUTES_SUGGESTION)
		if mode == "standard" and usage.standard_minutes >= self.limits.max_daily_standard_minutes:
			return AdmissionDecision(False, "standard_minutes", STANDARD_MINUTES_SUGGESTION)
		return AdmissionDecision(True)

	async def record_session_end(self, session: Session, now: Optional[float] = None) -> tuple[float, float]:
		"""Charge a finished session to the ledger and return (minutes, cost)."""
		now = now if now is not None else time.time()
		duration_minutes = max(0.0, now - session.start_time) / 60.0
		cost = session_cost(session.mode, duration_minutes)
		record = await self.usage_dal.increment(session.user_id, session.mode, duration_minutes, cost)
		logging.info(
			"[%s] Charged %.2f min (%s, $%.4f); user %s day total $%.4f",
			session.session_id,
			duration_minutes,
			session.mode,
			cost,
			session.user_id,
			record.estimated_cost_usd,
		)
		return duration_minutes, cost
