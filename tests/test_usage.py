"""Tests for the usage ledger and admission rules."""

from __future__ import annotations

import asyncio

import pytest

from dal.usage_dal import UsageDAL, usage_day
from models.usage_models import UsageLimits, UsageRecord
from services.relay.usage_governor import (
    DAILY_COST_SUGGESTION,
    REALTIME_MINUTES_SUGGESTION,
    UsageGovernor,
    session_cost,
)


def _record(**kwargs) -> UsageRecord:
    return UsageRecord(user_id="u", usage_date="2024-01-01", **kwargs)


class TestEvaluate:
    def setup_method(self) -> None:
        self.governor = UsageGovernor(usage_dal=None, limits=UsageLimits())

    def test_fresh_user_is_admitted(self) -> None:
        decision = self.governor.evaluate(_record(), "realtime")
        assert decision.allowed
        assert decision.reason is None

    def test_realtime_cap_met_rejects(self) -> None:
        decision = self.governor.evaluate(_record(realtime_minutes=10.0), "realtime")
        assert not decision.allowed
        assert decision.reason == "realtime_minutes"
        assert decision.suggestion == REALTIME_MINUTES_SUGGESTION

    def test_realtime_cap_does_not_block_standard(self) -> None:
        assert self.governor.evaluate(_record(realtime_minutes=10.0), "standard").allowed

    def test_standard_cap(self) -> None:
        decision = self.governor.evaluate(_record(standard_minutes=60.0), "standard")
        assert decision.reason == "standard_minutes"

    def test_cost_checked_first(self) -> None:
        decision = self.governor.evaluate(_record(realtime_minutes=12.0, estimated_cost_usd=5.0), "realtime")
        assert decision.reason == "daily_cost"
        assert decision.suggestion == DAILY_COST_SUGGESTION

    def test_session_cost_rates(self) -> None:
        assert session_cost("realtime", 10) == pytest.approx(3.0)
        assert session_cost("standard", 10) == pytest.approx(0.3)


class TestUsageDAL:
    async def test_missing_row_reads_as_zero(self, usage_dal: UsageDAL) -> None:
        usage = await usage_dal.get_usage("nobody")
        assert usage.realtime_minutes == 0
        assert usage.estimated_cost_usd == 0
        assert usage.usage_date == usage_day()

    async def test_increment_is_additive(self, usage_dal: UsageDAL) -> None:
        await usage_dal.increment("u1", "standard", 2.0, 0.06)
        record = await usage_dal.increment("u1", "standard", 3.0, 0.09)
        assert record.standard_minutes == pytest.approx(5.0)
        assert record.realtime_minutes == 0
        assert record.estimated_cost_usd == pytest.approx(0.15)

    async def test_negative_values_never_decrease(self, usage_dal: UsageDAL) -> None:
        await usage_dal.increment("u1", "realtime", 1.0, 0.3)
        record = await usage_dal.increment("u1", "realtime", -5.0, -1.0)
        assert record.realtime_minutes == pytest.approx(1.0)
        assert record.estimated_cost_usd == pytest.approx(0.3)

    async def test_rejects_unknown_mode(self, usage_dal: UsageDAL) -> None:
        with pytest.raises(ValueError):
            await usage_dal.increment("u1", "turbo", 1.0, 0.1)

    async def test_days_are_separate(self, usage_dal: UsageDAL) -> None:
        await usage_dal.increment("u1", "standard", 1.0, 0.03, day="2024-01-01")
        await usage_dal.increment("u1", "standard", 4.0, 0.12, day="2024-01-02")
        assert (await usage_dal.get_usage("u1", "2024-01-01")).standard_minutes == pytest.approx(1.0)
        assert (await usage_dal.get_usage("u1", "2024-01-02")).standard_minutes == pytest.approx(4.0)

    async def test_concurrent_increments_do_not_interfere(self, usage_dal: UsageDAL) -> None:
        users = [f"user-{i}" for i in range(5)]
        await asyncio.gather(
            *(usage_dal.increment(user, "standard", 1.0, 0.03) for user in users for _ in range(4))
        )
        for user in users:
            usage = await usage_dal.get_usage(user)
            assert usage.standard_minutes == pytest.approx(4.0)
            assert usage.estimated_cost_usd == pytest.approx(0.12)


class TestGovernorWithLedger:
    async def test_realtime_cap_reached_from_ledger(self, usage_dal: UsageDAL) -> None:
        governor = UsageGovernor(usage_dal)
        await usage_dal.increment("u1", "realtime", 10.0, 3.0)

        decision = await governor.check_usage_limits("u1", "realtime")

        assert not decision.allowed
        assert decision.reason == "realtime_minutes"
