from __future__ import annotations

import calendar
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Deque, Dict, List, Optional

from ..constants import Limits
from ..models import (
    BudgetProjection,
    BudgetStatus,
    DailyCost,
    ProviderComparison,
    UsageRecord,
    UsageStats,
    UsageWindow,
)
from ..utils import round_half_up, utc_now


@dataclass
class _ProviderTotals:
    total_cost: int = 0
    total_time: int = 0
    total_requests: int = 0
    successful_requests: int = 0


class CostTracker:
    """
    In-memory usage history with cost aggregation.

    History is process-lifetime only and capped at ``max_history`` records;
    the oldest records are evicted first.
    """

    def __init__(
        self,
        max_history: int = Limits.MAX_USAGE_HISTORY,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.max_history = max_history
        self._clock = clock or utc_now
        self._history: Deque[UsageRecord] = deque(maxlen=max_history)

    def __len__(self) -> int:
        return len(self._history)

    def record_usage(self, record: UsageRecord) -> UsageRecord:
        stamped = replace(record, timestamp=self._clock())
        self._history.append(stamped)
        return stamped

    def get_usage_stats(self, window: UsageWindow = "today") -> UsageStats:
        now = self._clock()
        cutoff = self._cutoff(now, window)
        records = [r for r in self._history if r.timestamp is not None and r.timestamp >= cutoff]
        if not records:
            return UsageStats()

        successful = 0
        total_cost = 0
        total_tokens = 0
        total_time = 0
        cost_by_provider: Dict[str, int] = {}
        cost_by_analysis_type: Dict[str, int] = {}
        for record in records:
            if record.success:
                successful += 1
            total_cost += record.cost_cents
            total_tokens += record.tokens_used
            total_time += record.processing_time
            cost_by_provider[record.provider] = cost_by_provider.get(record.provider, 0) + record.cost_cents
            cost_by_analysis_type[record.analysis_type] = (
                cost_by_analysis_type.get(record.analysis_type, 0) + record.cost_cents
            )

        return UsageStats(
            total_requests=len(records),
            successful_requests=successful,
            failed_requests=len(records) - successful,
            total_cost_cents=total_cost,
            total_tokens_used=total_tokens,
            average_processing_time=round_half_up(total_time / len(records)),
            cost_by_provider=cost_by_provider,
            cost_by_analysis_type=cost_by_analysis_type,
        )

    def get_recent_usage(self, limit: int = 50) -> List[UsageRecord]:
        """Most recent records first."""
        if limit <= 0:
            return []
        return list(reversed(list(self._history)[-limit:]))

    def get_cost_breakdown(self, days: int = 30) -> List[DailyCost]:
        """One entry per UTC day for the trailing ``days`` days, zero days included."""
        today = self._clock().date()
        totals: Dict[str, List[int]] = {}
        for offset in range(days):
            totals[(today - timedelta(days=offset)).isoformat()] = [0, 0]

        for record in self._history:
            if record.timestamp is None:
                continue
            bucket = totals.get(record.timestamp.date().isoformat())
            if bucket is not None:
                bucket[0] += record.cost_cents
                bucket[1] += 1

        return [
            DailyCost(date=date, cost_cents=cost, requests=requests)
            for date, (cost, requests) in sorted(totals.items())
        ]

    def estimate_monthly_budget(self, recent_days: int = 7) -> BudgetProjection:
        if recent_days <= 0:
            return BudgetProjection(0, 0, 0)
        total = sum(day.cost_cents for day in self.get_cost_breakdown(recent_days))
        daily_average = total / recent_days
        return BudgetProjection(
            estimated_monthly_cost_cents=round_half_up(daily_average * 30),
            current_daily_average=round_half_up(daily_average),
            projected_daily_usage=round_half_up(daily_average),
        )

    def check_budget_limits(self, daily_limit_cents: int, monthly_limit_cents: int) -> BudgetStatus:
        daily_used = self.get_usage_stats("today").total_cost_cents
        monthly_used = self.get_usage_stats("month").total_cost_cents
        return BudgetStatus(
            within_daily_limit=daily_used <= daily_limit_cents,
            within_monthly_limit=monthly_used <= monthly_limit_cents,
            daily_used=daily_used,
            monthly_used=monthly_used,
        )

    def get_provider_comparison(self) -> List[ProviderComparison]:
        """Per-provider averages across the whole retained history."""
        by_provider: Dict[str, _ProviderTotals] = {}
        for record in self._history:
            totals = by_provider.setdefault(record.provider, _ProviderTotals())
            totals.total_cost += record.cost_cents
            totals.total_time += record.processing_time
            totals.total_requests += 1
            if record.success:
                totals.successful_requests += 1

        return [
            ProviderComparison(
                provider=provider,
                avg_cost_cents=round_half_up(totals.total_cost / totals.total_requests),
                avg_processing_time=round_half_up(totals.total_time / totals.total_requests),
                success_rate=round_half_up(totals.successful_requests / totals.total_requests * 100),
                total_requests=totals.total_requests,
            )
            for provider, totals in by_provider.items()
        ]

    def clear_history(self) -> None:
        self._history.clear()

    def export_usage_data(self) -> List[UsageRecord]:
        return list(self._history)

    @staticmethod
    def _cutoff(now: datetime, window: UsageWindow) -> datetime:
        if window == "today":
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        if window == "week":
            return now - timedelta(days=7)
        if window == "month":
            return _months_back(now, 1)
        raise ValueError(f"Unknown usage window: {window}")


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
