# app/services/earnings_service.py
from __future__ import annotations
import logging
from collections import OrderedDict
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from app.core.errors import ValidationError
from app.database.assignment_repository import AssignmentRepository
from app.schemas.data import Assignment, AssignmentStatus, EarningsEntry, EarningsSummary, Period

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def to_entry(assignment: Assignment) -> EarningsEntry:
    return EarningsEntry(
        id=assignment.id,
        date=assignment.createdAt,
        base=assignment.basePrice,
        tips=assignment.tips,
        total=assignment.total,
        start=assignment.startTime,
        end=assignment.endTime,
    )


def summarize_entries(entries: Iterable[EarningsEntry]) -> EarningsSummary:
    total_base = ZERO
    total_tips = ZERO
    count = 0
    seconds = 0.0
    for e in entries:
        total_base += e.base
        total_tips += e.tips
        seconds += e.durationSeconds
        count += 1
    return EarningsSummary(
        totalBase=total_base,
        totalTips=total_tips,
        total=total_base + total_tips,
        totalAssignments=count,
        totalDurationSeconds=seconds,
    )


def group_by_day(entries: Iterable[EarningsEntry], tz: tzinfo = timezone.utc) -> "OrderedDict[date, EarningsSummary]":
    return _group(entries, lambda e: e.date.astimezone(tz).date())


def group_by_month(entries: Iterable[EarningsEntry], tz: tzinfo = timezone.utc) -> "OrderedDict[str, EarningsSummary]":
    return _group(entries, lambda e: e.date.astimezone(tz).strftime("%Y-%m"))


def _group(entries, key) -> OrderedDict:
    buckets: dict = {}
    for e in entries:
        buckets.setdefault(key(e), []).append(e)
    return OrderedDict((k, summarize_entries(buckets[k])) for k in sorted(buckets))


def weekday_totals(entries: Iterable[EarningsEntry], tz: tzinfo = timezone.utc) -> list[Decimal]:
    """Totale (base + tips) per giorno della settimana, domenica = 0."""
    totals = [ZERO] * 7
    for e in entries:
        totals[e.date.astimezone(tz).isoweekday() % 7] += e.total
    return totals


def today_total(entries: Iterable[EarningsEntry], tz: tzinfo = timezone.utc, now: Optional[datetime] = None) -> Decimal:
    today = (now or datetime.now(timezone.utc)).astimezone(tz).date()
    return sum((e.total for e in entries if e.date.astimezone(tz).date() == today), ZERO)


class EarningsAggregator:
    def __init__(self, repo: AssignmentRepository) -> None:
        self.repo = repo

    async def entries(self, preserver_id: str, period: Optional[Period] = None) -> list[EarningsEntry]:
        if period is not None and period.end <= period.start:
            raise ValidationError("period end must be after period start")
        rows = await self.repo.list_completed(
            preserver_id,
            period.start if period else None,
            period.end if period else None,
        )
        # il repository filtra già; qui si ribadisce stato, proprietario e intervallo semi-aperto
        return [
            to_entry(a) for a in rows
            if a.status == AssignmentStatus.COMPLETED
            and a.preserverId == preserver_id
            and (period is None or period.contains(a.createdAt))
        ]

    async def summarize(self, preserver_id: str, period: Optional[Period] = None) -> EarningsSummary:
        entries = await self.entries(preserver_id, period)
        summary = summarize_entries(entries)
        logger.info("Earnings summarized",
                    extra={"preserver_id": preserver_id, "assignments": summary.totalAssignments})
        return summary

    @staticmethod
    def report(entries: Sequence[EarningsEntry], tz: tzinfo = timezone.utc, now: Optional[datetime] = None) -> dict:
        return {
            "summary": summarize_entries(entries),
            "today": today_total(entries, tz, now),
            "by_weekday": weekday_totals(entries, tz),
            "by_day": {k.isoformat(): v for k, v in group_by_day(entries, tz).items()},
            "by_month": dict(group_by_month(entries, tz)),
        }
