# app/routers/v1/earnings.py
from datetime import datetime
from typing import Optional
from fastapi import APIRouter

from app.core.deps import EarningsDep, UserDep
from app.core.errors import ValidationError
from app.schemas.data import Period
from app.services.earnings_service import EarningsAggregator
from app.services.matching_service import resolve_timezone

router = APIRouter()

@router.get("/earnings")
async def earnings_report(
    user: UserDep,
    earnings: EarningsDep,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    tz: str = "UTC",
):
    if (start is None) != (end is None):
        raise ValidationError("start and end must be given together")
    period = Period(start=start, end=end) if start is not None else None
    entries = await earnings.entries(user.user_id, period)
    return {
        "entries": entries,
        **EarningsAggregator.report(entries, resolve_timezone(tz)),
    }
