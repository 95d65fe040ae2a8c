# app/services/matching_service.py
from __future__ import annotations
import logging
import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import ValidationError
from app.database.assignment_repository import AssignmentRepository
from app.schemas.data import NearbyAssignment
from app.services.geo import distance_miles, miles_to_meters

logger = logging.getLogger(__name__)

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def local_weekday(moment: datetime, tz: tzinfo) -> int:
    """Giorno della settimana nel fuso del device, domenica = 0 ... sabato = 6."""
    return moment.astimezone(tz).isoweekday() % 7


_OFFSET = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def resolve_timezone(name: str) -> tzinfo:
    """Nome IANA (es. "America/Chicago") oppure offset fisso del device (es. "-05:00")."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    match = _OFFSET.match(name)
    if match:
        sign = -1 if match.group(1) == "-" else 1
        try:
            return timezone(sign * timedelta(hours=int(match.group(2)), minutes=int(match.group(3))))
        except ValueError as exc:
            raise ValidationError(f"Invalid UTC offset: {name}") from exc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}") from exc


def _normalize_days(day_filter: Optional[Iterable[int]]) -> Optional[frozenset[int]]:
    if day_filter is None:
        return None
    days = frozenset(day_filter)
    if any(not isinstance(d, int) or d < 0 or d > 6 for d in days):
        raise ValidationError("day filter values must be integers between 0 (Sunday) and 6 (Saturday)")
    return days


class MatchingService:
    def __init__(self, repo: AssignmentRepository, default_radius_miles: float = 25.0) -> None:
        self.repo = repo
        self.default_radius_miles = default_radius_miles

    async def find_nearby(
        self,
        device_lat: float,
        device_lon: float,
        radius_miles: Optional[float] = None,
        day_filter: Optional[Iterable[int]] = None,
        tz: tzinfo = timezone.utc,
    ) -> list[NearbyAssignment]:
        radius = self.default_radius_miles if radius_miles is None else radius_miles
        if radius < 0:
            raise ValidationError("radius_miles must be non-negative")
        days = _normalize_days(day_filter)

        rows = await self.repo.list_nearby(device_lat, device_lon, miles_to_meters(radius))

        matches: list[NearbyAssignment] = []
        for row in rows:
            # la distanza del backend non basta: si ricalcola con la posizione attuale
            miles = distance_miles(device_lat, device_lon, row.latitude, row.longitude)
            if miles > radius:
                continue
            if days is not None:
                if row.startTime is None or local_weekday(row.startTime, tz) not in days:
                    continue
            matches.append(row.model_copy(update={"distanceMiles": miles}))

        matches.sort(key=lambda a: (a.distanceMiles, a.startTime or _LATEST))
        logger.info("Nearby assignments matched",
                    extra={"radius_miles": radius, "candidates": len(rows), "matches": len(matches)})
        return matches
