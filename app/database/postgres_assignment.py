from __future__ import annotations
from datetime import datetime
import logging
import uuid
from typing import Any, Mapping, Optional

from sqlalchemy import select, update, func

from app.core.errors import NotFound
from app.database.assignment_repository import AssignmentRepository
from app.database.postgres_base import PostgresRepository
from app.database.tables import assignments, locations, users
from app.schemas.data import (
    ACTIVE_STATUSES, Assignment, AssignmentStatus, ClientSummary, Location, NearbyAssignment,
)
from app.schemas.payloads import AssignmentInsertPayload
from app.services.geo import EARTH_RADIUS_MILES, MILES_TO_METERS

logger = logging.getLogger("preserver.repository")

_LOCATION_FIELDS = ("id", "address", "optional_address_ext", "city", "state", "zipcode", "latitude", "longitude")
_CLIENT_FIELDS = ("id", "first_name", "last_name", "phone_number")


def _row_to_assignment(row: Mapping[str, Any]) -> Assignment:
    data: dict[str, Any] = {c.name: row[c.name] for c in assignments.c}
    if row.get("loc_id") is not None:
        data["location"] = Location(**{f: row[f"loc_{f}"] for f in _LOCATION_FIELDS})
    if row.get("client_id_") is not None:
        data["client"] = ClientSummary(
            id=row["client_id_"],
            **{f: row[f"client_{f}"] for f in _CLIENT_FIELDS if f != "id"},
        )
    return Assignment(**data)


def _detail_select():
    """SELECT assignments + location + client (outer join)."""
    return (
        select(
            *assignments.c,
            *[locations.c[f].label(f"loc_{f}") for f in _LOCATION_FIELDS],
            users.c.id.label("client_id_"),
            *[users.c[f].label(f"client_{f}") for f in _CLIENT_FIELDS if f != "id"],
        )
        .select_from(
            assignments
            .outerjoin(locations, assignments.c.location_id == locations.c.id)
            .outerjoin(users, assignments.c.client_id == users.c.id)
        )
    )


def _distance_meters(lat: float, lon: float):
    """Haversine lato database, in metri."""
    d_lat = func.radians(locations.c.latitude - lat)
    d_lon = func.radians(locations.c.longitude - lon)
    a = (
        func.power(func.sin(d_lat / 2), 2)
        + func.cos(func.radians(lat)) * func.cos(func.radians(locations.c.latitude))
        * func.power(func.sin(d_lon / 2), 2)
    )
    return (2 * EARTH_RADIUS_MILES * MILES_TO_METERS) * func.asin(func.sqrt(func.least(a, 1.0)))


class PostgresAssignmentRepository(PostgresRepository, AssignmentRepository):

    async def list_open(self) -> list[Assignment]:
        stmt = (
            _detail_select()
            .where(assignments.c.status == AssignmentStatus.OPEN.value)
            .order_by(assignments.c.created_at.desc())
        )
        async with self.session() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [_row_to_assignment(r) for r in rows]

    async def list_nearby(self, lat: float, lon: float, radius_meters: float) -> list[NearbyAssignment]:
        inner = (
            select(
                assignments.c.id.label("assignment_id"),
                locations.c.latitude,
                locations.c.longitude,
                assignments.c.description,
                assignments.c.base_price,
                assignments.c.tips,
                assignments.c.start_time,
                assignments.c.end_time,
                _distance_meters(lat, lon).label("distance_meters"),
            )
            .select_from(assignments.join(locations, assignments.c.location_id == locations.c.id))
            .where(assignments.c.status == AssignmentStatus.OPEN.value)
            .subquery("nearby")
        )
        stmt = (
            select(inner)
            .where(inner.c.distance_meters <= radius_meters)
            .order_by(inner.c.distance_meters, inner.c.start_time)
        )
        async with self.session() as session:
            rows = (await session.execute(stmt)).mappings().all()
        logger.debug("Nearby query", extra={"lat": lat, "lon": lon, "radius_meters": radius_meters, "rows": len(rows)})
        return [NearbyAssignment(**dict(r)) for r in rows]

    async def get_by_id(self, assignment_id: str) -> Assignment:
        stmt = _detail_select().where(assignments.c.id == assignment_id)
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            raise NotFound("Assignment", assignment_id)
        return _row_to_assignment(row)

    async def get_assigned_for_user(self, preserver_id: str) -> Optional[Assignment]:
        stmt = (
            _detail_select()
            .where(
                assignments.c.preserver_id == preserver_id,
                assignments.c.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .order_by(assignments.c.created_at.desc())
            .limit(1)
        )
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().first()
        return _row_to_assignment(row) if row is not None else None

    async def update_status(
        self,
        assignment_id: str,
        new_status: AssignmentStatus,
        *,
        expected_status: AssignmentStatus,
        expected_preserver_id: Optional[str],
        extra: Optional[dict[str, Any]] = None,
    ) -> Optional[Assignment]:
        # un solo UPDATE condizionale: chi perde la corsa non aggiorna nessuna riga
        conditions = [
            assignments.c.id == assignment_id,
            assignments.c.status == expected_status.value,
        ]
        if expected_preserver_id is None:
            conditions.append(assignments.c.preserver_id.is_(None))
        else:
            conditions.append(assignments.c.preserver_id == expected_preserver_id)

        stmt = (
            update(assignments)
            .where(*conditions)
            .values(status=new_status.value, **(extra or {}))
            .returning(*assignments.c)
        )
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().first()
            await session.commit()

        if row is None:
            logger.debug("Conditional update matched no rows",
                         extra={"assignment_id": assignment_id, "expected": expected_status.value})
            return None
        logger.debug("Assignment status updated",
                     extra={"assignment_id": assignment_id, "status": new_status.value})
        return _row_to_assignment(row)

    async def insert(self, payload: AssignmentInsertPayload) -> Assignment:
        stmt = (
            assignments.insert()
            .values(id=str(uuid.uuid4()), **payload)
            .returning(*assignments.c)
        )
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().one()
            await session.commit()
        logger.debug("Assignment inserted", extra={"assignment_id": row["id"], "status": row["status"]})
        return _row_to_assignment(row)

    async def list_completed(
        self,
        preserver_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Assignment]:
        stmt = select(*assignments.c).where(
            assignments.c.preserver_id == preserver_id,
            assignments.c.status == AssignmentStatus.COMPLETED.value,
        )
        if start is not None:
            stmt = stmt.where(assignments.c.created_at >= start)
        if end is not None:
            stmt = stmt.where(assignments.c.created_at < end)
        stmt = stmt.order_by(assignments.c.created_at.desc())

        async with self.session() as session:
            rows = (await session.execute(stmt)).mappings().all()
        return [_row_to_assignment(r) for r in rows]
