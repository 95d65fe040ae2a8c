from __future__ import annotations
import logging
import uuid
from typing import Optional

from sqlalchemy import select, update

from app.core.errors import NotFound
from app.database.postgres_base import PostgresRepository
from app.database.profile_repository import ProfileRepository
from app.database.tables import applications, locations, preservers, users
from app.schemas.data import Application, Location, Preserver, UserProfile
from app.schemas.payloads import ApplicationInsertPayload, LocationInsertPayload

logger = logging.getLogger("preserver.repository")

class PostgresProfileRepository(PostgresRepository, ProfileRepository):

    # 1) locations (immutabili dopo il geocoding)
    async def insert_location(self, payload: LocationInsertPayload) -> Location:
        stmt = locations.insert().values(id=str(uuid.uuid4()), **payload).returning(*locations.c)
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().one()
            await session.commit()
        logger.debug("Location inserted", extra={"location_id": row["id"], "city": row["city"]})
        return Location(**dict(row))

    async def get_location(self, location_id: str) -> Location:
        async with self.session() as session:
            row = (await session.execute(
                select(*locations.c).where(locations.c.id == location_id)
            )).mappings().first()
        if row is None:
            raise NotFound("Location", location_id)
        return Location(**dict(row))

    # 2) users
    async def get_user(self, user_id: str) -> UserProfile:
        async with self.session() as session:
            row = (await session.execute(
                select(*users.c).where(users.c.id == user_id)
            )).mappings().first()
        if row is None:
            raise NotFound("User", user_id)
        return UserProfile(**dict(row))

    async def set_user_location(self, user_id: str, location_id: str) -> None:
        stmt = update(users).where(users.c.id == user_id).values(location_id=location_id)
        async with self.session() as session:
            result = await session.execute(stmt)
            await session.commit()
        if result.rowcount == 0:
            raise NotFound("User", user_id)
        logger.debug("Linked user↔location", extra={"user_id": user_id, "location_id": location_id})

    # 3) preservers
    async def insert_preserver(self, preserver_id: str, *, clearance: bool = False) -> Preserver:
        stmt = preservers.insert().values(id=preserver_id, clearance=clearance).returning(*preservers.c)
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().one()
            await session.commit()
        return Preserver(**dict(row))

    async def get_preserver(self, preserver_id: str) -> Optional[Preserver]:
        async with self.session() as session:
            row = (await session.execute(
                select(*preservers.c).where(preservers.c.id == preserver_id)
            )).mappings().first()
        return Preserver(**dict(row)) if row is not None else None

    # 4) applications (una per preserver)
    async def insert_application(self, payload: ApplicationInsertPayload) -> Application:
        stmt = applications.insert().values(id=str(uuid.uuid4()), **payload).returning(*applications.c)
        async with self.session() as session:
            row = (await session.execute(stmt)).mappings().one()
            await session.commit()
        logger.debug("Application inserted", extra={"preserver_id": row["preserver_id"]})
        return Application(**dict(row))

    async def get_application(self, preserver_id: str) -> Optional[Application]:
        async with self.session() as session:
            row = (await session.execute(
                select(*applications.c).where(applications.c.preserver_id == preserver_id)
            )).mappings().first()
        return Application(**dict(row)) if row is not None else None
