import asyncio
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from app.core.errors import NotFound
from app.schemas.data import (
    ACTIVE_STATUSES, Application, Assignment, AssignmentStatus, Location, NearbyAssignment,
    Preserver, Route, UserProfile,
)
from app.services.geo import distance_miles, miles_to_meters


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# Fake repository in memoria: update_status è un compare-and-set come lato DB
class InMemoryAssignmentRepository:
    def __init__(self):
        self.rows: dict[str, Assignment] = {}
        self.locations: dict[str, Location] = {}

    def add_location(self, lat: float, lon: float, **fields) -> Location:
        location = Location(
            id=fields.pop("id", str(uuid.uuid4())),
            address=fields.pop("address", "1 Main St"),
            city=fields.pop("city", "Springfield"),
            state=fields.pop("state", "IL"),
            zipcode=fields.pop("zipcode", "62701"),
            latitude=lat,
            longitude=lon,
            **fields,
        )
        self.locations[location.id] = location
        return location

    def add(self, *, status=AssignmentStatus.OPEN, location: Optional[Location] = None, **fields) -> Assignment:
        location = location or self.add_location(39.78, -89.65)
        data = {
            "id": str(uuid.uuid4()),
            "client_id": "client-1",
            "location_id": location.id,
            "description": "Scan documents",
            "base_price": Decimal("20.00"),
            "tips": Decimal("0"),
            "start_time": utc(2024, 3, 11, 15, 0),
            "end_time": utc(2024, 3, 11, 17, 0),
            "status": status,
            "created_at": utc(2024, 3, 1, 12, 0),
        }
        data.update(fields)
        assignment = Assignment(**data)
        self.rows[assignment.id] = assignment
        return assignment

    async def list_open(self):
        rows = [a for a in self.rows.values() if a.status == AssignmentStatus.OPEN]
        return [self._with_location(a) for a in sorted(rows, key=lambda a: a.createdAt, reverse=True)]

    async def list_nearby(self, lat, lon, radius_meters):
        result = []
        for a in self.rows.values():
            if a.status != AssignmentStatus.OPEN:
                continue
            loc = self.locations[a.locationId]
            meters = miles_to_meters(distance_miles(lat, lon, loc.latitude, loc.longitude))
            if meters <= radius_meters:
                result.append(NearbyAssignment(
                    assignment_id=a.id,
                    latitude=loc.latitude,
                    longitude=loc.longitude,
                    description=a.description,
                    base_price=a.basePrice,
                    tips=a.tips,
                    start_time=a.startTime,
                    end_time=a.endTime,
                    distance_meters=meters,
                ))
        return sorted(result, key=lambda r: r.distanceMeters)

    async def get_by_id(self, assignment_id):
        row = self.rows.get(assignment_id)
        if row is None:
            raise NotFound("Assignment", assignment_id)
        snapshot = self._with_location(row)
        # simula la latenza di rete: la risposta è già fotografata
        await asyncio.sleep(0)
        return snapshot

    async def get_assigned_for_user(self, preserver_id):
        rows = [a for a in self.rows.values()
                if a.preserverId == preserver_id and a.status in ACTIVE_STATUSES]
        if not rows:
            return None
        return self._with_location(max(rows, key=lambda a: a.createdAt))

    async def update_status(self, assignment_id, new_status, *, expected_status, expected_preserver_id, extra=None):
        row = self.rows.get(assignment_id)
        if row is None or row.status != expected_status or row.preserverId != expected_preserver_id:
            return None
        update = {"status": new_status}
        for key, value in (extra or {}).items():
            update[{"preserver_id": "preserverId"}.get(key, key)] = value
        updated = row.model_copy(update=update)
        self.rows[assignment_id] = updated
        return updated

    async def insert(self, payload):
        return self.add(location=self.locations.get(payload["location_id"]), created_at=datetime.now(timezone.utc), **payload)

    async def list_completed(self, preserver_id, start=None, end=None):
        rows = [
            a for a in self.rows.values()
            if a.preserverId == preserver_id
            and a.status == AssignmentStatus.COMPLETED
            and (start is None or a.createdAt >= start)
            and (end is None or a.createdAt < end)
        ]
        return sorted(rows, key=lambda a: a.createdAt, reverse=True)

    def _with_location(self, row: Assignment) -> Assignment:
        return row.model_copy(update={"location": self.locations.get(row.locationId)})


class InMemoryProfileRepository:
    def __init__(self):
        self.locations: dict[str, Location] = {}
        self.users: dict[str, UserProfile] = {}
        self.user_locations: dict[str, str] = {}
        self.preservers: dict[str, Preserver] = {}
        self.applications: dict[str, Application] = {}

    def add_user(self, user_id: str, **fields) -> UserProfile:
        user = UserProfile(id=user_id, **fields)
        self.users[user_id] = user
        return user

    def add_cleared_preserver(self, preserver_id: str) -> None:
        self.add_user(preserver_id, user_type="preserver")
        self.preservers[preserver_id] = Preserver(id=preserver_id, clearance=True)
        self.applications[preserver_id] = Application(preserver_id=preserver_id, status="approved")

    async def insert_location(self, payload):
        location = Location(id=str(uuid.uuid4()), **payload)
        self.locations[location.id] = location
        return location

    async def get_location(self, location_id):
        if location_id not in self.locations:
            raise NotFound("Location", location_id)
        return self.locations[location_id]

    async def get_user(self, user_id):
        if user_id not in self.users:
            raise NotFound("User", user_id)
        return self.users[user_id]

    async def set_user_location(self, user_id, location_id):
        if user_id not in self.users:
            raise NotFound("User", user_id)
        self.user_locations[user_id] = location_id

    async def insert_preserver(self, preserver_id, *, clearance=False):
        self.preservers[preserver_id] = Preserver(id=preserver_id, clearance=clearance)
        return self.preservers[preserver_id]

    async def get_preserver(self, preserver_id):
        return self.preservers.get(preserver_id)

    async def insert_application(self, payload):
        self.applications[payload["preserver_id"]] = Application(**payload)
        return self.applications[payload["preserver_id"]]

    async def get_application(self, preserver_id):
        return self.applications.get(preserver_id)


class FakeGeocoder:
    def __init__(self, coordinates=(39.7817, -89.6501), fail_with: Optional[Exception] = None):
        self.coordinates = coordinates
        self.fail_with = fail_with
        self.addresses: list[str] = []

    async def geocode(self, address):
        self.addresses.append(address)
        if self.fail_with is not None:
            raise self.fail_with
        return self.coordinates

    async def route(self, lat1, lon1, lat2, lon2):
        return Route(distance_miles=distance_miles(lat1, lon1, lat2, lon2) * 1.3, duration_minutes=12.0)

    def close(self):
        pass


@pytest.fixture
def assignment_repo():
    return InMemoryAssignmentRepository()

@pytest.fixture
def profile_repo():
    return InMemoryProfileRepository()

@pytest.fixture
def geocoder():
    return FakeGeocoder()
