from __future__ import annotations
from decimal import Decimal
from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AssignmentStatus(str, Enum):
    PENDING = "Pending"
    OPEN = "Open"
    ASSIGNED = "Assigned"
    STARTED = "Started"
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"


# stati in cui l'assignment non ha ancora un preserver
UNCLAIMED_STATUSES = frozenset({AssignmentStatus.PENDING, AssignmentStatus.OPEN})
ACTIVE_STATUSES = (AssignmentStatus.ASSIGNED, AssignmentStatus.STARTED)


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Location(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    address: str
    optionalExt: Optional[str] = Field(None, alias="optional_address_ext")
    city: str
    state: str
    zipcode: str
    latitude: float
    longitude: float


class ClientSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    firstName: Optional[str] = Field(None, alias="first_name")
    lastName: Optional[str] = Field(None, alias="last_name")
    phoneNumber: Optional[str] = Field(None, alias="phone_number")


class Assignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    clientId: str = Field(..., alias="client_id")
    preserverId: Optional[str] = Field(None, alias="preserver_id")
    locationId: str = Field(..., alias="location_id")
    description: str = ""
    basePrice: Decimal = Field(Decimal("0"), alias="base_price")
    tips: Decimal = Decimal("0")
    startTime: Optional[datetime] = Field(None, alias="start_time")
    endTime: Optional[datetime] = Field(None, alias="end_time")
    status: AssignmentStatus
    createdAt: datetime = Field(..., alias="created_at")
    attachments: list[str] = Field(default_factory=list)
    location: Optional[Location] = None
    client: Optional[ClientSummary] = None

    @field_validator("tips", "basePrice", mode="before")
    @classmethod
    def _money_default(cls, value):
        return Decimal("0") if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, value):
        return "" if value is None else value

    @field_validator("attachments", mode="before")
    @classmethod
    def _attachments_default(cls, value):
        return [] if value is None else value

    @field_validator("startTime", "endTime", "createdAt")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)

    @property
    def total(self) -> Decimal:
        return self.basePrice + self.tips


class NearbyAssignment(BaseModel):
    """Riga restituita dalla query di prossimità."""
    model_config = ConfigDict(populate_by_name=True)

    assignmentId: str = Field(..., alias="assignment_id")
    latitude: float
    longitude: float
    description: str = ""
    basePrice: Decimal = Field(Decimal("0"), alias="base_price")
    tips: Decimal = Decimal("0")
    startTime: Optional[datetime] = Field(None, alias="start_time")
    endTime: Optional[datetime] = Field(None, alias="end_time")
    distanceMeters: Optional[float] = Field(None, alias="distance_meters")
    distanceMiles: Optional[float] = Field(None, alias="distance_miles")

    @field_validator("tips", "basePrice", mode="before")
    @classmethod
    def _money_default(cls, value):
        return Decimal("0") if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, value):
        return "" if value is None else value

    @field_validator("startTime", "endTime")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)


class Preserver(BaseModel):
    id: str
    clearance: bool = False


class Application(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    preserverId: str = Field(..., alias="preserver_id")
    experience: Optional[str] = None
    reason: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.PENDING


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    firstName: Optional[str] = Field(None, alias="first_name")
    lastName: Optional[str] = Field(None, alias="last_name")
    email: Optional[str] = None
    phoneNumber: Optional[str] = Field(None, alias="phone_number")
    profilePicture: Optional[str] = Field(None, alias="profile_picture")
    userType: Optional[str] = Field(None, alias="user_type")
    createdAt: Optional[datetime] = Field(None, alias="created_at")


class Route(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    distanceMiles: float = Field(..., alias="distance_miles")
    durationMinutes: float = Field(..., alias="duration_minutes")


class Period(BaseModel):
    """Intervallo semi-aperto [start, end)."""
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end


class EarningsEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    date: datetime
    base: Decimal
    tips: Decimal
    total: Decimal
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def durationSeconds(self) -> float:
        if self.start is None or self.end is None:
            return 0.0
        return (self.end - self.start).total_seconds()


class EarningsSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    totalBase: Decimal = Field(Decimal("0"), alias="total_base")
    totalTips: Decimal = Field(Decimal("0"), alias="total_tips")
    total: Decimal = Decimal("0")
    totalAssignments: int = Field(0, alias="total_assignments")
    totalDurationSeconds: float = Field(0.0, alias="total_duration_seconds")
