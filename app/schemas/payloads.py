from __future__ import annotations
from decimal import Decimal
from typing import Optional, TypedDict
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.data import as_utc

# ---- Payload di inserimento (nomi colonna) ----
class LocationInsertPayload(TypedDict):
    address: str
    optional_address_ext: Optional[str]
    city: str
    state: str
    zipcode: str
    latitude: float
    longitude: float

class AssignmentInsertPayload(TypedDict):
    client_id: str
    location_id: str
    description: str
    base_price: Decimal
    tips: Decimal
    start_time: datetime
    end_time: datetime
    status: str

class ApplicationInsertPayload(TypedDict):
    preserver_id: str
    experience: Optional[str]
    reason: Optional[str]
    status: str


# ---- Body delle richieste HTTP ----
class LocationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: Optional[str] = None
    optionalExt: Optional[str] = Field(None, alias="optional_address_ext")
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None

class AssignmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str = ""
    basePrice: Optional[Decimal] = Field(None, alias="base_price")
    tips: Optional[Decimal] = None
    startTime: Optional[datetime] = Field(None, alias="start_time")
    endTime: Optional[datetime] = Field(None, alias="end_time")
    location: LocationCreate
    publish: bool = False

    @field_validator("startTime", "endTime")
    @classmethod
    def _utc(cls, value):
        # orari senza offset sono UTC
        return as_utc(value)

class ApplicationCreate(BaseModel):
    location: LocationCreate
    experience: Optional[str] = None
    reason: Optional[str] = None

class SubmitRequest(BaseModel):
    attachments: list[str] = Field(default_factory=list)
