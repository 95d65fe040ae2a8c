from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.data import Application, Location, Preserver, UserProfile
from app.schemas.payloads import ApplicationInsertPayload, LocationInsertPayload

class ProfileRepository(ABC):

    @abstractmethod
    async def insert_location(self, payload: LocationInsertPayload) -> Location:
        raise NotImplementedError

    @abstractmethod
    async def get_location(self, location_id: str) -> Location:
        raise NotImplementedError

    @abstractmethod
    async def get_user(self, user_id: str) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    async def set_user_location(self, user_id: str, location_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def insert_preserver(self, preserver_id: str, *, clearance: bool = False) -> Preserver:
        raise NotImplementedError

    @abstractmethod
    async def get_preserver(self, preserver_id: str) -> Optional[Preserver]:
        raise NotImplementedError

    @abstractmethod
    async def insert_application(self, payload: ApplicationInsertPayload) -> Application:
        raise NotImplementedError

    @abstractmethod
    async def get_application(self, preserver_id: str) -> Optional[Application]:
        raise NotImplementedError
