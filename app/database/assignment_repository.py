from __future__ import annotations
from datetime import datetime
from abc import ABC, abstractmethod
from typing import Any, Optional

from app.schemas.data import Assignment, AssignmentStatus, NearbyAssignment
from app.schemas.payloads import AssignmentInsertPayload

class AssignmentRepository(ABC):

    @abstractmethod
    async def list_open(self) -> list[Assignment]:
        """Assignments con status Open, più recenti per primi."""
        raise NotImplementedError

    @abstractmethod
    async def list_nearby(self, lat: float, lon: float, radius_meters: float) -> list[NearbyAssignment]:
        """Assignments Open entro radius_meters, con distance_meters calcolata dal backend."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, assignment_id: str) -> Assignment:
        """Solleva NotFound se l'assignment non esiste."""
        raise NotImplementedError

    @abstractmethod
    async def get_assigned_for_user(self, preserver_id: str) -> Optional[Assignment]:
        raise NotImplementedError

    @abstractmethod
    async def update_status(
        self,
        assignment_id: str,
        new_status: AssignmentStatus,
        *,
        expected_status: AssignmentStatus,
        expected_preserver_id: Optional[str],
        extra: Optional[dict[str, Any]] = None,
    ) -> Optional[Assignment]:
        """
        Update condizionale (compare-and-set) su status e preserver_id.
        Ritorna None se nessuna riga corrisponde.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert(self, payload: AssignmentInsertPayload) -> Assignment:
        raise NotImplementedError

    @abstractmethod
    async def list_completed(
        self,
        preserver_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Assignment]:
        """Assignments Completed del preserver con created_at in [start, end)."""
        raise NotImplementedError
