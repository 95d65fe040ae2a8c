# app/services/assignment_service.py
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from app.core.errors import ConflictError, Forbidden, InvalidTransition, ValidationError
from app.database.assignment_repository import AssignmentRepository
from app.schemas.data import Assignment, AssignmentStatus
from app.schemas.payloads import AssignmentCreate
from app.services.location_service import LocationService

logger = logging.getLogger(__name__)

S = AssignmentStatus

# transizione -> (stato richiesto, stato risultante)
TRANSITIONS: dict[str, tuple[AssignmentStatus, AssignmentStatus]] = {
    "publish": (S.PENDING, S.OPEN),
    "claim": (S.OPEN, S.ASSIGNED),
    "start": (S.ASSIGNED, S.STARTED),
    "submit": (S.STARTED, S.SUBMITTED),
    "complete": (S.SUBMITTED, S.COMPLETED),
}

NO_LONGER_AVAILABLE = "Assignment is no longer available"


class AssignmentLifecycle:
    """
    Macchina a stati degli assignment:
      Pending -> Open -> Assigned -> Started -> Submitted -> Completed
    Ogni scrittura è un update condizionale sul repository.
    """

    def __init__(self, repo: AssignmentRepository, locations: Optional[LocationService] = None) -> None:
        self.repo = repo
        self.locations = locations

    # -----------------------------
    # Letture
    # -----------------------------
    async def list_open(self) -> list[Assignment]:
        return await self.repo.list_open()

    async def get_by_id(self, assignment_id: str) -> Assignment:
        return await self.repo.get_by_id(assignment_id)

    async def get_assigned_for_user(self, preserver_id: str) -> Optional[Assignment]:
        return await self.repo.get_assigned_for_user(preserver_id)

    # -----------------------------
    # Creazione
    # -----------------------------
    async def create_assignment(self, client_id: str, data: AssignmentCreate) -> Assignment:
        if not client_id:
            raise ValidationError("client_id is required")
        if data.startTime is None or data.endTime is None:
            raise ValidationError("start_time and end_time are required")
        if data.endTime <= data.startTime:
            raise ValidationError("end_time must be after start_time")
        if data.basePrice is None:
            raise ValidationError("base_price is required")
        tips = data.tips if data.tips is not None else Decimal("0")
        if data.basePrice < 0 or tips < 0:
            raise ValidationError("base_price and tips must be non-negative")
        if self.locations is None:
            raise RuntimeError("LocationService non configurato")

        location = await self.locations.create_location(data.location)
        status = S.OPEN if data.publish else S.PENDING

        assignment = await self.repo.insert({
            "client_id": client_id,
            "location_id": location.id,
            "description": data.description,
            "base_price": data.basePrice,
            "tips": tips,
            "start_time": data.startTime,
            "end_time": data.endTime,
            "status": status.value,
        })
        logger.info("Assignment created",
                    extra={"assignment_id": assignment.id, "client_id": client_id, "status": status.value})
        return assignment.model_copy(update={"location": location})

    # -----------------------------
    # Transizioni
    # -----------------------------
    async def publish(self, assignment_id: str) -> Assignment:
        return await self._transition("publish", assignment_id)

    async def claim(self, assignment_id: str, preserver_id: str) -> Assignment:
        if not preserver_id:
            raise ValidationError("preserver_id is required")
        return await self._transition(
            "claim", assignment_id, extra={"preserver_id": preserver_id},
        )

    async def start(self, assignment_id: str, preserver_id: str) -> Assignment:
        return await self._transition("start", assignment_id, owner=preserver_id)

    async def submit_for_review(
        self, assignment_id: str, preserver_id: str, attachments: Iterable[str] = (),
    ) -> Assignment:
        return await self._transition(
            "submit", assignment_id, owner=preserver_id,
            extra={"attachments": list(attachments)},
        )

    async def complete(self, assignment_id: str) -> Assignment:
        return await self._transition("complete", assignment_id)

    async def _transition(
        self,
        name: str,
        assignment_id: str,
        *,
        owner: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> Assignment:
        expected, target = TRANSITIONS[name]
        current = await self.repo.get_by_id(assignment_id)

        if current.status != expected:
            raise InvalidTransition(name, expected.value, current.status.value)
        if owner is not None and current.preserverId != owner:
            raise Forbidden("Only the assigned preserver can perform this action")
        if name == "claim" and current.preserverId is not None:
            # Open ma già con un preserver: non si sovrascrive
            raise ConflictError(NO_LONGER_AVAILABLE)

        updated = await self.repo.update_status(
            assignment_id,
            target,
            expected_status=expected,
            expected_preserver_id=None if name == "claim" else current.preserverId,
            extra=extra,
        )
        if updated is None:
            # la riga è cambiata tra lettura e scrittura
            logger.warning("Lost race on assignment",
                           extra={"assignment_id": assignment_id, "transition": name})
            if name == "claim":
                raise ConflictError(NO_LONGER_AVAILABLE)
            raise ConflictError(f"Assignment {assignment_id} was modified concurrently")

        logger.info("Assignment transitioned",
                    extra={"assignment_id": assignment_id, "transition": name,
                           "from": expected.value, "to": target.value,
                           "preserver_id": updated.preserverId})
        return updated
