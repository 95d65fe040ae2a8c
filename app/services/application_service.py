# app/services/application_service.py
from __future__ import annotations
import logging

from app.core.errors import ConflictError, Forbidden, ValidationError
from app.database.profile_repository import ProfileRepository
from app.schemas.data import Application, ApplicationStatus
from app.schemas.payloads import ApplicationCreate
from app.services.location_service import LocationService
from app.services.poller import PeriodicTask

logger = logging.getLogger(__name__)

class ApplicationService:
    """Candidatura del preserver e controllo della clearance."""

    def __init__(self, repo: ProfileRepository, locations: LocationService) -> None:
        self.repo = repo
        self.locations = locations

    async def apply(self, preserver_id: str, data: ApplicationCreate) -> Application:
        if not preserver_id:
            raise ValidationError("preserver_id is required")
        if await self.repo.get_application(preserver_id) is not None:
            raise ConflictError("Application already submitted")

        # 1) location di casa, 2) preserver senza clearance, 3) candidatura pending
        location = await self.locations.create_location(data.location)
        await self.repo.set_user_location(preserver_id, location.id)
        if await self.repo.get_preserver(preserver_id) is None:
            await self.repo.insert_preserver(preserver_id, clearance=False)

        application = await self.repo.insert_application({
            "preserver_id": preserver_id,
            "experience": data.experience,
            "reason": data.reason,
            "status": ApplicationStatus.PENDING.value,
        })
        logger.info("Preserver application submitted", extra={"preserver_id": preserver_id})
        return application

    async def check_approval(self, preserver_id: str) -> bool:
        preserver = await self.repo.get_preserver(preserver_id)
        application = await self.repo.get_application(preserver_id)
        approved = bool(
            preserver is not None
            and preserver.clearance
            and application is not None
            and application.status == ApplicationStatus.APPROVED
        )
        logger.debug("Approval check", extra={"preserver_id": preserver_id, "approved": approved})
        return approved

    def watch_approval(self, preserver_id: str, interval: float) -> PeriodicTask[bool]:
        """Task che ricontrolla l'approvazione ogni `interval` secondi e si ferma quando arriva."""
        return PeriodicTask(
            lambda: self.check_approval(preserver_id),
            interval,
            name=f"approval-watch:{preserver_id}",
            until=bool,
        )

    async def require_clearance(self, preserver_id: str) -> None:
        if not await self.check_approval(preserver_id):
            raise Forbidden("Preserver has not been cleared for work")
