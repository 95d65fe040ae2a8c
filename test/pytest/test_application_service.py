import asyncio

import pytest

from app.core.errors import ConflictError, Forbidden
from app.schemas.data import Application, ApplicationStatus, Preserver
from app.schemas.payloads import ApplicationCreate, LocationCreate
from app.services.application_service import ApplicationService
from app.services.location_service import LocationService


def service(profile_repo, geocoder):
    return ApplicationService(profile_repo, LocationService(profile_repo, geocoder))

BODY = ApplicationCreate(
    location=LocationCreate(address="9 Elm St", city="Peoria", state="IL", zipcode="61602"),
    experience="Two years archiving",
    reason="Flexible hours",
)


@pytest.mark.asyncio
async def test_apply_creates_location_preserver_and_pending_application(profile_repo, geocoder):
    profile_repo.add_user("p1", user_type="preserver")

    application = await service(profile_repo, geocoder).apply("p1", BODY)

    assert application.status == ApplicationStatus.PENDING
    assert application.preserverId == "p1"
    assert profile_repo.preservers["p1"].clearance is False
    assert profile_repo.user_locations["p1"] in profile_repo.locations


@pytest.mark.asyncio
async def test_apply_twice_conflicts(profile_repo, geocoder):
    profile_repo.add_user("p1")
    svc = service(profile_repo, geocoder)
    await svc.apply("p1", BODY)
    with pytest.raises(ConflictError):
        await svc.apply("p1", BODY)


@pytest.mark.asyncio
@pytest.mark.parametrize("clearance,status,approved", [
    (True, ApplicationStatus.APPROVED, True),
    (False, ApplicationStatus.APPROVED, False),
    (True, ApplicationStatus.PENDING, False),
    (True, ApplicationStatus.REJECTED, False),
])
async def test_check_approval(profile_repo, geocoder, clearance, status, approved):
    profile_repo.preservers["p1"] = Preserver(id="p1", clearance=clearance)
    profile_repo.applications["p1"] = Application(preserver_id="p1", status=status)

    svc = service(profile_repo, geocoder)
    assert await svc.check_approval("p1") is approved
    if not approved:
        with pytest.raises(Forbidden):
            await svc.require_clearance("p1")


@pytest.mark.asyncio
async def test_unknown_preserver_is_not_approved(profile_repo, geocoder):
    svc = service(profile_repo, geocoder)
    assert await svc.check_approval("ghost") is False
    with pytest.raises(Forbidden):
        await svc.require_clearance("ghost")


@pytest.mark.asyncio
async def test_watch_approval_stops_once_approved(profile_repo, geocoder):
    profile_repo.preservers["p1"] = Preserver(id="p1", clearance=True)
    profile_repo.applications["p1"] = Application(preserver_id="p1", status=ApplicationStatus.PENDING)
    watcher = service(profile_repo, geocoder).watch_approval("p1", 0.01)

    watcher.start()
    await asyncio.sleep(0.03)
    assert watcher.running
    profile_repo.applications["p1"] = Application(preserver_id="p1", status=ApplicationStatus.APPROVED)

    assert await asyncio.wait_for(watcher.wait(), timeout=1) is True
    await watcher.stop()
    assert not watcher.running
