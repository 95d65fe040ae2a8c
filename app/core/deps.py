from typing import Annotated
from fastapi import Depends, Request

from app.core.config import settings
from app.database.assignment_repository import AssignmentRepository
from app.database.profile_repository import ProfileRepository
from app.schemas.context import UserContext
from app.services.application_service import ApplicationService
from app.services.assignment_service import AssignmentLifecycle
from app.services.auth_service import AuthService
from app.services.earnings_service import EarningsAggregator
from app.services.location_service import LocationService, MapboxClient
from app.services.matching_service import MatchingService

def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} non inizializzato")
    return value

def get_assignment_repository(request: Request) -> AssignmentRepository:
    return _state(request, "assignment_repo")

def get_profile_repository(request: Request) -> ProfileRepository:
    return _state(request, "profile_repo")

def get_geocoder(request: Request) -> MapboxClient:
    return _state(request, "geocoder")

AssignmentRepoDep = Annotated[AssignmentRepository, Depends(get_assignment_repository)]
ProfileRepoDep = Annotated[ProfileRepository, Depends(get_profile_repository)]
GeocoderDep = Annotated[MapboxClient, Depends(get_geocoder)]
UserDep = Annotated[UserContext, Depends(AuthService.get_current_user)]

def get_location_service(repo: ProfileRepoDep, geocoder: GeocoderDep) -> LocationService:
    return LocationService(repo, geocoder)

LocationServiceDep = Annotated[LocationService, Depends(get_location_service)]

def get_lifecycle(repo: AssignmentRepoDep, locations: LocationServiceDep) -> AssignmentLifecycle:
    return AssignmentLifecycle(repo, locations)

def get_matching(repo: AssignmentRepoDep) -> MatchingService:
    return MatchingService(repo, default_radius_miles=settings.nearby_radius_miles)

def get_earnings(repo: AssignmentRepoDep) -> EarningsAggregator:
    return EarningsAggregator(repo)

def get_application_service(repo: ProfileRepoDep, locations: LocationServiceDep) -> ApplicationService:
    return ApplicationService(repo, locations)

LifecycleDep = Annotated[AssignmentLifecycle, Depends(get_lifecycle)]
MatchingDep = Annotated[MatchingService, Depends(get_matching)]
EarningsDep = Annotated[EarningsAggregator, Depends(get_earnings)]
ApplicationServiceDep = Annotated[ApplicationService, Depends(get_application_service)]

async def require_cleared_preserver(user: UserDep, applications: ApplicationServiceDep) -> UserContext:
    await applications.require_clearance(user.user_id)
    return user

PreserverDep = Annotated[UserContext, Depends(require_cleared_preserver)]
