# app/routers/v1/assignments.py
from typing import Optional
from fastapi import APIRouter, Query, status

from app.core.deps import ApplicationServiceDep, LifecycleDep, LocationServiceDep, MatchingDep, PreserverDep, UserDep
from app.core.errors import Forbidden, ValidationError
from app.schemas.data import Assignment, AssignmentStatus, NearbyAssignment, Route
from app.schemas.payloads import AssignmentCreate, SubmitRequest
from app.services.auth_service import is_client
from app.services.matching_service import resolve_timezone

router = APIRouter()

@router.get("/assignments/open", response_model=list[Assignment])
async def list_open(user: PreserverDep, lifecycle: LifecycleDep):
    return await lifecycle.list_open()

@router.get("/assignments/nearby", response_model=list[NearbyAssignment])
async def list_nearby(
    user: PreserverDep,
    matching: MatchingDep,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_miles: Optional[float] = Query(None, ge=0),
    days: Optional[list[int]] = Query(None),
    tz: str = "UTC",
):
    return await matching.find_nearby(lat, lon, radius_miles, days, resolve_timezone(tz))

@router.get("/assignments/current", response_model=Optional[Assignment])
async def current_assignment(user: PreserverDep, lifecycle: LifecycleDep):
    return await lifecycle.get_assigned_for_user(user.user_id)

@router.get("/assignments/{assignment_id}", response_model=Assignment)
async def get_assignment(
    assignment_id: str, user: UserDep, lifecycle: LifecycleDep, applications: ApplicationServiceDep,
):
    assignment = await lifecycle.get_by_id(assignment_id)
    if user.user_id in (assignment.clientId, assignment.preserverId):
        return assignment
    # gli altri vedono solo assignment Open, e solo se hanno la clearance
    await applications.require_clearance(user.user_id)
    if assignment.status != AssignmentStatus.OPEN:
        raise Forbidden("Assignment is not visible to this user")
    return assignment

@router.post("/assignments", response_model=Assignment, status_code=status.HTTP_201_CREATED)
async def create_assignment(body: AssignmentCreate, user: UserDep, lifecycle: LifecycleDep):
    if not is_client(user.role):
        raise Forbidden("Only clients can create assignments")
    return await lifecycle.create_assignment(user.user_id, body)

@router.post("/assignments/{assignment_id}/claim", response_model=Assignment)
async def claim_assignment(assignment_id: str, user: PreserverDep, lifecycle: LifecycleDep):
    return await lifecycle.claim(assignment_id, user.user_id)

@router.post("/assignments/{assignment_id}/start", response_model=Assignment)
async def start_assignment(assignment_id: str, user: PreserverDep, lifecycle: LifecycleDep):
    return await lifecycle.start(assignment_id, user.user_id)

@router.post("/assignments/{assignment_id}/submit", response_model=Assignment)
async def submit_assignment(
    assignment_id: str, user: PreserverDep, lifecycle: LifecycleDep, body: Optional[SubmitRequest] = None,
):
    attachments = body.attachments if body is not None else []
    return await lifecycle.submit_for_review(assignment_id, user.user_id, attachments)

@router.get("/assignments/{assignment_id}/route", response_model=Route)
async def assignment_route(
    assignment_id: str,
    user: PreserverDep,
    lifecycle: LifecycleDep,
    locations: LocationServiceDep,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
):
    assignment = await lifecycle.get_by_id(assignment_id)
    if assignment.location is None:
        raise ValidationError("Assignment has no location")
    return await locations.route_to(lat, lon, assignment.location)
