from datetime import timedelta, timezone

import pytest

from app.core.errors import ValidationError
from app.schemas.data import AssignmentStatus
from app.services.geo import distance_miles
from app.services.matching_service import MatchingService, local_weekday, resolve_timezone

from conftest import utc

DEVICE = (39.7817, -89.6501)
UTC_MINUS_5 = timezone(timedelta(hours=-5))
SUNDAY, MONDAY = 0, 1


@pytest.mark.asyncio
async def test_sorted_by_distance_then_start_time(assignment_repo):
    near = assignment_repo.add_location(39.79, -89.65)
    far = assignment_repo.add_location(39.90, -89.65)
    late = assignment_repo.add(location=near, start_time=utc(2024, 3, 12, 9))
    early = assignment_repo.add(location=near, start_time=utc(2024, 3, 11, 9))
    distant = assignment_repo.add(location=far)

    rows = await MatchingService(assignment_repo).find_nearby(*DEVICE, radius_miles=25)

    assert [r.assignmentId for r in rows] == [early.id, late.id, distant.id]
    assert rows[0].distanceMiles == pytest.approx(distance_miles(*DEVICE, 39.79, -89.65))


@pytest.mark.asyncio
async def test_radius_excludes_far_and_non_open(assignment_repo):
    inside = assignment_repo.add(location=assignment_repo.add_location(39.80, -89.65))
    assignment_repo.add(location=assignment_repo.add_location(41.88, -87.63))  # Chicago
    assignment_repo.add(status=AssignmentStatus.ASSIGNED, preserver_id="p1",
                        location=assignment_repo.add_location(39.80, -89.65))

    rows = await MatchingService(assignment_repo).find_nearby(*DEVICE, radius_miles=10)
    assert [r.assignmentId for r in rows] == [inside.id]


@pytest.mark.asyncio
async def test_zero_radius_keeps_only_exact_location(assignment_repo):
    here = assignment_repo.add(location=assignment_repo.add_location(*DEVICE))
    assignment_repo.add(location=assignment_repo.add_location(39.7818, -89.6501))

    rows = await MatchingService(assignment_repo).find_nearby(*DEVICE, radius_miles=0)
    assert [r.assignmentId for r in rows] == [here.id]
    assert rows[0].distanceMiles == 0


@pytest.mark.asyncio
async def test_nothing_nearby_is_empty_not_error(assignment_repo):
    assert await MatchingService(assignment_repo).find_nearby(0.0, 0.0, radius_miles=5) == []


@pytest.mark.asyncio
async def test_default_radius_is_used(assignment_repo):
    assignment_repo.add(location=assignment_repo.add_location(40.10, -89.65))  # ~22 miglia
    service = MatchingService(assignment_repo, default_radius_miles=25)
    assert len(await service.find_nearby(*DEVICE)) == 1
    service = MatchingService(assignment_repo, default_radius_miles=5)
    assert await service.find_nearby(*DEVICE) == []


@pytest.mark.asyncio
async def test_day_filter_uses_local_weekday_across_utc_midnight(assignment_repo):
    # 2024-03-11T02:00Z è lunedì in UTC ma domenica 21:00 a UTC-5
    a = assignment_repo.add(location=assignment_repo.add_location(*DEVICE), start_time=utc(2024, 3, 11, 2))
    service = MatchingService(assignment_repo)

    sunday = await service.find_nearby(*DEVICE, 5, {SUNDAY}, UTC_MINUS_5)
    monday = await service.find_nearby(*DEVICE, 5, {MONDAY}, UTC_MINUS_5)

    assert [r.assignmentId for r in sunday] == [a.id]
    assert monday == []


@pytest.mark.asyncio
async def test_day_filter_same_day_case(assignment_repo):
    a = assignment_repo.add(location=assignment_repo.add_location(*DEVICE), start_time=utc(2024, 3, 10, 23))
    rows = await MatchingService(assignment_repo).find_nearby(*DEVICE, 5, {SUNDAY}, UTC_MINUS_5)
    assert [r.assignmentId for r in rows] == [a.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("radius,days", [(-1, None), (5, {7}), (5, {-1})])
async def test_invalid_arguments(assignment_repo, radius, days):
    with pytest.raises(ValidationError):
        await MatchingService(assignment_repo).find_nearby(*DEVICE, radius, days)


def test_local_weekday_sunday_is_zero():
    assert local_weekday(utc(2024, 3, 10, 12), timezone.utc) == SUNDAY
    assert local_weekday(utc(2024, 3, 16, 12), timezone.utc) == 6


def test_resolve_timezone():
    assert resolve_timezone("UTC") is timezone.utc
    assert local_weekday(utc(2024, 3, 11, 2), resolve_timezone("-05:00")) == SUNDAY
    assert resolve_timezone("+0530").utcoffset(None) == timedelta(hours=5, minutes=30)
    with pytest.raises(ValidationError):
        resolve_timezone("Mars/Olympus")
    with pytest.raises(ValidationError):
        resolve_timezone("+99:00")
