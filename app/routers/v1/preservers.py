# app/routers/v1/preservers.py
import asyncio
from fastapi import APIRouter, Query, status

from app.core.config import settings
from app.core.deps import ApplicationServiceDep, ProfileRepoDep, UserDep
from app.schemas.data import Application, UserProfile
from app.schemas.payloads import ApplicationCreate

router = APIRouter()

@router.post("/preservers/application", response_model=Application, status_code=status.HTTP_201_CREATED)
async def submit_application(body: ApplicationCreate, user: UserDep, applications: ApplicationServiceDep):
    return await applications.apply(user.user_id, body)

@router.get("/preservers/me/approval")
async def approval_status(user: UserDep, applications: ApplicationServiceDep):
    return {"approved": await applications.check_approval(user.user_id)}

@router.get("/preservers/me/approval/wait")
async def wait_for_approval(
    user: UserDep,
    applications: ApplicationServiceDep,
    timeout: float = Query(30.0, gt=0, le=120),
):
    """Long-poll: risponde appena il preserver è approvato o allo scadere del timeout."""
    watcher = applications.watch_approval(user.user_id, settings.approval_poll_seconds)
    watcher.start()
    try:
        approved = await asyncio.wait_for(watcher.wait(), timeout)
    except asyncio.TimeoutError:
        approved = False
    finally:
        await watcher.stop()
    return {"approved": bool(approved)}

@router.get("/preservers/me", response_model=UserProfile)
async def my_profile(user: UserDep, repo: ProfileRepoDep):
    return await repo.get_user(user.user_id)
