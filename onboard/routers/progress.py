"""Step-wizard progress routes: get, save."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from onboard.dependencies import get_current_user_id, get_db
from onboard.schemas.progress import ProgressPayload
from onboard.services import backend_service

router = APIRouter(prefix="/users", tags=["onboarding-progress"])


@router.get("/onboarding-progress", response_model=ProgressPayload)
async def get_progress(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = await backend_service.get_progress(db, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="No onboarding progress saved yet")
    return backend_service.progress_payload(row)


@router.post("/onboarding-progress", response_model=ProgressPayload)
async def save_progress(
    payload: ProgressPayload,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = await backend_service.save_progress(db, user_id, payload)
    return backend_service.progress_payload(row)
