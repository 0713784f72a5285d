"""Unified onboarding routes: answers, batch save, completion, status."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from onboard.dependencies import get_current_user_id, get_db
from onboard.schemas.answers import (
    AnswersResponse,
    CompleteRequest,
    SaveAnswerRequest,
    SaveBatchRequest,
    SaveResponse,
    StatusResponse,
)
from onboard.services import backend_service

router = APIRouter(prefix="/users/onboarding", tags=["unified-onboarding"])


@router.get("/responses", response_model=AnswersResponse)
async def get_responses(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await backend_service.answers_response(db, user_id)


@router.post("/response", response_model=SaveResponse)
async def save_response(
    body: SaveAnswerRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        await backend_service.save_answer(
            db,
            user_id,
            question_id=body.question_id,
            value=body.answer,
            phase=body.phase,
            answered_at=body.answered_at,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    report = await backend_service.completion_for(db, user_id)
    return SaveResponse(completion_percentage=report.percentage)


@router.post("/batch", response_model=SaveResponse)
async def save_batch(
    body: SaveBatchRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        await backend_service.save_batch(db, user_id, body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    report = await backend_service.completion_for(db, user_id)
    user = await backend_service.user_record(db, user_id) if body.is_complete else None
    return SaveResponse(completion_percentage=report.percentage, user=user)


@router.post("/complete", response_model=SaveResponse)
async def complete(
    body: CompleteRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        await backend_service.complete_onboarding(db, user_id, body.phase)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    report = await backend_service.completion_for(db, user_id)
    return SaveResponse(
        completion_percentage=report.percentage,
        user=await backend_service.user_record(db, user_id),
    )


@router.get("/status", response_model=StatusResponse)
async def status(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await backend_service.status_response(db, user_id)
