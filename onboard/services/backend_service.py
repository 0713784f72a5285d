"""Reference backend service: server-side storage for onboarding sync.

Progress posts replace the stored copy (the client sends its full,
already-merged state). Answers follow last-write-wins on `answered_at`,
so replaying a request is harmless and a stale write never overwrites a
newer answer.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from onboard.config import settings
from onboard.models.base import as_utc, utcnow
from onboard.models.remote import RemoteAnswer, RemoteOnboardingStatus, RemoteProgress
from onboard.schemas.answers import COMPLETED_PHASE, AnswersResponse, SaveBatchRequest, StatusResponse
from onboard.schemas.completion import CompletionReport
from onboard.schemas.progress import ProgressPayload
from onboard.schemas.questions import PhaseId
from onboard.services import completion, question_catalog

VALID_PHASES = {p.value for p in PhaseId} | {COMPLETED_PHASE}


def _check_phase(phase: str | None) -> None:
    if phase is not None and phase not in VALID_PHASES:
        raise ValueError(f"Invalid phase: {phase}. Must be one of: {sorted(VALID_PHASES)}")


# -- step wizard progress ------------------------------------------------------


async def get_progress(db: AsyncSession, user_id: str) -> RemoteProgress | None:
    return await db.get(RemoteProgress, user_id)


async def save_progress(db: AsyncSession, user_id: str, payload: ProgressPayload) -> RemoteProgress:
    row = await get_progress(db, user_id)
    if row is None:
        row = RemoteProgress(user_id=user_id)
        db.add(row)
    row.current_step = payload.current_step
    row.completed_steps = list(dict.fromkeys(payload.completed_steps))
    row.is_completed = payload.is_completed
    row.last_updated = payload.last_updated
    await db.flush()
    return row


def progress_payload(row: RemoteProgress) -> ProgressPayload:
    return ProgressPayload(
        current_step=row.current_step,
        completed_steps=list(row.completed_steps or []),
        is_completed=row.is_completed,
        last_updated=as_utc(row.last_updated),
    )


# -- unified answers -----------------------------------------------------------


async def _get_status(db: AsyncSession, user_id: str) -> RemoteOnboardingStatus:
    row = await db.get(RemoteOnboardingStatus, user_id)
    if row is None:
        row = RemoteOnboardingStatus(user_id=user_id, phase=PhaseId.essential.value, completed=False)
        db.add(row)
        await db.flush()
    return row


async def list_answers(db: AsyncSession, user_id: str) -> list[RemoteAnswer]:
    result = await db.execute(
        select(RemoteAnswer).where(RemoteAnswer.user_id == user_id).order_by(RemoteAnswer.id)
    )
    return list(result.scalars().all())


async def save_answer(
    db: AsyncSession,
    user_id: str,
    *,
    question_id: str,
    value: Any,
    phase: str | None = None,
    answered_at: datetime | None = None,
) -> RemoteAnswer:
    _check_phase(phase)
    stamp = as_utc(answered_at) if answered_at else utcnow()
    result = await db.execute(
        select(RemoteAnswer).where(
            RemoteAnswer.user_id == user_id, RemoteAnswer.question_id == question_id
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = RemoteAnswer(
            user_id=user_id, question_id=question_id, value=value, phase=phase, answered_at=stamp
        )
        db.add(row)
    elif as_utc(row.answered_at) <= stamp:
        row.value = value
        row.phase = phase or row.phase
        row.answered_at = stamp
    await db.flush()
    return row


async def save_batch(db: AsyncSession, user_id: str, request: SaveBatchRequest) -> None:
    _check_phase(request.phase)
    for question_id, value in request.responses.items():
        await save_answer(
            db,
            user_id,
            question_id=question_id,
            value=value,
            phase=request.phase,
            answered_at=request.answered_at.get(question_id),
        )
    if request.is_complete:
        await complete_onboarding(db, user_id)


async def complete_onboarding(db: AsyncSession, user_id: str, phase: str = COMPLETED_PHASE) -> RemoteOnboardingStatus:
    _check_phase(phase)
    status = await _get_status(db, user_id)
    status.phase = phase
    if phase == COMPLETED_PHASE and not status.completed:
        status.completed = True
        status.completed_at = utcnow()
    await db.flush()
    return status


async def completion_for(db: AsyncSession, user_id: str) -> CompletionReport:
    answers = await list_answers(db, user_id)
    return completion.calculate_unified_completion(
        [a.question_id for a in answers], policy=settings.completion_policy
    )


async def answers_response(db: AsyncSession, user_id: str) -> AnswersResponse:
    answers = await list_answers(db, user_id)
    status = await _get_status(db, user_id)
    report = completion.calculate_unified_completion(
        [a.question_id for a in answers], policy=settings.completion_policy
    )
    return AnswersResponse(
        answers={a.question_id: a.value for a in answers},
        answered_at={a.question_id: as_utc(a.answered_at) for a in answers},
        phase=status.phase,
        completed=status.completed,
        completion_percentage=report.percentage,
    )


async def status_response(db: AsyncSession, user_id: str) -> StatusResponse:
    status = await _get_status(db, user_id)
    report = await completion_for(db, user_id)
    essential = question_catalog.get_phase(PhaseId.essential)
    can_use_app = report.essential_complete if essential and essential.required_for_app else True
    return StatusResponse(
        current_phase=status.phase,
        recommended_phase=completion.recommended_phase(report),
        completion_percentage=report.percentage,
        is_complete=status.completed or report.is_complete,
        can_use_app=can_use_app,
        answered_count=report.answered_count,
    )


async def user_record(db: AsyncSession, user_id: str) -> dict[str, Any]:
    """User document as the production API returns it (legacy field names)."""
    answers = {a.question_id: a.value for a in await list_answers(db, user_id)}
    status = await _get_status(db, user_id)
    return {
        "_id": user_id,
        "email": answers.get("email"),
        "phone": answers.get("phone"),
        "username": answers.get("username"),
        "fullName": answers.get("full_name"),
        "profile_picture_url": answers.get("profile_picture"),
        "current_location": answers.get("current_location"),
        "profession": answers.get("profession"),
        "bio": answers.get("personal_bio"),
        "profile_complete": status.completed,
    }

