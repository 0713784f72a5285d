"""Progress store: per-user step-wizard progress in the local cache.

Completion is monotonic. A step goes false → true once and only
`reset` clears it. Completing an already completed step, or an id the
catalog does not know, leaves the record untouched.

Invariants recomputed on every write:
- is_completed iff every required step is completed
- current_step_order is the order of the first incomplete required step,
  or total_steps when none remain
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import ValidationError

from onboard.core.exceptions import CorruptCacheError, require_user_id
from onboard.models.base import utcnow
from onboard.schemas.progress import OnboardingProgress, OnboardingStep, StepTemplate
from onboard.services import step_registry
from onboard.services.cache import KeyValueCache, progress_key

logger = logging.getLogger("onboard.progress")


def build_progress(
    user_id: str,
    completed_ids: Iterable[str],
    steps: Sequence[StepTemplate],
    *,
    last_updated: datetime | None = None,
) -> OnboardingProgress:
    """Instantiate progress from the catalog with the given ids completed."""
    completed = list(dict.fromkeys(completed_ids))
    done = set(completed)
    progress = OnboardingProgress(
        user_id=user_id,
        current_step_order=1,
        total_steps=len(steps),
        completed_step_ids=completed,
        last_updated=last_updated or utcnow(),
        steps=[OnboardingStep.from_template(t, is_completed=t.id in done) for t in steps],
    )
    return recompute(progress)


def recompute(progress: OnboardingProgress) -> OnboardingProgress:
    next_required = next(
        (s for s in sorted(progress.steps, key=lambda s: s.order) if s.is_required and not s.is_completed),
        None,
    )
    if next_required is not None:
        progress.current_step_order = next_required.order
        progress.is_completed = False
    else:
        progress.current_step_order = progress.total_steps
        progress.is_completed = True
    return progress


def is_onboarding_completed(progress: OnboardingProgress) -> bool:
    return all(s.is_completed for s in progress.steps if s.is_required)


class ProgressStore:
    """Owns OnboardingProgress records, one per user id.

    Read-modify-write sequences hold a per-user lock so two completions
    racing on the event loop cannot lose an update.
    """

    def __init__(self, cache: KeyValueCache, *, steps: Sequence[StepTemplate] | None = None):
        self._cache = cache
        self._steps = list(steps) if steps is not None else step_registry.list_steps()
        self._steps.sort(key=lambda s: s.order)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def steps(self) -> list[StepTemplate]:
        return list(self._steps)

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def _read(self, user_id: str) -> OnboardingProgress | None:
        key = progress_key(user_id)
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            stored = OnboardingProgress.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptCacheError(key, str(e)) from e
        # Rebuild against the current catalog; ids the catalog dropped stay
        # in completed_step_ids but no longer count.
        completed = list(stored.completed_step_ids)
        completed += [s.id for s in stored.steps if s.is_completed]
        return build_progress(user_id, completed, self._steps, last_updated=stored.last_updated)

    async def _write(self, progress: OnboardingProgress) -> OnboardingProgress:
        progress.last_updated = utcnow()
        await self._cache.set(progress_key(progress.user_id), progress.model_dump_json())
        return progress

    async def _read_or_init(self, user_id: str) -> OnboardingProgress:
        progress = await self._read(user_id)
        if progress is None:
            progress = await self._write(build_progress(user_id, [], self._steps))
        return progress

    async def initialize(self, user_id: str) -> OnboardingProgress:
        """Create and persist a fresh record with nothing completed."""
        require_user_id(user_id)
        async with self._lock(user_id):
            return await self._write(build_progress(user_id, [], self._steps))

    async def load(self, user_id: str) -> OnboardingProgress | None:
        """Last persisted record, or None if the user has none yet."""
        require_user_id(user_id)
        return await self._read(user_id)

    async def complete_step(self, user_id: str, step_id: str) -> OnboardingProgress:
        require_user_id(user_id)
        async with self._lock(user_id):
            progress = await self._read_or_init(user_id)
            step = next((s for s in progress.steps if s.id == step_id), None)
            if step is None:
                logger.warning("Ignoring unknown onboarding step '%s' for completion", step_id)
                return progress
            if step.is_completed:
                return progress
            step.is_completed = True
            if step_id not in progress.completed_step_ids:
                progress.completed_step_ids.append(step_id)
            return await self._write(recompute(progress))

    async def skip_step(self, user_id: str, step_id: str) -> OnboardingProgress:
        """Complete an optional step. Required steps cannot be skipped."""
        require_user_id(user_id)
        async with self._lock(user_id):
            progress = await self._read_or_init(user_id)
            step = next((s for s in progress.steps if s.id == step_id), None)
            if step is None:
                logger.warning("Ignoring unknown onboarding step '%s' for skip", step_id)
                return progress
            if step.is_required:
                logger.info("Refusing to skip required onboarding step '%s'", step_id)
                return progress
            if step.is_completed:
                return progress
            step.is_completed = True
            if step_id not in progress.completed_step_ids:
                progress.completed_step_ids.append(step_id)
            return await self._write(recompute(progress))

    async def merge_completed(
        self, user_id: str, step_ids: Iterable[str]
    ) -> tuple[OnboardingProgress, bool]:
        """Union the given ids into the record. Returns (progress, changed)."""
        require_user_id(user_id)
        async with self._lock(user_id):
            progress = await self._read_or_init(user_id)
            incoming = [i for i in step_ids if i not in progress.completed_step_ids]
            if not incoming:
                return progress, False
            merged = build_progress(
                user_id, progress.completed_step_ids + incoming, self._steps
            )
            return await self._write(merged), True

    async def reset(self, user_id: str) -> OnboardingProgress:
        """Discard all progress and start over."""
        require_user_id(user_id)
        async with self._lock(user_id):
            await self._cache.remove(progress_key(user_id))
            return await self._write(build_progress(user_id, [], self._steps))
