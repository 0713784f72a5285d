"""Sync coordinator: keeps the local cache and the remote backend in step.

States per (user, channel):

    local_only ──remote ok──▶ synced ◀──remote ok── diverged
                                 │                     ▲
                                 └──local mutation─────┘

Local writes always land first, so the app works offline. The remote
write is attempted once per mutation. A failure leaves the channel
diverged and the next load or save retries; there is no background
retry loop.
"""

import asyncio
import logging
from collections.abc import Awaitable, Coroutine, Mapping
from datetime import datetime, timezone
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from onboard.config import Settings
from onboard.core.exceptions import CorruptCacheError, RemoteUnavailableError, require_user_id
from onboard.schemas.answers import COMPLETED_PHASE, AnswerRecord, AnswersResponse, AnswerSet
from onboard.schemas.completion import CompletionReport, RecommendedAction
from onboard.schemas.progress import OnboardingProgress, ProgressPayload
from onboard.schemas.questions import UnifiedQuestion
from onboard.schemas.sync import (
    AnswerUpdate,
    CompletionOutcome,
    ProgressUpdate,
    SyncChannel,
    SyncResult,
    SyncState,
    SyncStateRecord,
)
from onboard.schemas.user import UserProfile
from onboard.services import completion, recommendation
from onboard.services.answer_store import AnswerStore
from onboard.services.cache import KeyValueCache, SqlKeyValueCache, sync_state_key
from onboard.services.progress_store import ProgressStore
from onboard.services.remote_client import RemoteOnboardingClient

logger = logging.getLogger("onboard.sync")

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 10.0

# Remote answers without a timestamp lose every tie against local ones.
_NO_TIMESTAMP = datetime(1970, 1, 1, tzinfo=timezone.utc)


def remote_answer_records(response: AnswersResponse) -> dict[str, AnswerRecord]:
    return {
        qid: AnswerRecord(value=value, answered_at=response.answered_at.get(qid, _NO_TIMESTAMP))
        for qid, value in response.answers.items()
    }


class SyncCoordinator:
    def __init__(
        self,
        progress_store: ProgressStore,
        answer_store: AnswerStore,
        remote: RemoteOnboardingClient,
        cache: KeyValueCache,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._progress = progress_store
        self._answers = answer_store
        self._remote = remote
        self._cache = cache
        self._timeout = timeout
        self._state_locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    async def from_settings(
        cls,
        settings: Settings,
        *,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SyncCoordinator":
        """Wire the SQLite cache, both stores and the HTTP client from settings."""
        cache = await SqlKeyValueCache.from_url(settings.cache_database_url)
        return cls(
            ProgressStore(cache),
            AnswerStore(cache, policy=settings.completion_policy),
            RemoteOnboardingClient.from_settings(settings, headers=headers, transport=transport),
            cache,
            timeout=settings.request_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self.wait_idle()
        await self._remote.aclose()
        await self._cache.aclose()

    # -- sync state ----------------------------------------------------------

    def _state_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._state_locks.get(user_id)
        if lock is None:
            lock = self._state_locks[user_id] = asyncio.Lock()
        return lock

    async def _read_states(self, user_id: str) -> SyncStateRecord:
        key = sync_state_key(user_id)
        raw = await self._cache.get(key)
        if raw is None:
            return SyncStateRecord()
        try:
            return SyncStateRecord.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptCacheError(key, str(e)) from e

    async def sync_state(self, user_id: str, channel: SyncChannel = SyncChannel.progress) -> SyncState:
        require_user_id(user_id)
        return (await self._read_states(user_id)).of(channel)

    async def _mark(self, user_id: str, channel: SyncChannel, state: SyncState) -> None:
        async with self._state_lock(user_id):
            record = await self._read_states(user_id)
            previous = record.of(channel)
            if previous == state:
                return
            record.mark(channel, state)
            await self._cache.set(sync_state_key(user_id), record.model_dump_json())
        logger.info("Sync %s for user: %s -> %s", channel.value, previous.value, state.value)

    # -- remote plumbing -----------------------------------------------------

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise RemoteUnavailableError(f"{what} timed out after {self._timeout}s") from e

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background refresh crashed", exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait for background refreshes scheduled by load()."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- step wizard ---------------------------------------------------------

    async def load(self, user_id: str) -> OnboardingProgress | None:
        """Local progress right away; the remote refresh runs in the background.

        With nothing cached the remote is awaited once so a reinstall
        picks up server-side progress. None means neither side has a
        record and the caller should initialize.
        """
        require_user_id(user_id)
        local = await self._progress.load(user_id)
        if local is not None:
            self._schedule(self.refresh(user_id))
            return local
        await self.refresh(user_id)
        return await self._progress.load(user_id)

    async def load_or_initialize(self, user_id: str) -> OnboardingProgress:
        progress = await self.load(user_id)
        if progress is None:
            progress = await self._progress.initialize(user_id)
        return progress

    async def refresh(self, user_id: str) -> SyncResult:
        """Fetch remote progress, union it into the cache, push back if behind."""
        require_user_id(user_id)
        try:
            remote = await self._call(self._remote.get_progress(), "load progress")
        except RemoteUnavailableError as e:
            logger.warning("Progress refresh deferred: %s", e.reason)
            return SyncResult.deferred(e.reason)

        if remote is None:
            local = await self._progress.load(user_id)
            if local is None:
                return SyncResult.success()
            return await self._push_progress(local)

        merged, _ = await self._progress.merge_completed(user_id, remote.completed_steps)
        remote_ids = set(remote.completed_steps)
        if set(merged.completed_step_ids) != remote_ids or merged.is_completed != remote.is_completed:
            return await self._push_progress(merged)
        await self._mark(user_id, SyncChannel.progress, SyncState.synced)
        return SyncResult.success()

    async def _push_progress(self, progress: OnboardingProgress) -> SyncResult:
        user_id = progress.user_id
        payload = ProgressPayload.from_progress(progress)
        try:
            await self._call(self._remote.push_progress(payload), "save progress")
        except RemoteUnavailableError as e:
            logger.warning("Progress sync deferred: %s", e.reason)
            await self._mark(user_id, SyncChannel.progress, SyncState.diverged)
            return SyncResult.deferred(e.reason)

        # A local write may have landed while the request was in flight.
        current = await self._progress.load(user_id)
        if current is not None and set(current.completed_step_ids) != set(payload.completed_steps):
            await self._mark(user_id, SyncChannel.progress, SyncState.diverged)
            return SyncResult.deferred("local progress changed during sync")
        await self._mark(user_id, SyncChannel.progress, SyncState.synced)
        return SyncResult.success()

    async def _hydrated(self, user_id: str) -> OnboardingProgress | None:
        """Local progress; with nothing cached the remote ids are merged in first."""
        local = await self._progress.load(user_id)
        if local is not None:
            return local
        await self.refresh(user_id)
        return await self._progress.load(user_id)

    async def _after_step_write(
        self, before: OnboardingProgress | None, progress: OnboardingProgress
    ) -> ProgressUpdate:
        changed = before is None or before.completed_step_ids != progress.completed_step_ids
        user_id = progress.user_id
        if not changed and await self.sync_state(user_id) == SyncState.synced:
            return ProgressUpdate(progress=progress, sync=SyncResult.success())
        if changed:
            await self._mark(user_id, SyncChannel.progress, SyncState.diverged)
        return ProgressUpdate(progress=progress, sync=await self._push_progress(progress))

    async def complete_step(self, user_id: str, step_id: str) -> ProgressUpdate:
        require_user_id(user_id)
        before = await self._hydrated(user_id)
        progress = await self._progress.complete_step(user_id, step_id)
        return await self._after_step_write(before, progress)

    async def skip_step(self, user_id: str, step_id: str) -> ProgressUpdate:
        require_user_id(user_id)
        before = await self._hydrated(user_id)
        progress = await self._progress.skip_step(user_id, step_id)
        return await self._after_step_write(before, progress)

    async def reset(self, user_id: str) -> ProgressUpdate:
        """Start the wizard over locally and overwrite the remote copy.

        If the push is deferred, a later refresh unions the remote ids back
        in; a reset only sticks once the remote has accepted it.
        """
        require_user_id(user_id)
        progress = await self._progress.reset(user_id)
        await self._mark(user_id, SyncChannel.progress, SyncState.diverged)
        return ProgressUpdate(progress=progress, sync=await self._push_progress(progress))

    async def completion_percentage(self, user_id: str) -> int:
        progress = await self._progress.load(user_id)
        return completion.step_percentage(progress) if progress else 0

    async def recommended_action(self, user_id: str) -> RecommendedAction:
        """Next action from cached state only; never touches the network."""
        require_user_id(user_id)
        progress = await self._progress.load(user_id)
        answers = await self._answers.load(user_id)
        report = self._answers.completion(answers) if answers is not None else None
        return recommendation.recommended_action(progress, report)

    # -- unified question flow -----------------------------------------------

    async def load_answers(self, user_id: str) -> AnswerSet:
        require_user_id(user_id)
        local = await self._answers.load(user_id)
        if local is not None:
            self._schedule(self.refresh_answers(user_id))
            return local
        await self.refresh_answers(user_id)
        return await self._answers.load_or_empty(user_id)

    async def refresh_answers(self, user_id: str) -> SyncResult:
        """Fetch remote answers, merge, and send back what the remote lacks.

        Uses one round trip when both sides agree and two when local
        answers need pushing.
        """
        require_user_id(user_id)
        try:
            remote = await self._call(self._remote.get_answers(), "load answers")
        except RemoteUnavailableError as e:
            logger.warning("Answer refresh deferred: %s", e.reason)
            return SyncResult.deferred(e.reason)

        records = remote_answer_records(remote) if remote is not None else {}
        answer_set, merge = await self._answers.merge_remote(
            user_id, records, remote_completed=bool(remote and remote.completed)
        )
        if merge.pulled:
            logger.info("Pulled %d answers from remote", len(merge.pulled))
        needs_complete = answer_set.completed and not (remote is not None and remote.completed)
        if answer_set.pending_ids or needs_complete:
            return await self._push_answers(answer_set, is_complete=needs_complete)
        await self._mark(user_id, SyncChannel.answers, SyncState.synced)
        return SyncResult.success()

    async def _push_answers(self, answer_set: AnswerSet, *, is_complete: bool = False) -> SyncResult:
        user_id = answer_set.user_id
        pending = self._answers.pending_values(answer_set)
        phase = None if answer_set.phase == COMPLETED_PHASE else answer_set.phase
        try:
            if len(pending) == 1 and not is_complete:
                ((qid, record),) = pending.items()
                await self._call(self._remote.save_answer(qid, record, phase), "save answer")
            else:
                await self._call(
                    self._remote.save_answers(pending, phase, is_complete=is_complete), "save answers"
                )
        except RemoteUnavailableError as e:
            logger.warning("Answer sync deferred (%d pending): %s", len(pending), e.reason)
            await self._mark(user_id, SyncChannel.answers, SyncState.diverged)
            return SyncResult.deferred(e.reason)

        acknowledged = await self._answers.acknowledge(
            user_id, {qid: r.answered_at for qid, r in pending.items()}
        )
        if acknowledged.pending_ids:
            await self._mark(user_id, SyncChannel.answers, SyncState.diverged)
            return SyncResult.deferred("answers changed during sync")
        await self._mark(user_id, SyncChannel.answers, SyncState.synced)
        return SyncResult.success()

    async def _after_answer_write(self, answer_set: AnswerSet) -> AnswerUpdate:
        report = self._answers.completion(answer_set)
        user_id = answer_set.user_id
        if not answer_set.pending_ids:
            return AnswerUpdate(answers=answer_set, completion=report, sync=SyncResult.success())
        await self._mark(user_id, SyncChannel.answers, SyncState.diverged)
        sync = await self._push_answers(answer_set)
        answer_set = await self._answers.load_or_empty(user_id)
        return AnswerUpdate(answers=answer_set, completion=report, sync=sync)

    async def answer_question(self, user_id: str, question_id: str, value: Any) -> AnswerUpdate:
        require_user_id(user_id)
        answer_set = await self._answers.record_answer(user_id, question_id, value)
        return await self._after_answer_write(answer_set)

    async def answer_batch(self, user_id: str, values: Mapping[str, Any]) -> AnswerUpdate:
        """Save several answers at once (e.g. registration data auto-save)."""
        require_user_id(user_id)
        answer_set = await self._answers.record_answers(user_id, values)
        return await self._after_answer_write(answer_set)

    def completion(self, answer_set: AnswerSet) -> CompletionReport:
        return self._answers.completion(answer_set)

    def next_question(self, answer_set: AnswerSet) -> UnifiedQuestion | None:
        return recommendation.next_question(answer_set.answered_ids, phases=self._answers.phases)

    async def complete_unified_onboarding(self, user_id: str) -> CompletionOutcome:
        """Mark the question flow complete locally and on the remote.

        Pending answers ride along in the same request.
        """
        require_user_id(user_id)
        answer_set = await self._answers.mark_completed(user_id)
        await self._mark(user_id, SyncChannel.answers, SyncState.diverged)
        pending = self._answers.pending_values(answer_set)
        try:
            if pending:
                response = await self._call(
                    self._remote.save_answers(pending, None, is_complete=True), "complete onboarding"
                )
            else:
                response = await self._call(self._remote.complete_onboarding(), "complete onboarding")
        except RemoteUnavailableError as e:
            logger.warning("Onboarding completion deferred: %s", e.reason)
            return CompletionOutcome(answers=answer_set, user=None, sync=SyncResult.deferred(e.reason))

        if pending:
            answer_set = await self._answers.acknowledge(
                user_id, {qid: r.answered_at for qid, r in pending.items()}
            )
        state = SyncState.diverged if answer_set.pending_ids else SyncState.synced
        await self._mark(user_id, SyncChannel.answers, state)
        user = UserProfile.from_api(response.user) if response.user else None
        return CompletionOutcome(answers=answer_set, user=user, sync=SyncResult.success())
