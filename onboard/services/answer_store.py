"""Answer store: unified-flow answers per user in the local cache.

An answer and its membership in the answered set live in one cached
record, so they are always written together.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from onboard.config import CompletionPolicy
from onboard.core.exceptions import CorruptCacheError, require_user_id
from onboard.models.base import utcnow
from onboard.schemas.answers import COMPLETED_PHASE, AnswerRecord, AnswerSet
from onboard.schemas.completion import CompletionReport
from onboard.schemas.questions import OnboardingPhase
from onboard.services import completion, question_catalog
from onboard.services.cache import KeyValueCache, answers_key
from onboard.services.merge import AnswerMerge, merge_answers

logger = logging.getLogger("onboard.answers")


class AnswerStore:
    def __init__(
        self,
        cache: KeyValueCache,
        *,
        phases: Sequence[OnboardingPhase] | None = None,
        policy: CompletionPolicy | None = None,
    ):
        self._cache = cache
        self._phases = list(phases) if phases is not None else question_catalog.list_phases()
        self._policy = policy or CompletionPolicy.default()
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def phases(self) -> list[OnboardingPhase]:
        return list(self._phases)

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def completion(self, answer_set: AnswerSet) -> CompletionReport:
        return completion.calculate_unified_completion(
            answer_set.answered_ids, phases=self._phases, policy=self._policy
        )

    async def _read(self, user_id: str) -> AnswerSet | None:
        key = answers_key(user_id)
        raw = await self._cache.get(key)
        if raw is None:
            return None
        try:
            return AnswerSet.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptCacheError(key, str(e)) from e

    async def _write(self, answer_set: AnswerSet) -> AnswerSet:
        if not answer_set.completed:
            answer_set.phase = completion.recommended_phase(self.completion(answer_set))
        answer_set.last_updated = utcnow()
        await self._cache.set(answers_key(answer_set.user_id), answer_set.model_dump_json())
        return answer_set

    async def load(self, user_id: str) -> AnswerSet | None:
        require_user_id(user_id)
        return await self._read(user_id)

    async def load_or_empty(self, user_id: str) -> AnswerSet:
        require_user_id(user_id)
        return await self._read(user_id) or AnswerSet(user_id=user_id)

    async def record_answers(
        self,
        user_id: str,
        values: Mapping[str, Any],
        *,
        answered_at: datetime | None = None,
    ) -> AnswerSet:
        """Write answers and mark them pending for the remote.

        Ids the catalog does not know are dropped with a warning.
        """
        require_user_id(user_id)
        stamp = answered_at or utcnow()
        async with self._lock(user_id):
            answer_set = await self._read(user_id) or AnswerSet(user_id=user_id)
            changed = False
            for qid, value in values.items():
                if question_catalog.get_question(qid, self._phases) is None:
                    logger.warning("Ignoring answer for unknown question '%s'", qid)
                    continue
                existing = answer_set.answers.get(qid)
                if existing is not None and existing.value == value:
                    continue
                answer_set.answers[qid] = AnswerRecord(value=value, answered_at=stamp)
                if qid not in answer_set.pending_ids:
                    answer_set.pending_ids.append(qid)
                changed = True
            if not changed:
                return answer_set
            return await self._write(answer_set)

    async def record_answer(
        self, user_id: str, question_id: str, value: Any, *, answered_at: datetime | None = None
    ) -> AnswerSet:
        return await self.record_answers(user_id, {question_id: value}, answered_at=answered_at)

    async def acknowledge(self, user_id: str, sent: Mapping[str, datetime]) -> AnswerSet:
        """Clear pending flags for answers the remote accepted.

        An answer rewritten locally after it was sent stays pending.
        """
        require_user_id(user_id)
        async with self._lock(user_id):
            answer_set = await self._read(user_id) or AnswerSet(user_id=user_id)
            still_pending = [
                qid
                for qid in answer_set.pending_ids
                if qid not in sent
                or qid not in answer_set.answers
                or answer_set.answers[qid].answered_at != sent[qid]
            ]
            if still_pending == answer_set.pending_ids:
                return answer_set
            answer_set.pending_ids = still_pending
            return await self._write(answer_set)

    async def merge_remote(
        self,
        user_id: str,
        remote: Mapping[str, AnswerRecord],
        *,
        remote_completed: bool = False,
    ) -> tuple[AnswerSet, AnswerMerge]:
        """Fold remote answers into the local record (see merge policy)."""
        require_user_id(user_id)
        async with self._lock(user_id):
            answer_set = await self._read(user_id) or AnswerSet(user_id=user_id)
            result = merge_answers(answer_set.answers, dict(remote))
            answer_set.answers = result.answers
            answer_set.pending_ids = list(result.to_push)
            if remote_completed and not answer_set.completed:
                answer_set.completed = True
                answer_set.phase = COMPLETED_PHASE
            return await self._write(answer_set), result

    async def mark_completed(self, user_id: str) -> AnswerSet:
        require_user_id(user_id)
        async with self._lock(user_id):
            answer_set = await self._read(user_id) or AnswerSet(user_id=user_id)
            if answer_set.completed:
                return answer_set
            answer_set.completed = True
            answer_set.phase = COMPLETED_PHASE
            return await self._write(answer_set)

    async def reset(self, user_id: str) -> AnswerSet:
        require_user_id(user_id)
        async with self._lock(user_id):
            await self._cache.remove(answers_key(user_id))
            return await self._write(AnswerSet(user_id=user_id))

    def pending_values(self, answer_set: AnswerSet, ids: Iterable[str] | None = None) -> dict[str, AnswerRecord]:
        wanted = answer_set.pending_ids if ids is None else list(ids)
        return {qid: answer_set.answers[qid] for qid in wanted if qid in answer_set.answers}
