"""Progress store tests: lifecycle, idempotency, invariants, persistence."""

import asyncio

import pytest

from onboard.core.exceptions import CorruptCacheError, InvalidUserIdError
from onboard.schemas.progress import StepTemplate
from onboard.services import completion
from onboard.services.cache import InMemoryKeyValueCache, progress_key
from onboard.services.progress_store import ProgressStore, is_onboarding_completed

USER = "user-1"


def _catalog(required_orders: set[int], count: int = 9) -> list[StepTemplate]:
    return [
        StepTemplate(id=f"s{n}", title=f"Step {n}", is_required=n in required_orders, order=n)
        for n in range(1, count + 1)
    ]


@pytest.mark.asyncio
async def test_initialize_creates_fresh_record(progress_store: ProgressStore):
    progress = await progress_store.initialize(USER)
    assert progress.user_id == USER
    assert progress.total_steps == 9
    assert progress.completed_step_ids == []
    assert not progress.is_completed
    assert progress.current_step_order == 1
    assert all(not s.is_completed for s in progress.steps)


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", ["", "   "])
async def test_empty_user_id_raises(progress_store: ProgressStore, bad: str):
    with pytest.raises(InvalidUserIdError):
        await progress_store.initialize(bad)
    with pytest.raises(ValueError):
        await progress_store.complete_step(bad, "welcome")


@pytest.mark.asyncio
async def test_load_absent_returns_none(progress_store: ProgressStore):
    assert await progress_store.load(USER) is None


@pytest.mark.asyncio
async def test_load_round_trips(progress_store: ProgressStore):
    saved = await progress_store.complete_step(USER, "welcome")
    loaded = await progress_store.load(USER)
    assert loaded == saved


@pytest.mark.asyncio
async def test_complete_step_initializes_when_missing(progress_store: ProgressStore):
    progress = await progress_store.complete_step(USER, "welcome")
    assert progress.completed_step_ids == ["welcome"]
    assert progress.current_step_order == 2


@pytest.mark.asyncio
async def test_complete_step_is_idempotent(progress_store: ProgressStore):
    once = await progress_store.complete_step(USER, "permissions")
    twice = await progress_store.complete_step(USER, "permissions")
    assert twice == once
    assert twice.completed_step_ids == ["permissions"]


@pytest.mark.asyncio
async def test_unknown_step_is_ignored(progress_store: ProgressStore):
    await progress_store.initialize(USER)
    before = await progress_store.load(USER)
    after = await progress_store.complete_step(USER, "teleport")
    assert after == before


@pytest.mark.asyncio
async def test_skip_optional_step(progress_store: ProgressStore):
    progress = await progress_store.skip_step(USER, "profile_photo")
    assert "profile_photo" in progress.completed_step_ids
    # skipping an optional step doesn't move the required cursor
    assert progress.current_step_order == 1


@pytest.mark.asyncio
async def test_skip_required_step_is_a_noop(progress_store: ProgressStore):
    before = await progress_store.initialize(USER)
    after = await progress_store.skip_step(USER, "welcome")
    assert after == before
    assert after.completed_step_ids == []


@pytest.mark.asyncio
async def test_current_step_tracks_lowest_incomplete_required(progress_store: ProgressStore):
    await progress_store.complete_step(USER, "welcome")
    await progress_store.complete_step(USER, "permissions")
    progress = await progress_store.complete_step(USER, "privacy_settings")
    # personal_details (order 4) is the first incomplete required step
    assert progress.current_step_order == 4


@pytest.mark.asyncio
async def test_all_required_done_completes_onboarding(progress_store: ProgressStore):
    for step_id in ["welcome", "permissions", "personal_details", "privacy_settings", "completion"]:
        progress = await progress_store.complete_step(USER, step_id)
    assert progress.is_completed
    assert is_onboarding_completed(progress)
    assert progress.current_step_order == progress.total_steps


@pytest.mark.asyncio
async def test_scenario_optional_steps_left_incomplete():
    store = ProgressStore(InMemoryKeyValueCache(), steps=_catalog({1, 2, 4, 5, 7, 8, 9}))
    for n in [1, 2, 4, 5, 7, 8, 9]:
        progress = await store.complete_step(USER, f"s{n}")
    assert completion.step_percentage(progress) == 100
    assert progress.is_completed
    assert [s.id for s in progress.steps if not s.is_completed] == ["s3", "s6"]


@pytest.mark.asyncio
async def test_completed_ids_never_shrink(progress_store: ProgressStore):
    seen: set[str] = set()
    for op, step_id in [
        ("complete", "welcome"),
        ("skip", "tutorial"),
        ("skip", "permissions"),
        ("complete", "welcome"),
        ("complete", "bogus"),
        ("complete", "family_tree"),
    ]:
        fn = progress_store.complete_step if op == "complete" else progress_store.skip_step
        progress = await fn(USER, step_id)
        current = set(progress.completed_step_ids)
        assert seen <= current
        seen = current
    progress, changed = await progress_store.merge_completed(USER, ["interests"])
    assert changed
    assert seen <= set(progress.completed_step_ids)


@pytest.mark.asyncio
async def test_merge_completed_without_new_ids_reports_unchanged(progress_store: ProgressStore):
    await progress_store.complete_step(USER, "welcome")
    progress, changed = await progress_store.merge_completed(USER, ["welcome"])
    assert not changed
    assert progress.completed_step_ids == ["welcome"]


@pytest.mark.asyncio
async def test_reset_discards_progress(progress_store: ProgressStore):
    await progress_store.complete_step(USER, "welcome")
    progress = await progress_store.reset(USER)
    assert progress.completed_step_ids == []
    assert (await progress_store.load(USER)).completed_step_ids == []


@pytest.mark.asyncio
async def test_concurrent_completions_are_not_lost(progress_store: ProgressStore):
    await progress_store.initialize(USER)
    ids = ["welcome", "permissions", "profile_photo", "personal_details", "family_tree"]
    await asyncio.gather(*(progress_store.complete_step(USER, i) for i in ids))
    progress = await progress_store.load(USER)
    assert set(progress.completed_step_ids) == set(ids)


@pytest.mark.asyncio
async def test_malformed_cache_raises(cache: InMemoryKeyValueCache, progress_store: ProgressStore):
    await cache.set(progress_key(USER), "{not json")
    with pytest.raises(CorruptCacheError):
        await progress_store.load(USER)


@pytest.mark.asyncio
async def test_ids_dropped_from_catalog_are_kept_but_not_counted():
    cache = InMemoryKeyValueCache()
    old = ProgressStore(cache, steps=_catalog({1, 2, 3}, count=3))
    await old.complete_step(USER, "s3")

    new = ProgressStore(cache, steps=_catalog({1, 2}, count=2))
    progress = await new.load(USER)
    assert "s3" in progress.completed_step_ids
    assert [s.id for s in progress.steps] == ["s1", "s2"]
    assert completion.step_percentage(progress) == 0
