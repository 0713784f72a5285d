"""Merge policy between the local cache and the remote backend.

Completion is a grow-only set: the merged set is the union of both sides,
so a stale remote read can never undo local work. Answer values resolve
per question by last write (`answered_at`); on a tie the local value is
kept.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from onboard.schemas.answers import AnswerRecord


def union_ids(local: Iterable[str], remote: Iterable[str]) -> list[str]:
    """Order-preserving union: local ids first, then remote-only ids."""
    return list(dict.fromkeys([*local, *remote]))


@dataclass
class AnswerMerge:
    answers: dict[str, AnswerRecord]
    # question ids whose merged value came from the remote side
    pulled: list[str] = field(default_factory=list)
    # question ids the remote is missing or holds an older value for
    to_push: list[str] = field(default_factory=list)


def merge_answers(
    local: dict[str, AnswerRecord],
    remote: dict[str, AnswerRecord],
) -> AnswerMerge:
    merged = AnswerMerge(answers=dict(local))
    for qid, theirs in remote.items():
        ours = local.get(qid)
        if ours is None or theirs.answered_at > ours.answered_at:
            merged.answers[qid] = theirs
            merged.pulled.append(qid)
    for qid, ours in local.items():
        theirs = remote.get(qid)
        if theirs is None or ours.answered_at > theirs.answered_at:
            merged.to_push.append(qid)
        elif ours.answered_at == theirs.answered_at and ours.value != theirs.value:
            merged.to_push.append(qid)
    return merged
