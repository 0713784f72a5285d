import enum
from dataclasses import dataclass

from pydantic import BaseModel

from onboard.schemas.answers import AnswerSet
from onboard.schemas.completion import CompletionReport
from onboard.schemas.progress import OnboardingProgress
from onboard.schemas.user import UserProfile


class SyncState(str, enum.Enum):
    local_only = "local_only"
    synced = "synced"
    diverged = "diverged"


class SyncChannel(str, enum.Enum):
    progress = "progress"
    answers = "answers"


@dataclass(frozen=True)
class SyncResult:
    """Whether a mutation or refresh reached the remote.

    `deferred` means the local cache holds the change and the next
    load or save will retry it.
    """

    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> "SyncResult":
        return cls(ok=True)

    @classmethod
    def deferred(cls, reason: str) -> "SyncResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class ProgressUpdate:
    progress: OnboardingProgress
    sync: SyncResult


@dataclass(frozen=True)
class AnswerUpdate:
    answers: AnswerSet
    completion: CompletionReport
    sync: SyncResult


@dataclass(frozen=True)
class CompletionOutcome:
    answers: AnswerSet
    user: UserProfile | None
    sync: SyncResult


class SyncStateRecord(BaseModel):
    """Cached sync state per channel for one user."""

    progress: SyncState = SyncState.local_only
    answers: SyncState = SyncState.local_only

    def of(self, channel: SyncChannel) -> SyncState:
        return getattr(self, channel.value)

    def mark(self, channel: SyncChannel, state: SyncState) -> None:
        setattr(self, channel.value, state)
