from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from onboard.models.base import as_utc

COMPLETED_PHASE = "completed"

# Remote timestamps may arrive without an offset; merges compare them with
# local UTC stamps.
UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class AnswerRecord(BaseModel):
    value: Any = None
    answered_at: UtcDateTime


class AnswerSet(BaseModel):
    """Unified-flow answers for one user, keyed by question id.

    `pending_ids` lists answers written locally that the remote has not
    acknowledged yet.
    """

    user_id: str
    phase: str = "essential"
    answers: dict[str, AnswerRecord] = Field(default_factory=dict)
    pending_ids: list[str] = Field(default_factory=list)
    completed: bool = False
    last_updated: UtcDateTime | None = None

    @property
    def answered_ids(self) -> set[str]:
        return set(self.answers)

    def values(self) -> dict[str, Any]:
        return {qid: record.value for qid, record in self.answers.items()}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SaveAnswerRequest(_CamelModel):
    question_id: str = Field(..., min_length=1, max_length=100)
    answer: Any = None
    phase: str | None = None
    answered_at: UtcDateTime | None = None


class SaveBatchRequest(_CamelModel):
    responses: dict[str, Any] = Field(default_factory=dict)
    phase: str | None = None
    is_complete: bool = False
    answered_at: dict[str, UtcDateTime] = Field(default_factory=dict)


class CompleteRequest(_CamelModel):
    phase: str = COMPLETED_PHASE


class AnswersResponse(_CamelModel):
    answers: dict[str, Any] = Field(default_factory=dict)
    answered_at: dict[str, UtcDateTime] = Field(default_factory=dict)
    phase: str = "essential"
    completed: bool = False
    completion_percentage: int = 0


class SaveResponse(_CamelModel):
    completion_percentage: int = 0
    user: dict[str, Any] | None = None


class StatusResponse(_CamelModel):
    current_phase: str
    recommended_phase: str
    completion_percentage: int
    is_complete: bool
    can_use_app: bool
    answered_count: int
