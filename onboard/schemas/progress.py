from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from onboard.schemas.answers import UtcDateTime


class StepTemplate(BaseModel):
    """Static catalog entry for a coarse onboarding step."""

    id: str
    title: str
    description: str = ""
    icon: str = ""
    is_required: bool
    order: int
    screen_ref: str = ""

    model_config = ConfigDict(frozen=True)


class OnboardingStep(BaseModel):
    id: str
    title: str
    description: str = ""
    icon: str = ""
    is_required: bool
    is_completed: bool = False
    order: int
    screen_ref: str = ""

    @classmethod
    def from_template(cls, template: StepTemplate, *, is_completed: bool = False) -> "OnboardingStep":
        return cls(**template.model_dump(), is_completed=is_completed)


class OnboardingProgress(BaseModel):
    """Per-user step-wizard progress, as persisted in the local cache.

    completed_step_ids may hold ids that are no longer in the catalog;
    they are kept so the set never shrinks, but `steps` only lists
    catalog entries.
    """

    user_id: str
    current_step_order: int
    total_steps: int
    completed_step_ids: list[str] = Field(default_factory=list)
    is_completed: bool = False
    last_updated: datetime
    steps: list[OnboardingStep] = Field(default_factory=list)


class ProgressPayload(BaseModel):
    """Wire shape of POST/GET /users/onboarding-progress."""

    current_step: int = 1
    completed_steps: list[str] = Field(default_factory=list)
    is_completed: bool = False
    last_updated: UtcDateTime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_progress(cls, progress: OnboardingProgress) -> "ProgressPayload":
        return cls(
            current_step=progress.current_step_order,
            completed_steps=list(progress.completed_step_ids),
            is_completed=progress.is_completed,
            last_updated=progress.last_updated,
        )
