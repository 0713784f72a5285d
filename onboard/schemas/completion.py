import enum

from pydantic import BaseModel


class CompletionReport(BaseModel):
    """Weighted completion of the unified question flow."""

    percentage: int
    phase_percentages: dict[str, float]
    is_complete: bool
    essential_complete: bool
    core_complete: bool
    rich_complete: bool
    answered_count: int
    total_questions: int


class ActionKind(str, enum.Enum):
    continue_onboarding = "continue_onboarding"
    complete_profile = "complete_profile"
    explore_app = "explore_app"


class RecommendedAction(BaseModel):
    action: ActionKind
    message: str
    screen: str | None = None
