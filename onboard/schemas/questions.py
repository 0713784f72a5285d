import enum

from pydantic import BaseModel, ConfigDict


class PhaseId(str, enum.Enum):
    essential = "essential"
    core = "core"
    rich = "rich"


class MatchingValue(str, enum.Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class QuestionType(str, enum.Enum):
    text = "text"
    multiline = "multiline"
    select = "select"
    date = "date"
    story = "story"
    card_select = "card-select"
    image = "image"
    location = "location"


class QuestionCategory(str, enum.Enum):
    auth = "auth"
    basic = "basic"
    family = "family"
    cultural = "cultural"
    social = "social"
    stories = "stories"
    media = "media"


class UnifiedQuestion(BaseModel):
    id: str
    field: str
    phase: PhaseId
    matching_value: MatchingValue
    required: bool = False
    type: QuestionType = QuestionType.text
    question: str = ""
    placeholder: str = ""
    category: QuestionCategory | None = None
    options: tuple[str, ...] = ()
    validation: str | None = None
    help_text: str | None = None

    model_config = ConfigDict(frozen=True)


class OnboardingPhase(BaseModel):
    id: PhaseId
    name: str = ""
    description: str = ""
    estimated_time: str = ""
    required_for_app: bool = False
    benefits: tuple[str, ...] = ()
    questions: tuple[UnifiedQuestion, ...] = ()

    model_config = ConfigDict(frozen=True)
