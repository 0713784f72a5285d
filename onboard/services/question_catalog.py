"""Static catalog of unified-flow questions, grouped into phases.

Phase order (essential → core → rich) and question order inside each
phase are the order every "first unanswered" lookup walks.
"""

from collections.abc import Sequence

from onboard.schemas.questions import MatchingValue, OnboardingPhase, PhaseId, UnifiedQuestion


def _q(id, question, placeholder, type, phase, category, matching_value, *, required=False,
       field=None, options=(), validation=None, help_text=None) -> UnifiedQuestion:
    return UnifiedQuestion(
        id=id,
        field=field or id,
        question=question,
        placeholder=placeholder,
        type=type,
        phase=phase,
        category=category,
        matching_value=matching_value,
        required=required,
        options=tuple(options),
        validation=validation,
        help_text=help_text,
    )


_ESSENTIAL = (
    _q("email", "What's your email address?", "Enter your email", "text", "essential", "auth", "low",
       required=True, validation="email"),
    _q("phone", "What's your phone number?", "Enter your phone number", "text", "essential", "auth", "low",
       required=True),
    _q("full_name", "What's your full name?", "Enter your full name", "text", "essential", "basic", "critical",
       required=True, help_text="This helps us find family members and relatives"),
    _q("username", "Choose a username", "Choose a unique username", "text", "essential", "basic", "low",
       required=True),
    _q("date_of_birth", "When were you born?", "Select your date of birth", "date", "essential", "basic", "high",
       required=True, help_text="Helps us match you with people of similar age"),
    _q("gender", "What's your gender?", "Select your gender", "select", "essential", "basic", "medium",
       options=("Male", "Female", "Other", "Prefer not to say")),
    _q("current_location", "Where do you currently live?", "City, Country", "location", "essential", "basic",
       "high", required=True, help_text="Find people in your area"),
    _q("father_name", "What is your father's full name?", "Enter your father's full name", "text", "essential",
       "family", "critical", required=True, help_text="Essential for finding family members and siblings"),
    _q("mother_name", "What is your mother's full name?", "Enter your mother's full name", "text", "essential",
       "family", "critical", required=True, help_text="Essential for finding family members and siblings"),
    _q("family_origin", "Where is your family originally from?", "City, region, or country of family origin",
       "text", "essential", "cultural", "critical", required=True,
       help_text="Connects you with people from your ancestral homeland"),
    _q("primary_language", "What is your primary language?", "Your main language", "text", "essential",
       "cultural", "high", required=True, help_text="Find people who speak your language"),
)

_CORE = (
    _q("siblings_names", "What are your siblings' names?", "List your brothers and sisters (optional)",
       "multiline", "core", "family", "high", help_text="Helps find siblings and extended family"),
    _q("family_languages", "What languages does your family speak?",
       "List all languages, dialects, or tribal languages", "multiline", "core", "cultural", "high",
       help_text="Important for cultural and regional connections"),
    _q("previous_locations", "Where have you lived before?", "Previous cities or places you've lived",
       "multiline", "core", "social", "high", help_text="Connect with people from places you've lived"),
    _q("schools_attended", "What schools did you attend?", "Primary school, high school, university names",
       "multiline", "core", "social", "high", help_text="Find former classmates and school friends"),
    _q("profession", "What do you do for work?", "Your profession or field of work", "text", "core", "social",
       "medium", help_text="Connect with people in your industry"),
    _q("cultural_background", "What's your cultural or ethnic background?",
       "Your cultural, ethnic, or tribal identity", "text", "core", "cultural", "high",
       help_text="Find people who share your cultural heritage"),
    _q("religious_background", "What's your religious or spiritual background?",
       "Your faith, beliefs, or spiritual practices", "text", "core", "cultural", "medium",
       help_text="Connect with people who share your beliefs"),
    _q("family_traditions", "What traditions does your family practice?",
       "Cultural traditions, celebrations, or customs", "multiline", "core", "cultural", "medium",
       help_text="Find people who share similar traditions"),
)

_RICH = (
    _q("personal_bio", "Tell us about yourself",
       "Share your personality, interests, what makes you unique...", "story", "rich", "stories", "medium",
       help_text="Help people understand who you are"),
    _q("childhood_nickname", "Did you have a nickname growing up?", "What did family and friends call you?",
       "text", "rich", "stories", "medium"),
    _q("family_stories", "Share a story about your family", "Family history, traditions, memorable moments...",
       "story", "rich", "stories", "high",
       help_text="Stories often contain names and details that help matching"),
    _q("migration_history", "Tell us about your family's journey",
       "How did your family come to live where they are now?", "story", "rich", "stories", "high",
       help_text="Migration patterns help find family connections"),
    _q("childhood_memories", "Share your favorite childhood memories",
       "Special moments, places you lived, friends you had...", "story", "rich", "stories", "medium"),
    _q("hobbies_interests", "What are your hobbies and interests?",
       "Sports, music, reading, cooking, traveling...", "multiline", "rich", "social", "low"),
    _q("profile_picture", "Add your profile photo", "Upload your main profile picture", "image", "rich",
       "media", "low", field="profile_picture_url"),
)

_PHASES: tuple[OnboardingPhase, ...] = (
    OnboardingPhase(
        id=PhaseId.essential,
        name="Get Started",
        description="Essential info to create your account and enable basic matching",
        estimated_time="3-4 minutes",
        required_for_app=True,
        benefits=("Create account", "Basic family matching", "Start browsing"),
        questions=_ESSENTIAL,
    ),
    OnboardingPhase(
        id=PhaseId.core,
        name="Build Your Profile",
        description="Add details that help us find better matches and connections",
        estimated_time="5-7 minutes",
        required_for_app=False,
        benefits=("Better family matching", "Friend connections", "Community discovery"),
        questions=_CORE,
    ),
    OnboardingPhase(
        id=PhaseId.rich,
        name="Share Your Story",
        description="Tell your story and unlock premium matching features",
        estimated_time="6-8 minutes",
        required_for_app=False,
        benefits=("Premium matching", "Detailed connections", "Family tree insights"),
        questions=_RICH,
    ),
)


def list_phases() -> list[OnboardingPhase]:
    """All phases in flow order."""
    return list(_PHASES)


def _resolve(phases: Sequence[OnboardingPhase] | None) -> Sequence[OnboardingPhase]:
    return _PHASES if phases is None else phases


def all_questions(phases: Sequence[OnboardingPhase] | None = None) -> list[UnifiedQuestion]:
    return [q for phase in _resolve(phases) for q in phase.questions]


def total_questions(phases: Sequence[OnboardingPhase] | None = None) -> int:
    return len(all_questions(phases))


def get_question(question_id: str, phases: Sequence[OnboardingPhase] | None = None) -> UnifiedQuestion | None:
    for question in all_questions(phases):
        if question.id == question_id:
            return question
    return None


def get_phase(phase_id: PhaseId | str, phases: Sequence[OnboardingPhase] | None = None) -> OnboardingPhase | None:
    for phase in _resolve(phases):
        if phase.id == phase_id:
            return phase
    return None


def questions_for_phase(
    phase_id: PhaseId | str, phases: Sequence[OnboardingPhase] | None = None
) -> list[UnifiedQuestion]:
    phase = get_phase(phase_id, phases)
    return list(phase.questions) if phase else []


def essential_questions(phases: Sequence[OnboardingPhase] | None = None) -> list[UnifiedQuestion]:
    return questions_for_phase(PhaseId.essential, phases)


def questions_by_matching_value(
    value: MatchingValue | str, phases: Sequence[OnboardingPhase] | None = None
) -> list[UnifiedQuestion]:
    return [q for q in all_questions(phases) if q.matching_value == value]


def critical_matching_questions(phases: Sequence[OnboardingPhase] | None = None) -> list[UnifiedQuestion]:
    return questions_by_matching_value(MatchingValue.critical, phases)
