"""Recommendation engine tests: question priority, next step, next action."""

from onboard.schemas.completion import ActionKind
from onboard.services import completion, question_catalog, recommendation, step_registry
from onboard.services.progress_store import build_progress

CRITICAL = ["full_name", "father_name", "mother_name", "family_origin"]
HIGH = [q.id for q in question_catalog.questions_by_matching_value("high")]


def test_first_question_is_first_critical():
    assert recommendation.next_question([]).id == "full_name"


def test_critical_before_high_regardless_of_catalog_position():
    question = recommendation.next_question(["full_name", "father_name"])
    assert question.id == "mother_name"


def test_high_after_all_critical():
    question = recommendation.next_question(CRITICAL)
    assert question.id == "date_of_birth"


def test_catalog_order_after_critical_and_high():
    question = recommendation.next_question(CRITICAL + HIGH)
    # email is the first question in the catalog and is tagged low
    assert question.id == "email"


def test_none_when_everything_answered():
    answered = [q.id for q in question_catalog.all_questions()]
    assert recommendation.next_question(answered) is None


def test_next_question_is_stable():
    answered = {"full_name", "email", "profession"}
    first = recommendation.next_question(answered)
    for _ in range(5):
        assert recommendation.next_question(set(answered)) == first


def test_next_step_includes_optional_steps():
    steps = step_registry.list_steps()
    progress = build_progress("u", ["welcome", "permissions"], steps)
    assert recommendation.next_step(progress).id == "profile_photo"


def test_next_step_none_when_all_done():
    steps = step_registry.list_steps()
    progress = build_progress("u", [s.id for s in steps], steps)
    assert recommendation.next_step(progress) is None


def test_action_without_progress_starts_onboarding():
    action = recommendation.recommended_action(None)
    assert action.action == ActionKind.continue_onboarding
    assert action.screen == "Welcome"


def test_action_continues_with_next_step():
    progress = build_progress("u", ["welcome"], step_registry.list_steps())
    action = recommendation.recommended_action(progress)
    assert action.action == ActionKind.continue_onboarding
    assert action.message == "Next: Permissions"
    assert action.screen == "PermissionsSetup"


def test_action_asks_for_profile_when_questions_lag():
    steps = step_registry.list_steps()
    progress = build_progress("u", [s.id for s in steps if s.is_required], steps)
    report = completion.calculate_unified_completion(["full_name"])
    action = recommendation.recommended_action(progress, report)
    assert action.action == ActionKind.complete_profile


def test_action_explore_when_done():
    steps = step_registry.list_steps()
    progress = build_progress("u", [s.id for s in steps if s.is_required], steps)
    report = completion.calculate_unified_completion([q.id for q in question_catalog.all_questions()])
    assert recommendation.recommended_action(progress, report).action == ActionKind.explore_app
    assert recommendation.recommended_action(progress).action == ActionKind.explore_app
