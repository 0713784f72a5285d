"""Recommendation engine: next question, next step, next action.

Greedy and order-stable. For a given answered set the same question comes
back every time, so callers may re-ask after a failed submit.
"""

from collections.abc import Iterable, Sequence

from onboard.schemas.completion import ActionKind, CompletionReport, RecommendedAction
from onboard.schemas.progress import OnboardingProgress, OnboardingStep
from onboard.schemas.questions import MatchingValue, OnboardingPhase, UnifiedQuestion
from onboard.services import question_catalog

# Matching values that jump the queue, highest priority first.
PRIORITY_MATCHING_VALUES = (MatchingValue.critical, MatchingValue.high)


def next_question(
    answered_ids: Iterable[str],
    *,
    phases: Sequence[OnboardingPhase] | None = None,
) -> UnifiedQuestion | None:
    answered = set(answered_ids)
    questions = question_catalog.all_questions(phases)

    for value in PRIORITY_MATCHING_VALUES:
        for question in questions:
            if question.matching_value == value and question.id not in answered:
                return question

    return next((q for q in questions if q.id not in answered), None)


def next_step(progress: OnboardingProgress) -> OnboardingStep | None:
    """First incomplete step in catalog order, required or not."""
    for step in sorted(progress.steps, key=lambda s: s.order):
        if not step.is_completed:
            return step
    return None


def recommended_action(
    progress: OnboardingProgress | None,
    profile: CompletionReport | None = None,
) -> RecommendedAction:
    """What the app should steer the user towards next.

    `profile` is the unified-flow completion; when the step wizard is done
    but the profile is below the completion threshold the user is sent to
    finish it.
    """
    if progress is None:
        return RecommendedAction(
            action=ActionKind.continue_onboarding,
            message="Let's get you started with YoFam!",
            screen="Welcome",
        )

    if not progress.is_completed:
        step = next_step(progress)
        return RecommendedAction(
            action=ActionKind.continue_onboarding,
            message=f"Next: {step.title}" if step else "Continue setup",
            screen=step.screen_ref if step else None,
        )

    if profile is not None and not profile.is_complete:
        return RecommendedAction(
            action=ActionKind.complete_profile,
            message="Complete your profile for better matches",
            screen="Profile",
        )

    return RecommendedAction(
        action=ActionKind.explore_app,
        message="You're all set! Start exploring.",
        screen="MainApp",
    )
