"""Completion calculator: step percentage and weighted question completion.

Ids not present in the catalog are ignored on both sides of every ratio.
"""

import math
from collections.abc import Iterable, Sequence

from onboard.config import CompletionPolicy
from onboard.schemas.answers import COMPLETED_PHASE
from onboard.schemas.completion import CompletionReport
from onboard.schemas.progress import OnboardingProgress
from onboard.schemas.questions import OnboardingPhase, PhaseId
from onboard.services import question_catalog


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def step_percentage(progress: OnboardingProgress) -> int:
    """Share of required steps completed, 0-100. No required steps → 100."""
    required = [s for s in progress.steps if s.is_required]
    if not required:
        return 100
    done = sum(1 for s in required if s.is_completed)
    return _clamp(round_half_up(done / len(required) * 100))


def phase_ratio(phase: OnboardingPhase, answered: set[str]) -> float:
    """Fraction of the phase answered.

    A phase with required questions is measured over those; otherwise over
    all of its questions. An empty basis counts as fully answered.
    """
    basis = [q for q in phase.questions if q.required] or list(phase.questions)
    if not basis:
        return 1.0
    return sum(1 for q in basis if q.id in answered) / len(basis)


def calculate_unified_completion(
    answered_ids: Iterable[str],
    *,
    phases: Sequence[OnboardingPhase] | None = None,
    policy: CompletionPolicy | None = None,
) -> CompletionReport:
    policy = policy or CompletionPolicy.default()
    phases = question_catalog.list_phases() if phases is None else phases
    answered = set(answered_ids)

    phase_percentages: dict[str, float] = {}
    for phase in phases:
        weight = policy.phase_weights.get(phase.id.value, 0)
        phase_percentages[phase.id.value] = phase_ratio(phase, answered) * weight
    percentage = _clamp(round_half_up(sum(phase_percentages.values())))

    def _answered_in(phase_id: PhaseId) -> tuple[int, int]:
        questions = question_catalog.questions_for_phase(phase_id, phases)
        return sum(1 for q in questions if q.id in answered), len(questions)

    essential = question_catalog.essential_questions(phases)
    essential_complete = all(q.id in answered for q in essential if q.required)
    core_answered, core_total = _answered_in(PhaseId.core)
    rich_answered, rich_total = _answered_in(PhaseId.rich)

    catalog_ids = {q.id for q in question_catalog.all_questions(phases)}
    return CompletionReport(
        percentage=percentage,
        phase_percentages=phase_percentages,
        is_complete=percentage >= policy.completion_threshold,
        essential_complete=essential_complete,
        core_complete=core_answered >= core_total * policy.core_complete_ratio,
        rich_complete=rich_answered >= rich_total * policy.rich_complete_ratio,
        answered_count=len(answered & catalog_ids),
        total_questions=len(catalog_ids),
    )


def recommended_phase(report: CompletionReport) -> str:
    """First phase whose completion flag is still false."""
    if not report.essential_complete:
        return PhaseId.essential.value
    if not report.core_complete:
        return PhaseId.core.value
    if not report.rich_complete:
        return PhaseId.rich.value
    return COMPLETED_PHASE
