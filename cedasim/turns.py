"""Whose turn is it? One derivation shared by the driver and the timeline.

Turns are inferred purely from how many items have already been revealed,
so the answer mirrors the reveal order the driver follows: a cross-exam
question is always followed by its answer, and rebuttal rounds always go
Con first, then Pro.
"""

from cedasim.models import CrossExamSet, FollowUpRound, RebuttalSet, Side, SimulationState
from cedasim.phases import Phase

# Cross-exam phase -> the side asking the questions.
CX_ASKER: dict[Phase, Side] = {
    Phase.CON_CX: Side.CON,
    Phase.PRO_CX: Side.PRO,
}

CONSTRUCTIVE_SPEAKER: dict[Phase, Side] = {
    Phase.PRO_CONSTRUCTIVE: Side.PRO,
    Phase.CON_CONSTRUCTIVE: Side.CON,
}


def cross_exam_turn(asker: Side, cross_exam: CrossExamSet | None) -> Side:
    """Side expected to speak next in ``asker``'s cross-examination period."""
    if cross_exam is None:
        return asker
    if len(cross_exam.questions(asker)) > len(cross_exam.answers(asker)):
        return asker.opponent
    return asker


def rebuttal_turn(rebuttals: RebuttalSet | None) -> Side:
    """Con opens every round; Pro answers once Con is one item ahead."""
    if rebuttals is None:
        return Side.CON
    if len(rebuttals.con_rebuttals) == len(rebuttals.pro_rebuttals):
        return Side.CON
    return Side.PRO


def follow_up_turn(round_: FollowUpRound) -> Side | None:
    if round_.pro_answer is None:
        return Side.PRO
    if round_.con_answer is None:
        return Side.CON
    return None


def acting_side(state: SimulationState) -> Side | None:
    """Side expected to act next in the current main-debate phase."""
    phase = state.status
    if phase in CONSTRUCTIVE_SPEAKER:
        return CONSTRUCTIVE_SPEAKER[phase]
    if phase in CX_ASKER:
        return cross_exam_turn(CX_ASKER[phase], state.cross_exam)
    if phase is Phase.REBUTTAL:
        return rebuttal_turn(state.rebuttals)
    return None
