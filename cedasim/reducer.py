"""State updates as explicit actions applied by one pure reducer.

Every mutation of SimulationState goes through reduce(): it takes the
current state and an action and returns a new state, never touching the
old one. Illegal updates (an answer without its question, a rebuttal out of
turn, a phase jump the state machine forbids) raise instead of silently
corrupting the run.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from cedasim.models import (
    ChatMessage,
    Conclusion,
    ConstructiveSpeech,
    Contention,
    CrossExamSet,
    EvidenceItem,
    FollowUpRound,
    FramedIssue,
    Introduction,
    MetaAnalysis,
    ProConArguments,
    RebuttalItem,
    RebuttalSet,
    Sector,
    SectorStatus,
    Side,
    SimulationState,
    initial_sector_statuses,
)
from cedasim.phases import Phase, check_transition
from cedasim.turns import rebuttal_turn


class InvalidAction(ValueError):
    """Raised when an action cannot be applied to the current state."""


# --- Actions ---------------------------------------------------------------

@dataclass(frozen=True)
class SetTopic:
    topic: str


@dataclass(frozen=True)
class BeginFraming:
    pass


@dataclass(frozen=True)
class IssueFramed:
    issue: FramedIssue
    welcome: ChatMessage


@dataclass(frozen=True)
class RefineRequested:
    message: ChatMessage


@dataclass(frozen=True)
class IssueRefined:
    draft: FramedIssue
    message: ChatMessage


@dataclass(frozen=True)
class EditIssue:
    issue: FramedIssue


@dataclass(frozen=True)
class BeginResearch:
    pass


@dataclass(frozen=True)
class SectorDispatched:
    sector: Sector


@dataclass(frozen=True)
class SectorResearched:
    sector: Sector
    evidence: tuple[EvidenceItem, ...] = ()


@dataclass(frozen=True)
class EvidenceAdded:
    evidence: tuple[EvidenceItem, ...]


@dataclass(frozen=True)
class EnterPhase:
    phase: Phase


@dataclass(frozen=True)
class SetTyping:
    typing: bool


@dataclass(frozen=True)
class RevealIntroduction:
    side: Side
    introduction: Introduction


@dataclass(frozen=True)
class RevealContention:
    side: Side
    index: int
    contention: Contention


@dataclass(frozen=True)
class RevealConclusion:
    side: Side
    conclusion: Conclusion


@dataclass(frozen=True)
class RevealQuestion:
    asker: Side
    text: str


@dataclass(frozen=True)
class RevealAnswer:
    asker: Side
    text: str


@dataclass(frozen=True)
class RevealRebuttal:
    side: Side
    item: RebuttalItem


@dataclass(frozen=True)
class AnalysisReady:
    analysis: MetaAnalysis


@dataclass(frozen=True)
class FollowUpOpened:
    round: FollowUpRound


@dataclass(frozen=True)
class FollowUpAnswered:
    side: Side
    answer: str


@dataclass(frozen=True)
class FollowUpFinished:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Reset:
    pass


Action = (
    SetTopic | BeginFraming | IssueFramed | RefineRequested | IssueRefined | EditIssue
    | BeginResearch | SectorDispatched | SectorResearched | EvidenceAdded | EnterPhase
    | SetTyping | RevealIntroduction | RevealContention | RevealConclusion | RevealQuestion
    | RevealAnswer | RevealRebuttal | AnalysisReady | FollowUpOpened | FollowUpAnswered
    | FollowUpFinished | Failed | Reset
)

_A = TypeVar("_A")
_HANDLERS: dict[type, Callable[[SimulationState, object], SimulationState]] = {}


def _handles(action_type: type[_A]):
    def register(fn: Callable[[SimulationState, _A], SimulationState]):
        _HANDLERS[action_type] = fn
        return fn
    return register


def reduce(state: SimulationState, action: Action) -> SimulationState:
    """Apply ``action`` to ``state`` and return the new state."""
    try:
        handler = _HANDLERS[type(action)]
    except KeyError:
        raise InvalidAction(f"Unknown action: {action!r}") from None
    return handler(state, action)


def _goto(state: SimulationState, phase: Phase) -> Phase:
    return check_transition(state.status, phase)


# --- Framing ---------------------------------------------------------------

@_handles(SetTopic)
def _set_topic(state: SimulationState, action: SetTopic) -> SimulationState:
    return replace(state, original_topic=action.topic)


@_handles(BeginFraming)
def _begin_framing(state: SimulationState, action: BeginFraming) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.FRAMING),
        error=None,
        framing_chat=(),
        additional_rounds=(),
        sector_statuses=initial_sector_statuses(),
    )


@_handles(IssueFramed)
def _issue_framed(state: SimulationState, action: IssueFramed) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.WAITING_CONFIRMATION),
        framed_issue=action.issue,
        framing_chat=(action.welcome,),
    )


@_handles(RefineRequested)
def _refine_requested(state: SimulationState, action: RefineRequested) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.REFINING),
        framing_chat=state.framing_chat + (action.message,),
    )


@_handles(IssueRefined)
def _issue_refined(state: SimulationState, action: IssueRefined) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.WAITING_CONFIRMATION),
        framed_issue=action.draft,
        framing_chat=state.framing_chat + (action.message,),
    )


@_handles(EditIssue)
def _edit_issue(state: SimulationState, action: EditIssue) -> SimulationState:
    if state.status is not Phase.WAITING_CONFIRMATION:
        raise InvalidAction(f"Issue can only be edited while waiting for confirmation, not in {state.status.value}")
    return replace(state, framed_issue=action.issue)


# --- Research --------------------------------------------------------------

@_handles(BeginResearch)
def _begin_research(state: SimulationState, action: BeginResearch) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.RESEARCHING),
        evidence_board=(),
        sector_statuses=initial_sector_statuses(),
    )


def _move_sector(
    state: SimulationState,
    sector: Sector,
    expected: SectorStatus,
    target: SectorStatus,
) -> dict[Sector, SectorStatus]:
    current = state.sector_statuses[sector]
    if current is not expected:
        raise InvalidAction(f"Sector {sector.value} is {current.value}, expected {expected.value}")
    statuses = dict(state.sector_statuses)
    statuses[sector] = target
    return statuses


@_handles(SectorDispatched)
def _sector_dispatched(state: SimulationState, action: SectorDispatched) -> SimulationState:
    return replace(
        state,
        sector_statuses=_move_sector(state, action.sector, SectorStatus.PENDING, SectorStatus.LOADING),
    )


@_handles(SectorResearched)
def _sector_researched(state: SimulationState, action: SectorResearched) -> SimulationState:
    return replace(
        state,
        evidence_board=(state.evidence_board or ()) + action.evidence,
        sector_statuses=_move_sector(state, action.sector, SectorStatus.LOADING, SectorStatus.COMPLETED),
    )


@_handles(EvidenceAdded)
def _evidence_added(state: SimulationState, action: EvidenceAdded) -> SimulationState:
    return replace(state, evidence_board=(state.evidence_board or ()) + action.evidence)


# --- Debate ----------------------------------------------------------------

@_handles(EnterPhase)
def _enter_phase(state: SimulationState, action: EnterPhase) -> SimulationState:
    return replace(state, status=_goto(state, action.phase))


@_handles(SetTyping)
def _set_typing(state: SimulationState, action: SetTyping) -> SimulationState:
    return replace(state, is_typing=action.typing)


def _with_speech(state: SimulationState, side: Side, speech: ConstructiveSpeech) -> SimulationState:
    args = state.arguments or ProConArguments()
    if side is Side.PRO:
        args = replace(args, pro_speech=speech)
    else:
        args = replace(args, con_speech=speech)
    return replace(state, arguments=args)


def _speech(state: SimulationState, side: Side) -> ConstructiveSpeech:
    if state.arguments is None:
        return ConstructiveSpeech()
    return state.arguments.speech(side)


@_handles(RevealIntroduction)
def _reveal_introduction(state: SimulationState, action: RevealIntroduction) -> SimulationState:
    return _with_speech(state, action.side, ConstructiveSpeech(introduction=action.introduction))


@_handles(RevealContention)
def _reveal_contention(state: SimulationState, action: RevealContention) -> SimulationState:
    speech = _speech(state, action.side)
    if speech.introduction is None:
        raise InvalidAction(f"{action.side.value} contention revealed before its introduction")
    if action.index != len(speech.contentions):
        raise InvalidAction(
            f"{action.side.value} contention {action.index} out of order "
            f"({len(speech.contentions)} already revealed)"
        )
    return _with_speech(
        state, action.side, replace(speech, contentions=speech.contentions + (action.contention,))
    )


@_handles(RevealConclusion)
def _reveal_conclusion(state: SimulationState, action: RevealConclusion) -> SimulationState:
    speech = _speech(state, action.side)
    if speech.introduction is None:
        raise InvalidAction(f"{action.side.value} conclusion revealed before its introduction")
    return _with_speech(state, action.side, replace(speech, conclusion=action.conclusion))


@_handles(RevealQuestion)
def _reveal_question(state: SimulationState, action: RevealQuestion) -> SimulationState:
    cx = state.cross_exam or CrossExamSet()
    if action.asker is Side.PRO:
        cx = replace(cx, pro_questions=cx.pro_questions + (action.text,))
    else:
        cx = replace(cx, con_questions=cx.con_questions + (action.text,))
    return replace(state, cross_exam=cx)


@_handles(RevealAnswer)
def _reveal_answer(state: SimulationState, action: RevealAnswer) -> SimulationState:
    cx = state.cross_exam or CrossExamSet()
    if len(cx.answers(action.asker)) >= len(cx.questions(action.asker)):
        raise InvalidAction(f"Answer to {action.asker.value} question revealed before the question")
    if action.asker is Side.PRO:
        cx = replace(cx, con_answers=cx.con_answers + (action.text,))
    else:
        cx = replace(cx, pro_answers=cx.pro_answers + (action.text,))
    return replace(state, cross_exam=cx)


@_handles(RevealRebuttal)
def _reveal_rebuttal(state: SimulationState, action: RevealRebuttal) -> SimulationState:
    rebuttals = state.rebuttals or RebuttalSet()
    expected = rebuttal_turn(rebuttals)
    if action.side is not expected:
        raise InvalidAction(f"Rebuttal out of turn: {action.side.value} spoke, {expected.value} expected")
    if action.side is Side.PRO:
        rebuttals = replace(rebuttals, pro_rebuttals=rebuttals.pro_rebuttals + (action.item,))
    else:
        rebuttals = replace(rebuttals, con_rebuttals=rebuttals.con_rebuttals + (action.item,))
    return replace(state, rebuttals=rebuttals)


@_handles(AnalysisReady)
def _analysis_ready(state: SimulationState, action: AnalysisReady) -> SimulationState:
    if state.analysis is not None:
        raise InvalidAction("Analysis already written")
    return replace(state, status=_goto(state, Phase.COMPLETE), analysis=action.analysis, is_typing=False)


# --- Follow-up rounds ------------------------------------------------------

@_handles(FollowUpOpened)
def _follow_up_opened(state: SimulationState, action: FollowUpOpened) -> SimulationState:
    if state.status is not Phase.COMPLETE:
        raise InvalidAction("Follow-up rounds start only after the debate is complete")
    if state.is_generating_round:
        raise InvalidAction("A follow-up round is already being answered")
    return replace(
        state,
        additional_rounds=state.additional_rounds + (action.round,),
        is_generating_round=True,
    )


@_handles(FollowUpAnswered)
def _follow_up_answered(state: SimulationState, action: FollowUpAnswered) -> SimulationState:
    if not state.additional_rounds:
        raise InvalidAction("No follow-up round to answer")
    last = state.additional_rounds[-1]
    if action.side is Side.PRO:
        last = replace(last, pro_answer=action.answer)
    else:
        last = replace(last, con_answer=action.answer)
    return replace(state, additional_rounds=state.additional_rounds[:-1] + (last,))


@_handles(FollowUpFinished)
def _follow_up_finished(state: SimulationState, action: FollowUpFinished) -> SimulationState:
    return replace(state, is_generating_round=False, is_typing=False)


# --- Lifecycle -------------------------------------------------------------

@_handles(Failed)
def _failed(state: SimulationState, action: Failed) -> SimulationState:
    return replace(
        state,
        status=_goto(state, Phase.ERROR),
        error=action.message,
        is_generating_round=False,
        is_typing=False,
    )


@_handles(Reset)
def _reset(state: SimulationState, action: Reset) -> SimulationState:
    return SimulationState()
