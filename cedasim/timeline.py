"""Project SimulationState into an ordered, display-ready list of events.

project_timeline() is pure: the same state and gate flags always give an
equal tuple, and event ids are stable across recomputations, so a renderer
can diff two projections by id and draw only what was appended.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from cedasim.models import (
    ConstructiveSpeech,
    CrossExamSet,
    RebuttalSet,
    Side,
    SimulationState,
)
from cedasim.phases import Phase
from cedasim.turns import acting_side, follow_up_turn, rebuttal_turn

logger = logging.getLogger(__name__)

DEFAULT_LABELS: dict[str, str] = {
    "arguing_pro": "Affirmative Constructive",
    "cx_con": "Negative Cross-Examination",
    "arguing_con": "Negative Constructive",
    "cx_pro": "Affirmative Cross-Examination",
    "rebuttal_con": "Rebuttals",
    "analyzing_loading": "Analyzing the debate...",
    "follow_up_title": "Follow Up",
}


class EventType(str, Enum):
    INTRO = "intro"
    ARGUMENT = "argument"
    CONCLUSION = "conclusion"
    REBUTTAL = "rebuttal"
    QUESTION = "question"
    ANSWER = "answer"
    USER_QUERY = "user-query"
    DIVIDER = "divider"
    LOADING = "loading"
    ANALYZING = "analyzing"


@dataclass(frozen=True)
class TimelineEvent:
    id: str
    type: EventType
    side: str                    # "pro", "con", "user" or "center"
    content: str = ""
    title: str | None = None
    defense: str | None = None
    ref_id: str | None = None
    evidence: tuple[str, ...] = ()
    label: str | None = None
    sector: str | None = None
    meta: dict[str, str] = field(default_factory=dict)


# Divider per debate phase: (event id, label key, side).
_DIVIDERS: dict[Phase, tuple[str, str, str]] = {
    Phase.PRO_CONSTRUCTIVE: ("divider-pro-const", "arguing_pro", "pro"),
    Phase.CON_CX: ("divider-con-cx", "cx_con", "con"),
    Phase.CON_CONSTRUCTIVE: ("divider-con-const", "arguing_con", "con"),
    Phase.PRO_CX: ("divider-pro-cx", "cx_pro", "pro"),
    Phase.REBUTTAL: ("divider-rebuttal", "rebuttal_con", "con"),
}

_NO_PENDING = frozenset({Phase.COMPLETE, Phase.ERROR, Phase.IDLE, Phase.RESEARCHING})


class _Builder:
    """Accumulates events; each phase divider is emitted at most once."""

    def __init__(self, labels: Mapping[str, str]) -> None:
        self.labels = labels
        self.events: list[TimelineEvent] = []
        self._rendered: set[Phase] = set()

    def add(self, event: TimelineEvent) -> None:
        self.events.append(event)

    def divider(self, phase: Phase) -> None:
        if phase in self._rendered:
            return
        event_id, label_key, side = _DIVIDERS[phase]
        self.add(TimelineEvent(id=event_id, type=EventType.DIVIDER, side=side, content=self.labels[label_key]))
        self._rendered.add(phase)

    def loading(self, event_id: str, side: str) -> None:
        self.add(TimelineEvent(id=event_id, type=EventType.LOADING, side=side))


def _add_speech(b: _Builder, speech: ConstructiveSpeech, side: Side) -> None:
    prefix = side.value
    intro = speech.introduction
    if intro is not None:
        b.add(TimelineEvent(
            id=f"{prefix}-intro",
            type=EventType.INTRO,
            side=prefix,
            content=f"{intro.definitions}\n\n{intro.roadmap}",
            title="Introduction & Definitions",
            meta={"value": intro.value_criterion, "hook": intro.hook},
        ))
    for idx, c in enumerate(speech.contentions):
        b.add(TimelineEvent(
            id=f"{prefix}-point-{idx}",
            type=EventType.ARGUMENT,
            side=prefix,
            content=c.reasoning,
            title=f"{c.signpost}: {c.claim}",
            evidence=c.evidence_id,
            sector=c.sector,
        ))
    if speech.conclusion is not None:
        b.add(TimelineEvent(
            id=f"{prefix}-conclusion",
            type=EventType.CONCLUSION,
            side=prefix,
            content=speech.conclusion.final_appeal,
            title="Conclusion",
        ))


def _add_cross_exam(b: _Builder, cx: CrossExamSet, asker: Side) -> None:
    questions = cx.questions(asker)
    answers = cx.answers(asker)
    if not questions:
        return
    b.divider(Phase.CON_CX if asker is Side.CON else Phase.PRO_CX)
    q_label = "Negative CX (Q)" if asker is Side.CON else "Affirmative CX (Q)"
    answerer = asker.opponent
    for i, question in enumerate(questions):
        b.add(TimelineEvent(
            id=f"{asker.value}-q-{i}",
            type=EventType.QUESTION,
            side=asker.value,
            content=question,
            label=q_label,
        ))
        if i < len(answers) and answers[i]:
            b.add(TimelineEvent(
                id=f"{answerer.value}-a-{i}",
                type=EventType.ANSWER,
                side=answerer.value,
                content=answers[i],
                label="Answer (A)",
            ))


def _add_rebuttals(b: _Builder, rebuttals: RebuttalSet) -> None:
    con_list = rebuttals.con_rebuttals
    pro_list = rebuttals.pro_rebuttals
    if not con_list and not pro_list:
        return
    b.divider(Phase.REBUTTAL)
    for i in range(max(len(con_list), len(pro_list))):
        for side, items in ((Side.CON, con_list), (Side.PRO, pro_list)):
            if i >= len(items):
                continue
            item = items[i]
            b.add(TimelineEvent(
                id=f"{side.value}-reb-{i}",
                type=EventType.REBUTTAL,
                side=side.value,
                content=item.rebuttal,
                defense=item.defense,
                ref_id=item.target_claim,
                evidence=item.evidence_used,
                sector=item.sector,
            ))


def _add_main_debate(b: _Builder, state: SimulationState) -> None:
    args = state.arguments
    cx = state.cross_exam
    if args is not None and args.pro_speech.introduction is not None:
        b.divider(Phase.PRO_CONSTRUCTIVE)
        _add_speech(b, args.pro_speech, Side.PRO)
    if cx is not None:
        _add_cross_exam(b, cx, Side.CON)
    if args is not None and args.con_speech.introduction is not None:
        b.divider(Phase.CON_CONSTRUCTIVE)
        _add_speech(b, args.con_speech, Side.CON)
    if cx is not None:
        _add_cross_exam(b, cx, Side.PRO)
    if state.rebuttals is not None:
        _add_rebuttals(b, state.rebuttals)


def _add_pending(b: _Builder, state: SimulationState, is_loading: bool) -> None:
    """Placeholder for whoever is expected to produce the next item."""
    phase = state.status
    typing_side = None
    if state.is_typing and not state.is_generating_round:
        typing_side = acting_side(state)
    args = state.arguments
    cx = state.cross_exam or CrossExamSet()

    if phase in (Phase.PRO_CONSTRUCTIVE, Phase.CON_CONSTRUCTIVE):
        side = Side.PRO if phase is Phase.PRO_CONSTRUCTIVE else Side.CON
        b.divider(phase)
        has_intro = args is not None and args.speech(side).introduction is not None
        if (is_loading and not has_intro) or typing_side is side:
            b.loading(f"loading-{side.value}", side.value)

    elif phase in (Phase.CON_CX, Phase.PRO_CX):
        asker = Side.CON if phase is Phase.CON_CX else Side.PRO
        b.divider(phase)
        if (is_loading and not cx.questions(asker)) or typing_side is asker:
            b.loading(f"loading-{asker.value}", asker.value)
        elif typing_side is asker.opponent:
            b.loading(f"loading-{asker.opponent.value}", asker.opponent.value)

    elif phase is Phase.REBUTTAL:
        b.divider(phase)
        due = rebuttal_turn(state.rebuttals)
        if (is_loading and due is Side.CON) or typing_side is Side.CON:
            b.loading("loading-con-reb", "con")
        elif (is_loading and due is Side.PRO) or typing_side is Side.PRO:
            b.loading("loading-pro-reb", "pro")

    elif phase is Phase.ANALYZING and is_loading:
        b.add(TimelineEvent(
            id="loading-analyzing",
            type=EventType.ANALYZING,
            side="center",
            content=b.labels["analyzing_loading"],
        ))


def _add_follow_ups(b: _Builder, state: SimulationState) -> None:
    for i, round_ in enumerate(state.additional_rounds):
        b.add(TimelineEvent(
            id=f"divider-qa-{i}",
            type=EventType.DIVIDER,
            side="center",
            content=b.labels["follow_up_title"],
        ))
        b.add(TimelineEvent(id=f"user-query-{i}", type=EventType.USER_QUERY, side="user", content=round_.focus_topic))
        for side in (Side.PRO, Side.CON):
            answer = round_.answer(side)
            if answer:
                b.add(TimelineEvent(
                    id=f"qa-{side.value}-{i}",
                    type=EventType.ANSWER,
                    side=side.value,
                    content=answer,
                    label="Direct Answer",
                ))

    if not state.is_generating_round:
        return
    if not state.additional_rounds:
        b.loading("loading-followup", "pro")
        return
    due = follow_up_turn(state.additional_rounds[-1])
    if due is not None:
        b.loading(f"loading-qa-{due.value}", due.value)


def project_timeline(
    state: SimulationState,
    step_ready: bool = False,
    paused: bool = False,
    labels: Mapping[str, str] | None = None,
) -> tuple[TimelineEvent, ...]:
    """Ordered events for ``state`` given the checkpoint gate's flags.

    A loading placeholder is shown only while the run is actually working,
    that is neither parked at a checkpoint (``step_ready``) nor paused.
    """
    b = _Builder({**DEFAULT_LABELS, **(labels or {})})
    _add_main_debate(b, state)
    if state.status not in _NO_PENDING:
        _add_pending(b, state, is_loading=not step_ready and not paused)
    _add_follow_ups(b, state)
    return tuple(b.events)


def new_events(
    previous: tuple[TimelineEvent, ...],
    current: tuple[TimelineEvent, ...],
) -> list[TimelineEvent]:
    """Events in ``current`` whose id did not appear in ``previous``."""
    seen = {event.id for event in previous}
    return [event for event in current if event.id not in seen]
