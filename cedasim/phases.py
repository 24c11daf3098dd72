"""Debate phase enum and the legal transitions between phases."""

from enum import Enum


class Phase(str, Enum):
    IDLE = "idle"
    FRAMING = "framing"
    WAITING_CONFIRMATION = "waiting_confirmation"
    REFINING = "refining"
    RESEARCHING = "researching"
    RESEARCH_COMPLETED = "research_completed"
    PRO_CONSTRUCTIVE = "pro_constructive"
    CON_CX = "con_cx"
    CON_CONSTRUCTIVE = "con_constructive"
    PRO_CX = "pro_cx"
    REBUTTAL = "rebuttal"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class InvalidTransition(RuntimeError):
    """Raised when a phase change is not allowed by the state machine."""

    def __init__(self, current: Phase, target: Phase) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Illegal phase transition {current.value} -> {target.value}")


# Forward edges only. ERROR and IDLE exits are handled in can_transition().
_FORWARD: dict[Phase, frozenset[Phase]] = {
    Phase.IDLE: frozenset({Phase.FRAMING}),
    Phase.FRAMING: frozenset({Phase.WAITING_CONFIRMATION}),
    Phase.WAITING_CONFIRMATION: frozenset({Phase.REFINING, Phase.RESEARCHING}),
    Phase.REFINING: frozenset({Phase.WAITING_CONFIRMATION}),
    Phase.RESEARCHING: frozenset({Phase.RESEARCH_COMPLETED}),
    Phase.RESEARCH_COMPLETED: frozenset({Phase.PRO_CONSTRUCTIVE}),
    Phase.PRO_CONSTRUCTIVE: frozenset({Phase.CON_CX}),
    Phase.CON_CX: frozenset({Phase.CON_CONSTRUCTIVE}),
    Phase.CON_CONSTRUCTIVE: frozenset({Phase.PRO_CX}),
    Phase.PRO_CX: frozenset({Phase.REBUTTAL}),
    Phase.REBUTTAL: frozenset({Phase.ANALYZING}),
    Phase.ANALYZING: frozenset({Phase.COMPLETE}),
    Phase.COMPLETE: frozenset(),
    Phase.ERROR: frozenset(),
}

# Phases that belong to the paced debate, in reveal order.
DEBATE_PHASES: tuple[Phase, ...] = (
    Phase.PRO_CONSTRUCTIVE,
    Phase.CON_CX,
    Phase.CON_CONSTRUCTIVE,
    Phase.PRO_CX,
    Phase.REBUTTAL,
    Phase.ANALYZING,
)

TERMINAL_PHASES = frozenset({Phase.COMPLETE, Phase.ERROR})


def can_transition(current: Phase, target: Phase) -> bool:
    if target is Phase.IDLE:
        return True
    if target is Phase.ERROR:
        return current is not Phase.IDLE and current is not Phase.ERROR
    return target in _FORWARD[current]


def check_transition(current: Phase, target: Phase) -> Phase:
    """Return ``target`` if the move is legal, else raise InvalidTransition."""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    return target
