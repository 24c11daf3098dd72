"""Immutable records for the debate simulation. Parsing helpers, no I/O."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from cedasim.phases import Phase


class Side(str, Enum):
    PRO = "pro"
    CON = "con"

    @property
    def opponent(self) -> "Side":
        return Side.CON if self is Side.PRO else Side.PRO


class Sector(str, Enum):
    STATISTICS = "Statistics"
    PUBLIC_OPINION = "PublicOpinion"
    DOMESTIC_CASES = "DomesticCases"
    INTERNATIONAL_CASES = "InternationalCases"
    THEORIES = "Theories"
    STAKEHOLDERS = "Stakeholders"


SECTORS: tuple[Sector, ...] = tuple(Sector)


class SectorStatus(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    COMPLETED = "completed"
    ERROR = "error"


def _str_list(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(v) for v in value)


@dataclass(frozen=True)
class ChatMessage:
    role: str              # "user" or "model"
    text: str
    timestamp: float


@dataclass(frozen=True)
class Scope:
    country: str = ""
    timeframe: str = ""


@dataclass(frozen=True)
class Positions:
    pro: str = ""
    con: str = ""


@dataclass(frozen=True)
class FramedIssue:
    refined_issue: str
    definition: str = ""
    scope: Scope = field(default_factory=Scope)
    positions: Positions = field(default_factory=Positions)
    clarification_needed: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FramedIssue":
        scope = data.get("scope") or {}
        positions = data.get("positions") or {}
        return cls(
            refined_issue=str(data["refined_issue"]),
            definition=str(data.get("definition") or ""),
            scope=Scope(
                country=str(scope.get("country") or ""),
                timeframe=str(scope.get("timeframe") or ""),
            ),
            positions=Positions(
                pro=str(positions.get("pro") or ""),
                con=str(positions.get("con") or ""),
            ),
            clarification_needed=bool(data.get("clarification_needed", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IssueRefinement:
    message: str
    draft: FramedIssue


@dataclass(frozen=True)
class InfoQBreakdown:
    resolution: int
    temporal: int
    reliability: int
    context: int


@dataclass(frozen=True)
class ScoreBreakdown:
    objectivity: int
    relevance: int
    significance: int


@dataclass(frozen=True)
class EvidenceItem:
    id: str                      # e.g. "EV-STA-01"
    content: str                 # headline
    detail: str
    sector: Sector
    source_summary: str
    reliability: str             # "High", "Medium" or "Low"
    url: str
    score: int
    info_q: InfoQBreakdown
    score_breakdown: ScoreBreakdown
    stakeholder_type: str | None = None   # "Benefit" or "Loss"

    def to_prompt_dict(self) -> dict[str, Any]:
        """Compact form passed to capabilities as evidence context."""
        return {
            "id": self.id,
            "content": self.content,
            "detail": self.detail,
            "sector": self.sector.value,
            "source": self.source_summary,
            "reliability": self.reliability,
            "score": self.score,
        }


@dataclass(frozen=True)
class Contention:
    signpost: str
    claim: str
    reasoning: str
    evidence_id: tuple[str, ...] = ()
    sector: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contention":
        return cls(
            signpost=str(data.get("signpost") or ""),
            claim=str(data.get("claim") or ""),
            reasoning=str(data.get("reasoning") or ""),
            evidence_id=_str_list(data.get("evidence_id")),
            sector=str(data.get("sector") or ""),
        )


@dataclass(frozen=True)
class Introduction:
    definitions: str
    value_criterion: str
    roadmap: str
    hook: str = ""


@dataclass(frozen=True)
class Conclusion:
    summary: str
    final_appeal: str


@dataclass(frozen=True)
class ConstructiveSpeech:
    """A speech tree. Parts stay None/empty until revealed."""

    introduction: Introduction | None = None
    contentions: tuple[Contention, ...] = ()
    conclusion: Conclusion | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConstructiveSpeech":
        intro = data.get("introduction") or {}
        concl = data.get("conclusion") or {}
        return cls(
            introduction=Introduction(
                definitions=str(intro.get("definitions") or ""),
                value_criterion=str(intro.get("value_criterion") or ""),
                roadmap=str(intro.get("roadmap") or ""),
                hook=str(intro.get("hook") or ""),
            ),
            contentions=tuple(Contention.from_dict(c) for c in data.get("contentions") or []),
            conclusion=Conclusion(
                summary=str(concl.get("summary") or ""),
                final_appeal=str(concl.get("final_appeal") or ""),
            ),
        )


@dataclass(frozen=True)
class ProConArguments:
    pro_speech: ConstructiveSpeech = field(default_factory=ConstructiveSpeech)
    con_speech: ConstructiveSpeech = field(default_factory=ConstructiveSpeech)

    def speech(self, side: Side) -> ConstructiveSpeech:
        return self.pro_speech if side is Side.PRO else self.con_speech


@dataclass(frozen=True)
class CrossExamSet:
    pro_questions: tuple[str, ...] = ()
    con_answers: tuple[str, ...] = ()
    con_questions: tuple[str, ...] = ()
    pro_answers: tuple[str, ...] = ()

    def questions(self, asker: Side) -> tuple[str, ...]:
        return self.pro_questions if asker is Side.PRO else self.con_questions

    def answers(self, asker: Side) -> tuple[str, ...]:
        """Answers given to ``asker``'s questions."""
        return self.con_answers if asker is Side.PRO else self.pro_answers


@dataclass(frozen=True)
class CrossExamResult:
    """Raw capability output for one side's cross-examination period."""

    asker: Side
    questions: tuple[str, ...]
    answers: tuple[str, ...]


@dataclass(frozen=True)
class RebuttalItem:
    target_claim: str
    sector: str
    defense: str
    rebuttal: str
    evidence_used: tuple[str, ...] = ()
    logical_issue_identified: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RebuttalItem":
        return cls(
            target_claim=str(data.get("target_claim") or ""),
            sector=str(data.get("sector") or ""),
            defense=str(data.get("defense") or ""),
            rebuttal=str(data.get("rebuttal") or ""),
            evidence_used=_str_list(data.get("evidence_used")),
            logical_issue_identified=str(data.get("logical_issue_identified") or ""),
        )


@dataclass(frozen=True)
class RebuttalSet:
    pro_rebuttals: tuple[RebuttalItem, ...] = ()
    con_rebuttals: tuple[RebuttalItem, ...] = ()

    def items(self, side: Side) -> tuple[RebuttalItem, ...]:
        return self.pro_rebuttals if side is Side.PRO else self.con_rebuttals


@dataclass(frozen=True)
class AnalysisPoint:
    issue: str
    pro_argument: str
    con_argument: str
    rebuttal_note: str


@dataclass(frozen=True)
class EvidenceEvaluation:
    description: str
    score: float


@dataclass(frozen=True)
class MetaAnalysis:
    issue_map: dict[str, tuple[AnalysisPoint, ...]]
    evidence_evaluation: EvidenceEvaluation
    key_agreements: tuple[str, ...] = ()
    key_disagreements: tuple[str, ...] = ()
    uncertainties: tuple[str, ...] = ()
    reflection_prompts: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetaAnalysis":
        issue_map: dict[str, tuple[AnalysisPoint, ...]] = {}
        for sector, points in (data.get("issue_map") or {}).items():
            issue_map[str(sector)] = tuple(
                AnalysisPoint(
                    issue=str(p.get("issue") or ""),
                    pro_argument=str(p.get("pro_argument") or ""),
                    con_argument=str(p.get("con_argument") or ""),
                    rebuttal_note=str(p.get("rebuttal_note") or ""),
                )
                for p in points or []
            )
        evaluation = data.get("evidence_evaluation") or {}
        return cls(
            issue_map=issue_map,
            evidence_evaluation=EvidenceEvaluation(
                description=str(evaluation.get("description") or ""),
                score=float(evaluation.get("score") or 0),
            ),
            key_agreements=_str_list(data.get("key_agreements")),
            key_disagreements=_str_list(data.get("key_disagreements")),
            uncertainties=_str_list(data.get("uncertainties")),
            reflection_prompts=_str_list(data.get("reflection_prompts")),
        )


@dataclass(frozen=True)
class ResearchRequest:
    pro_query: str
    pro_sector: Sector
    con_query: str
    con_sector: Sector
    reasoning: str = ""


@dataclass(frozen=True)
class FollowUpRound:
    id: str
    focus_topic: str
    timestamp: float
    pro_answer: str | None = None
    con_answer: str | None = None

    def answer(self, side: Side) -> str | None:
        return self.pro_answer if side is Side.PRO else self.con_answer


def initial_sector_statuses() -> dict[Sector, SectorStatus]:
    return {sector: SectorStatus.PENDING for sector in SECTORS}


@dataclass(frozen=True)
class SimulationState:
    status: Phase = Phase.IDLE
    error: str | None = None
    original_topic: str = ""
    framed_issue: FramedIssue | None = None
    framing_chat: tuple[ChatMessage, ...] = ()
    evidence_board: tuple[EvidenceItem, ...] | None = None
    sector_statuses: dict[Sector, SectorStatus] = field(default_factory=initial_sector_statuses)
    arguments: ProConArguments | None = None
    cross_exam: CrossExamSet | None = None
    rebuttals: RebuttalSet | None = None
    analysis: MetaAnalysis | None = None
    additional_rounds: tuple[FollowUpRound, ...] = ()
    is_generating_round: bool = False
    is_typing: bool = False
