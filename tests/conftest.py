"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PacingConfig,
    PromptsConfig,
    RetryConfig,
)
from cedasim.capabilities import Capabilities
from cedasim.driver import DebateDriver
from cedasim.models import (
    AnalysisPoint,
    Conclusion,
    ConstructiveSpeech,
    Contention,
    CrossExamResult,
    EvidenceEvaluation,
    EvidenceItem,
    FramedIssue,
    InfoQBreakdown,
    Introduction,
    IssueRefinement,
    MetaAnalysis,
    Positions,
    RebuttalItem,
    ResearchRequest,
    ScoreBreakdown,
    Scope,
    Sector,
    Side,
)
from cedasim.providers.base import AIProvider, GenerationRequest, ModelResponse
from cedasim.scoring import evidence_id


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="gemini",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        framer="Frame the issue. {language_instruction}",
        refiner="Refine the draft. {language_instruction}",
        generalize="Generalize: {issue}",
        researcher=(
            "Date {current_date} lang {language} sector {sector} target {target_count}\n"
            "{strategy}\n{avoidance}\n{language_instruction}"
        ),
        coordinator="Plan research. {language_instruction}",
        pro_advocate="Argue pro. {focus} {language_instruction}",
        con_advocate="Argue con. {focus} {language_instruction}",
        pro_answer="Answer for pro on {resolution}. {language_instruction}",
        con_answer="Answer for con on {resolution}. {language_instruction}",
        pro_cross_examiner="Question the con speech. {focus} {language_instruction}",
        con_cross_examiner="Question the pro speech. {focus} {language_instruction}",
        pro_rebuttal="Pro rebuttal. {focus} {language_instruction}",
        con_rebuttal="Con rebuttal. {focus} {language_instruction}",
        analyst="Analyze in {language}. {language_instruction}",
        sector_strategies={"Statistics": "Find numbers about {topic} in {country}."},
    )


@pytest.fixture
def zero_pacing() -> PacingConfig:
    return PacingConfig(
        typing_delay_sec=0.0,
        reading_delay_sec=0.0,
        analysis_delay_sec=0.0,
        checkpoint_sec=0.0,
    )


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_prompts_config: PromptsConfig,
    zero_pacing: PacingConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="gemini",
        sdk="gemini",
        model="gemini-2.5-flash",
        api_key_env="GEMINI_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=DefaultsConfig(provider="gemini", language="en", output_dir=tmp_path / "output"),
        models={"gemini": model_cfg},
        prompts=sample_prompts_config,
        pacing=zero_pacing,
        retry=RetryConfig(retries=0, initial_delay_sec=0.0),
        available_providers={"gemini"},
    )


def make_issue(text: str = "Cities should ban cars from downtown areas") -> FramedIssue:
    return FramedIssue(
        refined_issue=text,
        definition="A ban on private cars inside the central business district.",
        scope=Scope(country="Korea", timeframe="2025-2030"),
        positions=Positions(pro="Ban them", con="Keep them"),
    )


@pytest.fixture
def sample_issue() -> FramedIssue:
    return make_issue()


def make_evidence(sector: Sector = Sector.STATISTICS, seq: int = 1, score: int = 85) -> EvidenceItem:
    return EvidenceItem(
        id=evidence_id(sector, seq),
        content=f"{sector.value} headline {seq}",
        detail="Traffic fell by 12% in 2024.",
        sector=sector,
        source_summary="City report",
        reliability="High",
        url="https://example.org/report",
        score=score,
        info_q=InfoQBreakdown(resolution=100, temporal=90, reliability=80, context=70),
        score_breakdown=ScoreBreakdown(objectivity=90, relevance=70, significance=90),
    )


def make_speech(side: Side, contentions: int = 2) -> ConstructiveSpeech:
    return ConstructiveSpeech(
        introduction=Introduction(
            definitions=f"{side.value} definitions",
            value_criterion="Public welfare",
            roadmap=f"{side.value} roadmap",
            hook=f"{side.value} hook",
        ),
        contentions=tuple(
            Contention(
                signpost=f"{side.value.upper()} {i + 1}",
                claim=f"{side.value} claim {i}",
                reasoning=f"{side.value} reasoning {i}",
                evidence_id=(evidence_id(Sector.STATISTICS, 1),),
                sector=Sector.STATISTICS.value,
            )
            for i in range(contentions)
        ),
        conclusion=Conclusion(summary=f"{side.value} summary", final_appeal=f"{side.value} appeal"),
    )


def make_rebuttal(side: Side, turn_index: int) -> RebuttalItem:
    return RebuttalItem(
        target_claim=f"{side.opponent.value} claim {turn_index}",
        sector=Sector.STATISTICS.value,
        defense=f"{side.value} defense {turn_index}",
        rebuttal=f"{side.value} rebuttal {turn_index}",
        evidence_used=(evidence_id(Sector.STATISTICS, 1),),
        logical_issue_identified="Hasty generalization",
    )


def make_analysis() -> MetaAnalysis:
    return MetaAnalysis(
        issue_map={
            "Statistics": (
                AnalysisPoint(
                    issue="Traffic volume",
                    pro_argument="Fewer cars",
                    con_argument="Displaced traffic",
                    rebuttal_note="Unresolved",
                ),
            )
        },
        evidence_evaluation=EvidenceEvaluation(description="Mostly recent data", score=7.5),
        key_agreements=("Congestion is a problem",),
        key_disagreements=("Economic impact",),
        uncertainties=("Long-term effects",),
        reflection_prompts=("Who bears the cost?",),
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
                latency_sec=0.1,
                token_count=10,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, request: GenerationRequest) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(
            provider=self._name,
            model="mock-model",
            content=self._response_content,
            latency_sec=0.1,
            token_count=10,
        )


def json_response(payload: dict, provider_name: str = "mock") -> ModelResponse:
    return ModelResponse(
        provider=provider_name,
        model="mock-model",
        content=json.dumps(payload),
        latency_sec=0.1,
        token_count=10,
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


def _agent(**methods) -> MagicMock:
    agent = MagicMock()
    for name, mock in methods.items():
        setattr(agent, name, mock)
    return agent


def make_capabilities(issue: FramedIssue | None = None) -> Capabilities:
    """Capabilities whose every call resolves immediately with canned data."""
    issue = issue or make_issue()

    def research(issue_, sector, **kwargs):
        return [make_evidence(sector, 1)]

    def cross_exam(side):
        def examine(arguments, evidence, focus_topic=None):
            return CrossExamResult(
                asker=side,
                questions=(f"{side.value} q0", f"{side.value} q1"),
                answers=(f"{side.opponent.value} a0", f"{side.opponent.value} a1"),
            )
        return examine

    def rebuttal(side):
        def turn(arguments, evidence, history, last_opponent, turn_index, focus_topic=None):
            return make_rebuttal(side, turn_index)
        return turn

    return Capabilities(
        framer=_agent(
            frame=AsyncMock(return_value=issue),
            refine=AsyncMock(return_value=IssueRefinement(
                message="Narrowed the scope.",
                draft=make_issue("Seoul should ban cars from downtown areas"),
            )),
        ),
        researcher=_agent(research_sector=AsyncMock(side_effect=research)),
        coordinator=_agent(plan=AsyncMock(return_value=ResearchRequest(
            pro_query="air quality after car bans",
            pro_sector=Sector.STATISTICS,
            con_query="retail revenue after car bans",
            con_sector=Sector.STATISTICS,
            reasoning="Both sides lack recent numbers.",
        ))),
        analyst=_agent(analyze=AsyncMock(return_value=make_analysis())),
        pro_advocate=_agent(
            constructive=AsyncMock(return_value=make_speech(Side.PRO)),
            answer=AsyncMock(return_value="Pro direct answer"),
        ),
        con_advocate=_agent(
            constructive=AsyncMock(return_value=make_speech(Side.CON)),
            answer=AsyncMock(return_value="Con direct answer"),
        ),
        pro_cross_examiner=_agent(examine=AsyncMock(side_effect=cross_exam(Side.PRO))),
        con_cross_examiner=_agent(examine=AsyncMock(side_effect=cross_exam(Side.CON))),
        pro_rebuttal=_agent(turn=AsyncMock(side_effect=rebuttal(Side.PRO))),
        con_rebuttal=_agent(turn=AsyncMock(side_effect=rebuttal(Side.CON))),
    )


@pytest.fixture
def fake_capabilities() -> Capabilities:
    return make_capabilities()


@pytest.fixture
def driver(fake_capabilities: Capabilities, zero_pacing: PacingConfig) -> DebateDriver:
    d = DebateDriver(fake_capabilities, pacing=zero_pacing)
    d.gate.set_autoplay(True)
    return d
