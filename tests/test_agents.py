"""Tests for cedasim/agents."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from config.config_loader import RetryConfig
from cedasim.agents.advocate import Advocate
from cedasim.agents.analyst import MetaAnalyst
from cedasim.agents.base import focus_block, language_instruction
from cedasim.agents.coordinator import ResearchCoordinator
from cedasim.agents.cross_examiner import CrossExaminer
from cedasim.agents.framer import IssueFramer
from cedasim.agents.rebuttal import RebuttalSpeaker
from cedasim.agents.researcher import NeutralResearcher
from cedasim.capabilities import build_capabilities
from cedasim.extraction import ExtractionError
from cedasim.models import (
    ChatMessage,
    CrossExamSet,
    ProConArguments,
    RebuttalSet,
    Sector,
    Side,
)
from cedasim.providers.base import ModelResponse, RateLimitError
from tests.conftest import (
    MockProvider,
    json_response,
    make_evidence,
    make_issue,
    make_rebuttal,
    make_speech,
)

_NO_RETRY = RetryConfig(retries=0, initial_delay_sec=0.0)


def _agent(cls, provider, prompts, *args, language="en"):
    return cls(*args, provider=provider, prompts=prompts, language=language, retry=_NO_RETRY)


def _request(provider: MockProvider, call: int = -1):
    return provider.generate.await_args_list[call].args[0]


def _raw_item(headline: str, **overrides) -> dict:
    item = {
        "c": headline,
        "d": "Car traffic dropped 18% in the first year.",
        "src": "Ministry of Transport",
        "u": "https://example.org/traffic",
        "pub_year": date.today().year,
        "source_tier": "Tier1",
        "has_stats": True,
        "op_fit": "Direct",
    }
    item.update(overrides)
    return item


def _arguments() -> ProConArguments:
    return ProConArguments(pro_speech=make_speech(Side.PRO), con_speech=make_speech(Side.CON))


# --- language and focus helpers ---


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("ko", "KOREAN"),
        ("en", "ENGLISH"),
        ("ja", "Japanese language"),
        ("xx", "language code: xx"),
    ],
)
def test_language_instruction(code, expected):
    assert expected in language_instruction(code)


def test_focus_block_empty_without_topic():
    assert focus_block(None, "Focus on {topic}") == ""
    assert focus_block("", "Focus on {topic}") == ""


def test_focus_block_wraps_topic():
    block = focus_block("buses", 'Focus on "{topic}".')
    assert block.startswith("<focus>")
    assert 'Focus on "buses".' in block


# --- framer ---


async def test_frame_parses_issue_and_uses_search(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "refined_issue": "Seoul should ban cars downtown",
        "definition": "Private cars only",
        "scope": {"country": "Korea", "timeframe": "2026"},
        "positions": {"pro": "Cleaner air", "con": "Hurts shops"},
        "clarification_needed": False,
    }))
    framer = _agent(IssueFramer, provider, sample_prompts_config)

    issue = await framer.frame("car bans")

    assert issue.refined_issue == "Seoul should ban cars downtown"
    assert issue.scope.country == "Korea"
    request = _request(provider)
    assert request.search
    assert request.contents == "User Topic: car bans"
    assert "ENGLISH" in request.system


async def test_frame_without_resolution_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"definition": "no issue here"}))
    framer = _agent(IssueFramer, provider, sample_prompts_config)
    with pytest.raises(ExtractionError, match="refined_issue"):
        await framer.frame("car bans")


async def test_frame_prose_reply_raises(sample_prompts_config):
    provider = MockProvider(response_content="I think this is a great topic!")
    framer = _agent(IssueFramer, provider, sample_prompts_config)
    with pytest.raises(ExtractionError):
        await framer.frame("car bans")


async def test_refine_returns_message_and_draft(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "message": "Scoped to Seoul.",
        "draft": {"refined_issue": "Seoul should ban cars downtown"},
    }))
    framer = _agent(IssueFramer, provider, sample_prompts_config)
    history = [
        ChatMessage("model", "Draft ready.", 1.0),
        ChatMessage("user", "Only Seoul please", 2.0),
    ]

    refinement = await framer.refine(history, make_issue())

    assert refinement.message == "Scoped to Seoul."
    assert refinement.draft.refined_issue == "Seoul should ban cars downtown"
    contents = _request(provider).contents
    assert "USER: Only Seoul please" in contents
    assert contents.endswith("User Input: Only Seoul please")


async def test_refine_without_draft_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"message": "Sure"}))
    framer = _agent(IssueFramer, provider, sample_prompts_config)
    with pytest.raises(ExtractionError):
        await framer.refine([ChatMessage("user", "x", 0.0)], make_issue())


async def test_rate_limited_call_is_retried(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(side_effect=[
        RateLimitError("mock", "429"),
        json_response({"refined_issue": "Retried issue"}),
    ])
    framer = IssueFramer(
        provider=provider,
        prompts=sample_prompts_config,
        retry=RetryConfig(retries=2, initial_delay_sec=0.0),
    )
    issue = await framer.frame("topic")
    assert issue.refined_issue == "Retried issue"
    assert provider.generate.await_count == 2


# --- researcher ---


async def test_research_sector_generalizes_then_scores(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(side_effect=[
        ModelResponse("mock", "mock-model", "urban car restrictions\n", 0.1, 5),
        json_response({"data": [
            _raw_item("Traffic down"),
            _raw_item("No link", u="not-a-url"),
            _raw_item("Old rumor", has_stats=False, source_tier="Tier3", op_fit="Weak", pub_year=1990),
        ]}),
    ])
    researcher = _agent(NeutralResearcher, provider, sample_prompts_config)

    items = await researcher.research_sector(make_issue(), Sector.STATISTICS)

    assert [i.content for i in items] == ["Traffic down"]
    assert items[0].id == "EV-STA-01"
    request = _request(provider)
    assert request.search
    assert "Search Concept: urban car restrictions (Generalized)" in request.contents
    assert "Find numbers about urban car restrictions in Korea." in request.system
    assert "target 10" in request.system


async def test_research_sector_specific_sector_skips_generalizing(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"data": [_raw_item("Poll result")]}))
    researcher = _agent(NeutralResearcher, provider, sample_prompts_config)

    items = await researcher.research_sector(make_issue(), Sector.PUBLIC_OPINION)

    assert provider.generate.await_count == 1
    assert items[0].id == "EV-PUB-01"
    assert "(Specific)" in _request(provider).contents


async def test_research_sector_query_and_limit(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "data": [_raw_item("First"), _raw_item("Second")],
    }))
    researcher = _agent(NeutralResearcher, provider, sample_prompts_config)

    items = await researcher.research_sector(
        make_issue(),
        Sector.THEORIES,
        existing_headlines=["Known headline"],
        query="induced demand",
        limit=1,
    )

    assert [i.content for i in items] == ["First"]
    request = _request(provider)
    assert provider.generate.await_count == 1
    assert "Search Concept: induced demand" in request.contents
    assert "- Known headline" in request.system
    assert "target 1" in request.system


async def test_research_sector_unparseable_reply_yields_nothing(sample_prompts_config):
    provider = MockProvider(response_content="Sorry, I could not search right now.")
    researcher = _agent(NeutralResearcher, provider, sample_prompts_config)
    assert await researcher.research_sector(make_issue(), Sector.STAKEHOLDERS) == []


async def test_research_sector_without_data_list_yields_nothing(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"data": "none"}))
    researcher = _agent(NeutralResearcher, provider, sample_prompts_config)
    assert await researcher.research_sector(make_issue(), Sector.STAKEHOLDERS) == []


# --- advocate ---


async def test_constructive_parses_side_speech(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "con_speech": {
            "introduction": {"definitions": "d", "value_criterion": "v", "roadmap": "r"},
            "contentions": [{"signpost": "First", "claim": "Shops close", "reasoning": "r", "evidence_id": ["EV-STA-01"]}],
            "conclusion": {"summary": "s", "final_appeal": "f"},
        },
    }))
    advocate = _agent(Advocate, provider, sample_prompts_config, Side.CON)

    speech = await advocate.constructive(make_issue(), (make_evidence(),), focus_topic="small business")

    assert speech.contentions[0].claim == "Shops close"
    assert speech.contentions[0].evidence_id == ("EV-STA-01",)
    request = _request(provider)
    assert request.system.startswith("Argue con.")
    assert "small business" in request.system
    assert '"EV-STA-01"' in request.contents
    assert "con_speech" in request.schema["properties"]


async def test_constructive_wrong_key_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"pro_speech": {}}))
    advocate = _agent(Advocate, provider, sample_prompts_config, Side.CON)
    with pytest.raises(ExtractionError, match="con_speech"):
        await advocate.constructive(make_issue(), ())


async def test_answer_returns_text(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"answer": "Buses fill the gap."}))
    advocate = _agent(Advocate, provider, sample_prompts_config, Side.PRO)

    answer = await advocate.answer(make_issue(), (), "What about buses?")

    assert answer == "Buses fill the gap."
    request = _request(provider)
    assert "Pro Position: Ban them" in request.contents
    assert '"What about buses?"' in request.contents
    assert "Cities should ban cars" in request.system


async def test_answer_missing_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"reply": "hi"}))
    advocate = _agent(Advocate, provider, sample_prompts_config, Side.CON)
    with pytest.raises(ExtractionError):
        await advocate.answer(make_issue(), (), "q")


# --- cross-examination ---


async def test_con_examines_pro_speech(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "con_questions": ["Is 12% enough?", "Who pays?"],
        "pro_answers": ["Yes", "The city"],
    }))
    examiner = _agent(CrossExaminer, provider, sample_prompts_config, Side.CON)

    result = await examiner.examine(_arguments(), ())

    assert result.asker is Side.CON
    assert result.questions == ("Is 12% enough?", "Who pays?")
    assert result.answers == ("Yes", "The city")
    contents = _request(provider).contents
    assert "Affirmative Speech" in contents
    assert "pro claim 0" in contents
    assert "con claim 0" not in contents


async def test_extra_answers_are_dropped(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "pro_questions": ["Only one?"],
        "con_answers": ["a", "b", "c"],
    }))
    examiner = _agent(CrossExaminer, provider, sample_prompts_config, Side.PRO)

    result = await examiner.examine(_arguments(), ())

    assert result.questions == ("Only one?",)
    assert result.answers == ("a",)
    assert "Negative Speech" in _request(provider).contents


# --- rebuttals ---


def test_first_rebuttal_has_no_attack_to_defend(sample_prompts_config):
    speaker = _agent(RebuttalSpeaker, MockProvider(), sample_prompts_config, Side.CON)
    request = speaker.build_request(_arguments(), (), RebuttalSet(), None)
    assert "Start of rebuttal phase" in request.contents
    assert request.contents.count("Attacked:") == 0


def test_rebuttal_defends_last_opponent_attack(sample_prompts_config):
    speaker = _agent(RebuttalSpeaker, MockProvider(), sample_prompts_config, Side.PRO)
    history = RebuttalSet(
        pro_rebuttals=(make_rebuttal(Side.PRO, 0),),
        con_rebuttals=(make_rebuttal(Side.CON, 0), make_rebuttal(Side.CON, 1)),
    )
    request = speaker.build_request(_arguments(), (), history, make_rebuttal(Side.CON, 1), "cost")

    assert 'Opponent Argued: "con rebuttal 1"' in request.contents
    assert 'Logic Issue: "Hasty generalization"' in request.contents
    assert "Past My Attacks: Attacked: con claim 0" in request.contents
    assert 'Address topic: "cost"' in request.system


async def test_rebuttal_turn_parses_item(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "rebuttal_item": {
            "target_claim": "Shops close",
            "sector": "Statistics",
            "defense": "Our data holds",
            "rebuttal": "Footfall rose",
            "evidence_used": ["EV-STA-01"],
            "logical_issue_identified": "False cause",
        },
    }))
    speaker = _agent(RebuttalSpeaker, provider, sample_prompts_config, Side.PRO)

    item = await speaker.turn(_arguments(), (), RebuttalSet(), make_rebuttal(Side.CON, 0), 0)

    assert item.rebuttal == "Footfall rose"
    assert item.evidence_used == ("EV-STA-01",)


async def test_rebuttal_turn_missing_item_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({"rebuttal": "loose text"}))
    speaker = _agent(RebuttalSpeaker, provider, sample_prompts_config, Side.CON)
    with pytest.raises(ExtractionError):
        await speaker.turn(_arguments(), (), RebuttalSet(), None, 0)


# --- analyst and coordinator ---


async def test_analyst_parses_meta_analysis(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "issue_map": {"Statistics": [{
            "issue": "Traffic", "pro_argument": "p", "con_argument": "c", "rebuttal_note": "n",
        }]},
        "evidence_evaluation": {"description": "Solid", "score": 8},
        "key_agreements": ["Congestion"],
        "key_disagreements": ["Cost"],
        "uncertainties": ["Long run"],
        "reflection_prompts": ["Who pays?"],
    }))
    analyst = _agent(MetaAnalyst, provider, sample_prompts_config, language="ko")

    analysis = await analyst.analyze(
        make_issue(), (make_evidence(),), _arguments(), RebuttalSet(), CrossExamSet(),
    )

    assert analysis.issue_map["Statistics"][0].issue == "Traffic"
    assert analysis.evidence_evaluation.score == 8.0
    request = _request(provider)
    assert request.system.startswith("Analyze in ko.")
    assert "KOREAN" in request.system
    assert "Cross Exam:" in request.contents


async def test_coordinator_plans_both_sides(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "pro_query": "air quality", "pro_sector": "Statistics",
        "con_query": "shop revenue", "con_sector": "DomesticCases",
        "reasoning": "gaps",
    }))
    coordinator = _agent(ResearchCoordinator, provider, sample_prompts_config)

    plan = await coordinator.plan(make_issue(), _arguments(), (make_evidence(),))

    assert plan.pro_sector is Sector.STATISTICS
    assert plan.con_sector is Sector.DOMESTIC_CASES
    assert "- [Statistics] Statistics headline 1" in _request(provider).contents


async def test_coordinator_unknown_sector_raises(sample_prompts_config):
    provider = MockProvider()
    provider.generate = AsyncMock(return_value=json_response({
        "pro_query": "x", "pro_sector": "Astrology", "con_query": "y", "con_sector": "Statistics",
    }))
    coordinator = _agent(ResearchCoordinator, provider, sample_prompts_config)
    with pytest.raises(ExtractionError, match="Astrology"):
        await coordinator.plan(make_issue(), _arguments(), ())


# --- wiring ---


def test_build_capabilities_wires_sides(sample_app_config, mock_provider):
    caps = build_capabilities(mock_provider, sample_app_config, language="ko")
    assert caps.advocate(Side.PRO).side is Side.PRO
    assert caps.advocate(Side.CON).side is Side.CON
    assert caps.cross_examiner(Side.CON).side is Side.CON
    assert caps.rebuttal(Side.PRO).side is Side.PRO
    assert caps.framer.language == "ko"


def test_build_capabilities_defaults_language(sample_app_config, mock_provider):
    caps = build_capabilities(mock_provider, sample_app_config)
    assert caps.analyst.language == "en"
