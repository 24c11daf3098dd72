"""Rebuttal turns: defend against the opponent's last attack, then attack."""

import json
import logging
from dataclasses import asdict

from cedasim.agents.base import BaseAgent, evidence_json, focus_block
from cedasim.agents.schemas import REBUTTAL_SCHEMA
from cedasim.extraction import ExtractionError
from cedasim.models import EvidenceItem, ProConArguments, RebuttalItem, RebuttalSet, Side
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


def _immediate_context(last_opponent: RebuttalItem | None) -> str:
    if last_opponent is None:
        return "###IMMEDIATE CONTEXT###\nStart of rebuttal phase. No attack to defend yet."
    return (
        "###IMMEDIATE CONTEXT###\n"
        f'Opponent Argued: "{last_opponent.rebuttal}".\n'
        f'Logic Issue: "{last_opponent.logical_issue_identified}".\n'
        "Task: Defend specifically against this point."
    )


class RebuttalSpeaker(BaseAgent):

    def __init__(self, side: Side, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.side = side

    def build_request(
        self,
        arguments: ProConArguments,
        evidence: tuple[EvidenceItem, ...],
        history: RebuttalSet,
        last_opponent: RebuttalItem | None,
        focus_topic: str | None = None,
    ) -> GenerationRequest:
        template = getattr(self._prompts, f"{self.side.value}_rebuttal")
        past = "; ".join(f"Attacked: {r.target_claim}" for r in history.items(self.side))
        return GenerationRequest(
            system=template.format(
                focus=focus_block(focus_topic, 'Address topic: "{topic}".'),
                language_instruction=self._lang(),
            ),
            contents=(
                "###Input Data###\n"
                f"Evidence: {evidence_json(evidence)}\n"
                f"Constructive Speeches: {json.dumps(asdict(arguments), ensure_ascii=False)}\n"
                f"Past My Attacks: {past}\n"
                f"{_immediate_context(last_opponent)}"
            ),
            schema=REBUTTAL_SCHEMA,
        )

    async def turn(
        self,
        arguments: ProConArguments,
        evidence: tuple[EvidenceItem, ...],
        history: RebuttalSet,
        last_opponent: RebuttalItem | None,
        turn_index: int,
        focus_topic: str | None = None,
    ) -> RebuttalItem:
        """Produce this side's rebuttal for round ``turn_index`` (0-based)."""
        request = self.build_request(arguments, evidence, history, last_opponent, focus_topic)
        data = await self._call_json(request)
        item = data.get("rebuttal_item")
        if not isinstance(item, dict):
            raise ExtractionError("Response has no 'rebuttal_item' object")
        logger.debug("%s rebuttal round %d generated", self.side.value.upper(), turn_index + 1)
        return RebuttalItem.from_dict(item)
