"""Research coordinator: plans one extra search per side before rebuttals."""

import json
import logging
from dataclasses import asdict

from cedasim.agents.base import BaseAgent
from cedasim.agents.schemas import RESEARCH_REQUEST_SCHEMA
from cedasim.extraction import ExtractionError
from cedasim.models import EvidenceItem, FramedIssue, ProConArguments, ResearchRequest, Sector
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


def _sector(value: object) -> Sector:
    try:
        return Sector(value)
    except ValueError as exc:
        raise ExtractionError(f"Unknown sector in research plan: {value!r}") from exc


class ResearchCoordinator(BaseAgent):

    async def plan(
        self,
        issue: FramedIssue,
        arguments: ProConArguments,
        evidence: tuple[EvidenceItem, ...],
    ) -> ResearchRequest:
        summary = "\n".join(f"- [{e.sector.value}] {e.content}" for e in evidence)
        pro = [asdict(c) for c in arguments.pro_speech.contentions]
        con = [asdict(c) for c in arguments.con_speech.contentions]
        request = GenerationRequest(
            system=self._prompts.coordinator.format(language_instruction=self._lang()),
            contents=(
                "###Debate Context###\n"
                f"Resolution: {issue.refined_issue}\n"
                f"Pro Arguments: {json.dumps(pro, ensure_ascii=False)}\n"
                f"Con Arguments: {json.dumps(con, ensure_ascii=False)}\n\n"
                "###Existing Evidence###\n"
                f"{summary}\n"
            ),
            schema=RESEARCH_REQUEST_SCHEMA,
        )
        data = await self._call_json(request)
        plan = ResearchRequest(
            pro_query=str(data.get("pro_query") or ""),
            pro_sector=_sector(data.get("pro_sector")),
            con_query=str(data.get("con_query") or ""),
            con_sector=_sector(data.get("con_sector")),
            reasoning=str(data.get("reasoning") or ""),
        )
        logger.info("Supplementary research planned: %s / %s", plan.pro_sector.value, plan.con_sector.value)
        return plan
