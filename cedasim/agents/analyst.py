"""Final meta-analysis of the whole debate."""

import json
import logging
from dataclasses import asdict

from cedasim.agents.base import BaseAgent, evidence_json
from cedasim.agents.schemas import ANALYSIS_SCHEMA
from cedasim.models import (
    CrossExamSet,
    EvidenceItem,
    FramedIssue,
    MetaAnalysis,
    ProConArguments,
    RebuttalSet,
)
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


def _format_debate(
    issue: FramedIssue,
    evidence: tuple[EvidenceItem, ...],
    arguments: ProConArguments,
    rebuttals: RebuttalSet,
    cross_exam: CrossExamSet,
) -> str:
    """Format everything said so far into one context block."""
    return (
        "###Debate Data###\n"
        f"Issue: {json.dumps(issue.to_dict(), ensure_ascii=False)}\n"
        f"Evidence: {evidence_json(evidence)}\n"
        f"Arguments: {json.dumps(asdict(arguments), ensure_ascii=False)}\n"
        f"Rebuttals: {json.dumps(asdict(rebuttals), ensure_ascii=False)}\n"
        f"Cross Exam: {json.dumps(asdict(cross_exam), ensure_ascii=False)}"
    )


class MetaAnalyst(BaseAgent):

    async def analyze(
        self,
        issue: FramedIssue,
        evidence: tuple[EvidenceItem, ...],
        arguments: ProConArguments,
        rebuttals: RebuttalSet,
        cross_exam: CrossExamSet,
    ) -> MetaAnalysis:
        request = GenerationRequest(
            system=self._prompts.analyst.format(
                language=self._language,
                language_instruction=self._lang(),
            ),
            contents=_format_debate(issue, evidence, arguments, rebuttals, cross_exam),
            schema=ANALYSIS_SCHEMA,
        )
        logger.info("Running meta-analysis")
        return MetaAnalysis.from_dict(await self._call_json(request))
