"""Constructive speeches and follow-up answers for one side."""

import json
import logging

from cedasim.agents.base import BaseAgent, evidence_json, focus_block
from cedasim.agents.schemas import ANSWER_SCHEMA, speech_schema
from cedasim.extraction import ExtractionError
from cedasim.models import ConstructiveSpeech, EvidenceItem, FramedIssue, Side
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


class Advocate(BaseAgent):
    """Speaker for ``side``: writes its constructive and answers user questions."""

    def __init__(self, side: Side, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.side = side

    async def constructive(
        self,
        issue: FramedIssue,
        evidence: tuple[EvidenceItem, ...],
        focus_topic: str | None = None,
    ) -> ConstructiveSpeech:
        template = getattr(self._prompts, f"{self.side.value}_advocate")
        focus = focus_block(
            focus_topic,
            'The user has asked specifically about: "{topic}". Tailor your constructive speech to this angle.',
        )
        request = GenerationRequest(
            system=template.format(focus=focus, language_instruction=self._lang()),
            contents=(
                "###Input Data###\n"
                f"Resolution: {issue.refined_issue}\n"
                f"Evidence: {evidence_json(evidence)}"
            ),
            schema=speech_schema(self.side.value),
        )
        data = await self._call_json(request)
        key = f"{self.side.value}_speech"
        if not isinstance(data.get(key), dict):
            raise ExtractionError(f"Response has no '{key}' object")
        speech = ConstructiveSpeech.from_dict(data[key])
        logger.info("%s constructive: %d contentions", self.side.value.upper(), len(speech.contentions))
        return speech

    async def answer(
        self,
        issue: FramedIssue,
        evidence: tuple[EvidenceItem, ...],
        question: str,
    ) -> str:
        template = getattr(self._prompts, f"{self.side.value}_answer")
        position = issue.positions.pro if self.side is Side.PRO else issue.positions.con
        request = GenerationRequest(
            system=template.format(resolution=issue.refined_issue, language_instruction=self._lang()),
            contents=(
                "###Context###\n"
                f"Resolution: {issue.refined_issue}\n"
                f"{self.side.value.capitalize()} Position: {position}\n"
                f"Evidence: {evidence_json(evidence)}\n\n"
                "###User Question###\n"
                f"{json.dumps(question, ensure_ascii=False)}"
            ),
            schema=ANSWER_SCHEMA,
        )
        data = await self._call_json(request)
        answer = data.get("answer")
        if not isinstance(answer, str) or not answer:
            raise ExtractionError("Response has no 'answer' text")
        return answer
