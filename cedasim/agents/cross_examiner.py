"""Cross-examination: one side questions the other's constructive speech."""

import json
import logging
from dataclasses import asdict

from cedasim.agents.base import BaseAgent, evidence_json, focus_block
from cedasim.agents.schemas import cross_exam_schema
from cedasim.models import CrossExamResult, EvidenceItem, ProConArguments, Side
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


class CrossExaminer(BaseAgent):
    """Asks ``side``'s questions and simulates the opponent's answers."""

    def __init__(self, side: Side, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.side = side

    async def examine(
        self,
        arguments: ProConArguments,
        evidence: tuple[EvidenceItem, ...],
        focus_topic: str | None = None,
    ) -> CrossExamResult:
        asker = self.side.value
        answerer = self.side.opponent.value
        target = arguments.speech(self.side.opponent)
        label = "Negative" if self.side is Side.PRO else "Affirmative"

        template = getattr(self._prompts, f"{asker}_cross_examiner")
        request = GenerationRequest(
            system=template.format(
                focus=focus_block(focus_topic, 'Focus questioning on: "{topic}".'),
                language_instruction=self._lang(),
            ),
            contents=(
                "###Input Data###\n"
                f"{label} Speech: {json.dumps(asdict(target), ensure_ascii=False)}\n"
                f"Evidence: {evidence_json(evidence)}"
            ),
            schema=cross_exam_schema(asker, answerer),
        )
        data = await self._call_json(request)
        questions = tuple(str(q) for q in data.get(f"{asker}_questions") or [])
        answers = tuple(str(a) for a in data.get(f"{answerer}_answers") or [])
        if len(answers) > len(questions):
            logger.warning(
                "%s cross-exam returned %d answers for %d questions; extra answers dropped",
                asker.upper(), len(answers), len(questions),
            )
            answers = answers[:len(questions)]
        return CrossExamResult(asker=self.side, questions=questions, answers=answers)
