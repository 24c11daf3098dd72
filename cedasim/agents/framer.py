"""Issue framing: turn a raw topic into a neutral, scoped debate resolution."""

import json
import logging

from cedasim.agents.base import BaseAgent
from cedasim.extraction import ExtractionError
from cedasim.models import ChatMessage, FramedIssue, IssueRefinement
from cedasim.providers.base import GenerationRequest

logger = logging.getLogger(__name__)


class IssueFramer(BaseAgent):

    async def frame(self, topic: str) -> FramedIssue:
        request = GenerationRequest(
            system=self._prompts.framer.format(language_instruction=self._lang()),
            contents=f"User Topic: {topic}",
            search=True,
        )
        data = await self._call_json(request)
        try:
            issue = FramedIssue.from_dict(data)
        except KeyError as exc:
            raise ExtractionError(f"Framed issue is missing field {exc}") from exc
        logger.info("Framed issue: %s", issue.refined_issue)
        return issue

    async def refine(self, history: list[ChatMessage], draft: FramedIssue) -> IssueRefinement:
        """Apply the latest user message in ``history`` to ``draft``."""
        chat_context = "\n".join(f"{m.role.upper()}: {m.text}" for m in history)
        latest = history[-1].text if history else ""
        request = GenerationRequest(
            system=self._prompts.refiner.format(language_instruction=self._lang()),
            contents=(
                f"Current Draft: {json.dumps(draft.to_dict(), ensure_ascii=False)}\n\n"
                f"Chat History:\n{chat_context}\n\n"
                f"User Input: {latest}"
            ),
            search=True,
        )
        data = await self._call_json(request)
        try:
            refined = FramedIssue.from_dict(data["draft"])
        except (KeyError, TypeError) as exc:
            raise ExtractionError(f"Refinement is missing a usable draft: {exc}") from exc
        return IssueRefinement(message=str(data.get("message") or ""), draft=refined)
