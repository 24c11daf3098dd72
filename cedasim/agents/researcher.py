"""Neutral per-sector evidence research with InfoQ scoring."""

import logging
from datetime import date

from cedasim.agents.base import BaseAgent
from cedasim.extraction import ExtractionError
from cedasim.models import EvidenceItem, FramedIssue, Sector
from cedasim.providers.base import GenerationRequest
from cedasim.scoring import RawEvidence, select_evidence

logger = logging.getLogger(__name__)

SECTOR_TARGETS: dict[Sector, int] = {
    Sector.STATISTICS: 10,
    Sector.PUBLIC_OPINION: 10,
    Sector.DOMESTIC_CASES: 5,
    Sector.INTERNATIONAL_CASES: 3,
    Sector.THEORIES: 5,
    Sector.STAKEHOLDERS: 6,
}

# Sectors that search a broader concept than the literal resolution.
GENERALIZED_SECTORS = frozenset({
    Sector.STATISTICS,
    Sector.DOMESTIC_CASES,
    Sector.INTERNATIONAL_CASES,
    Sector.THEORIES,
})


class NeutralResearcher(BaseAgent):

    async def generalize_topic(self, issue: str, sector: Sector) -> str:
        if sector not in GENERALIZED_SECTORS:
            return issue
        text = await self._call_text(
            GenerationRequest(system="", contents=self._prompts.generalize.format(issue=issue))
        )
        return text.strip() or issue

    def _strategy(self, sector: Sector, issue: FramedIssue, topic: str) -> str:
        template = self._prompts.sector_strategies.get(sector.value, "")
        return template.format(
            topic=topic,
            issue=issue.refined_issue,
            country=issue.scope.country or "the country in scope",
        )

    async def research_sector(
        self,
        issue: FramedIssue,
        sector: Sector,
        existing_headlines: list[str] | None = None,
        query: str | None = None,
        start_index: int = 0,
        limit: int | None = None,
    ) -> list[EvidenceItem]:
        """Search one sector and return scored, admissible evidence.

        ``query`` overrides the search concept (used for targeted follow-up
        research). A reply that cannot be parsed yields no evidence rather
        than an error.
        """
        target = limit if limit is not None else SECTOR_TARGETS[sector]
        if query:
            topic = query
        else:
            topic = await self.generalize_topic(issue.refined_issue, sector)
        generalized = topic != issue.refined_issue

        avoidance = ""
        if existing_headlines:
            lines = "\n".join(f"- {h}" for h in existing_headlines)
            avoidance = f"<avoid_duplication>\nDo NOT duplicate:\n{lines}\n</avoid_duplication>"

        system = self._prompts.researcher.format(
            current_date=date.today().isoformat(),
            language=self._language,
            sector=sector.value,
            target_count=target,
            strategy=self._strategy(sector, issue, topic),
            avoidance=avoidance,
            language_instruction=self._lang(),
        )
        contents = (
            "###Topic###\n"
            f"Original Issue: {issue.refined_issue}\n"
            f"Search Concept: {topic} ({'Generalized' if generalized else 'Specific'})\n\n"
            "###Task###\n"
            f"Find exactly {target} high-quality items for sector: {sector.value}.\n"
        )

        request = GenerationRequest(system=system, contents=contents, search=True, temperature=0.1)
        try:
            data = await self._call_json(request)
        except ExtractionError as exc:
            logger.warning("JSON parsing failed for sector %s: %s", sector.value, exc)
            return []

        raw_items = data.get("data")
        if not isinstance(raw_items, list):
            return []
        raw = [RawEvidence.from_dict(item) for item in raw_items if isinstance(item, dict)]
        kept = select_evidence(raw, sector, limit=target, start_index=start_index)
        logger.info("Sector %s: %d evidence items kept", sector.value, len(kept))
        return kept
