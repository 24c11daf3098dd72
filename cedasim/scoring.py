"""InfoQ evidence scoring and the admission filter for the evidence board.

Each item is scored on four axes (resolution, temporal, reliability,
context) from metadata the researcher extracts; the score is the geometric
mean of the axes. Statistics evidence without verifiable numbers and
Theories evidence from weak sources get the offending axis forced to 0, which
drags the geometric mean below the admission threshold. That collapse is
intentional: those sectors have no use for such items.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from cedasim.models import EvidenceItem, InfoQBreakdown, ScoreBreakdown, Sector

logger = logging.getLogger(__name__)

MIN_SCORE = 60
MIN_DETAIL_LEN = 11

_DIGIT = re.compile(r"\d")

_TIER_SCORES = {"Tier1": 100, "Tier2": 80, "Tier3": 40}
_FIT_SCORES = {"Direct": 100, "Proxy": 70, "Weak": 40}
_FLOOR = 40

# Statistics and Stakeholders share their first three letters.
_ID_PREFIXES = {
    Sector.STATISTICS: "STA",
    Sector.PUBLIC_OPINION: "PUB",
    Sector.DOMESTIC_CASES: "DOM",
    Sector.INTERNATIONAL_CASES: "INT",
    Sector.THEORIES: "THE",
    Sector.STAKEHOLDERS: "STK",
}


@dataclass(frozen=True)
class RawEvidence:
    """One item as the researcher returns it, before scoring."""

    headline: str
    detail: str
    source: str
    url: str
    pub_year: int | None
    source_tier: str
    has_stats: bool
    op_fit: str
    stakeholder_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawEvidence":
        st_type = data.get("st_type")
        return cls(
            headline=str(data.get("c") or ""),
            detail=str(data.get("d") or ""),
            source=str(data.get("src") or ""),
            url=str(data.get("u") or ""),
            pub_year=_parse_year(data.get("pub_year")),
            source_tier=str(data.get("source_tier") or ""),
            has_stats=data.get("has_stats") is True,
            op_fit=str(data.get("op_fit") or ""),
            stakeholder_type=st_type if st_type in ("Benefit", "Loss") else None,
        )


def _parse_year(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def resolution_score(has_stats: bool, detail: str) -> int:
    """100 for claimed and verifiable numbers, 50 for an unverified claim."""
    if not has_stats:
        return _FLOOR
    return 100 if _DIGIT.search(detail) else 50


def temporal_score(pub_year: int | None, current_year: int) -> int:
    if pub_year is None:
        return _FLOOR
    age = current_year - pub_year
    if age <= 1:
        return 100
    if age <= 3:
        return 90
    if age <= 5:
        return 80
    return max(_FLOOR, 80 - 5 * (age - 5))


def reliability_score(source_tier: str) -> int:
    return _TIER_SCORES.get(source_tier, _FLOOR)


def context_score(op_fit: str) -> int:
    return _FIT_SCORES.get(op_fit, _FLOOR)


def infoq_breakdown(raw: RawEvidence, sector: Sector, current_year: int) -> InfoQBreakdown:
    resolution = resolution_score(raw.has_stats, raw.detail)
    reliability = reliability_score(raw.source_tier)
    if sector is Sector.STATISTICS and resolution < 80:
        resolution = 0
    if sector is Sector.THEORIES and reliability < 80:
        reliability = 0
    return InfoQBreakdown(
        resolution=resolution,
        temporal=temporal_score(raw.pub_year, current_year),
        reliability=reliability,
        context=context_score(raw.op_fit),
    )


def geometric_score(info_q: InfoQBreakdown) -> int:
    product = (
        max(1, info_q.resolution)
        * max(1, info_q.temporal)
        * max(1, info_q.reliability)
        * max(1, info_q.context)
    )
    return round(product ** 0.25)


def score_evidence(raw: RawEvidence, sector: Sector, current_year: int | None = None) -> tuple[int, InfoQBreakdown]:
    """Return (score 0-100, axis breakdown) for one raw item. Pure."""
    year = current_year if current_year is not None else date.today().year
    info_q = infoq_breakdown(raw, sector, year)
    return geometric_score(info_q), info_q


def reliability_level(score: int) -> str:
    if score >= 80:
        return "High"
    if score >= 60:
        return "Medium"
    return "Low"


def _id_prefix(sector: Sector) -> str:
    return f"EV-{_ID_PREFIXES[sector]}"


def evidence_id(sector: Sector, sequence: int) -> str:
    return f"{_id_prefix(sector)}-{sequence:02d}"


def _headline(raw: RawEvidence, sector: Sector) -> str:
    if sector is Sector.STAKEHOLDERS and raw.stakeholder_type:
        prefix = "[Gain] " if raw.stakeholder_type == "Benefit" else "[Loss] "
        return prefix + raw.headline
    return raw.headline


def expand_evidence(
    raw_items: list[RawEvidence],
    sector: Sector,
    start_index: int = 0,
    current_year: int | None = None,
) -> list[EvidenceItem]:
    """Score raw items and turn them into board entries, numbered in order."""
    items: list[EvidenceItem] = []
    for offset, raw in enumerate(raw_items):
        score, info_q = score_evidence(raw, sector, current_year)
        items.append(
            EvidenceItem(
                id=evidence_id(sector, start_index + offset + 1),
                content=_headline(raw, sector),
                detail=raw.detail,
                sector=sector,
                source_summary=raw.source,
                reliability=reliability_level(score),
                url=raw.url,
                score=score,
                info_q=info_q,
                score_breakdown=ScoreBreakdown(
                    objectivity=round((info_q.reliability + info_q.resolution) / 2),
                    relevance=info_q.context,
                    significance=info_q.temporal,
                ),
                stakeholder_type=raw.stakeholder_type,
            )
        )
    return items


def is_admissible(item: EvidenceItem) -> bool:
    """Hard gate for the evidence board: URL, substantive detail, score >= 60."""
    return (
        item.url.startswith("http")
        and len(item.detail) >= MIN_DETAIL_LEN
        and item.score >= MIN_SCORE
    )


def select_evidence(
    raw_items: list[RawEvidence],
    sector: Sector,
    limit: int | None = None,
    start_index: int = 0,
    current_year: int | None = None,
) -> list[EvidenceItem]:
    """Score, drop inadmissible items, keep at most ``limit``."""
    expanded = expand_evidence(raw_items, sector, start_index, current_year)
    kept = [item for item in expanded if is_admissible(item)]
    if len(kept) < len(expanded):
        logger.debug(
            "Sector %s: kept %d/%d evidence items after scoring",
            sector.value, len(kept), len(expanded),
        )
    return kept[:limit] if limit is not None else kept


def _split_id(item_id: str) -> tuple[str, int]:
    prefix, _, suffix = item_id.rpartition("-")
    return prefix, int(suffix) if suffix.isdigit() else 0


def append_numbered(
    existing: tuple[EvidenceItem, ...],
    new_items: list[EvidenceItem],
) -> tuple[EvidenceItem, ...]:
    """Renumber ``new_items`` after the highest id already used per id prefix.

    Ids are numbered before filtering, so a sector's ids can have gaps; the
    next free number is taken from the highest, not from the count.
    """
    last: dict[str, int] = {}
    for item in existing:
        prefix, seq = _split_id(item.id)
        last[prefix] = max(last.get(prefix, 0), seq)
    renumbered: list[EvidenceItem] = []
    for item in new_items:
        prefix = _id_prefix(item.sector)
        seq = last.get(prefix, 0) + 1
        last[prefix] = seq
        renumbered.append(replace(item, id=evidence_id(item.sector, seq)))
    return tuple(renumbered)
