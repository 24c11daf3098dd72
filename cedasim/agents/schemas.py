"""JSON schemas for structured capability output."""

from cedasim.models import SECTORS

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": _STRING}
_SECTOR_NAMES = [s.value for s in SECTORS]


def _obj(properties: dict, required: list[str] | None = None) -> dict:
    return {
        "type": "object",
        "properties": properties,
        "required": required if required is not None else list(properties),
    }


def speech_schema(side: str) -> dict:
    speech = _obj(
        {
            "introduction": _obj(
                {
                    "hook": {"type": "string", "description": "One striking fact or point (no greeting)"},
                    "definitions": {"type": "string", "description": "Concise definitions"},
                    "value_criterion": {"type": "string", "description": "The standard for judgment"},
                    "roadmap": {"type": "string", "description": "Numbered list of arguments"},
                },
                required=["definitions", "value_criterion", "roadmap"],
            ),
            "contentions": {
                "type": "array",
                "items": _obj(
                    {
                        "signpost": {"type": "string", "description": "e.g. Point 1, Point 2"},
                        "claim": {"type": "string", "description": "Direct assertion"},
                        "reasoning": {"type": "string", "description": "Logic explaining the claim"},
                        "evidence_id": _STRING_LIST,
                        "sector": {"type": "string", "enum": _SECTOR_NAMES},
                    }
                ),
            },
            "conclusion": _obj(
                {
                    "summary": {"type": "string", "description": "One sentence recap"},
                    "final_appeal": {"type": "string", "description": "Final impact statement"},
                }
            ),
        }
    )
    return _obj({f"{side}_speech": speech})


ANSWER_SCHEMA = _obj({"answer": {"type": "string", "description": "Direct answer keeping the assigned stance"}})


def cross_exam_schema(asker: str, answerer: str) -> dict:
    return _obj(
        {
            f"{asker}_questions": {**_STRING_LIST, "description": "Direct questions (max 2)"},
            f"{answerer}_answers": {**_STRING_LIST, "description": "Direct answers, same order"},
        }
    )


REBUTTAL_SCHEMA = _obj(
    {
        "rebuttal_item": _obj(
            {
                "target_claim": {"type": "string", "description": "The opposing constructive claim under attack"},
                "sector": _STRING,
                "defense": {"type": "string", "description": "Direct defense against the last attack"},
                "rebuttal": {"type": "string", "description": "Direct counter-attack"},
                "evidence_used": _STRING_LIST,
                "logical_issue_identified": _STRING,
            }
        )
    }
)

_ANALYSIS_POINT = _obj(
    {
        "issue": {"type": "string", "description": "The specific point of contention"},
        "pro_argument": {"type": "string", "description": "Affirmative position on this point"},
        "con_argument": {"type": "string", "description": "Negative position on this point"},
        "rebuttal_note": {"type": "string", "description": "How this point was contested"},
    }
)

ANALYSIS_SCHEMA = _obj(
    {
        "issue_map": _obj(
            {name: {"type": "array", "items": _ANALYSIS_POINT} for name in _SECTOR_NAMES},
            required=[],
        ),
        "evidence_evaluation": _obj({"description": _STRING, "score": {"type": "number"}}),
        "key_agreements": _STRING_LIST,
        "key_disagreements": _STRING_LIST,
        "uncertainties": _STRING_LIST,
        "reflection_prompts": _STRING_LIST,
    }
)

RESEARCH_REQUEST_SCHEMA = _obj(
    {
        "pro_query": {"type": "string", "description": "Search query for the Pro side"},
        "pro_sector": {"type": "string", "enum": _SECTOR_NAMES},
        "con_query": {"type": "string", "description": "Search query for the Con side"},
        "con_sector": {"type": "string", "enum": _SECTOR_NAMES},
        "reasoning": {"type": "string", "description": "Why these queries are needed"},
    }
)
