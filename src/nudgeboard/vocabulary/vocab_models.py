# src/nudgeboard/vocabulary/vocab_models.py

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

PARSE_FAILURE_MEANING = "Failed to parse AI response. Please try again."

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(slots=True)
class IPA:
    uk: str = ""
    us: str = ""


@dataclass(slots=True)
class Meaning:
    part_of_speech: str = ""
    vietnamese: str = ""


@dataclass(slots=True)
class Usage:
    examples: list[str] = field(default_factory=list)
    collocations: list[str] = field(default_factory=list)
    grammar_patterns: list[str] = field(default_factory=list)
    common_mistakes: str = ""


@dataclass(slots=True)
class CulturalContext:
    etymology: str = ""
    cultural_significance: str = ""
    related_expressions: list[str] = field(default_factory=list)
    nuances_for_vietnamese_learners: str = ""


@dataclass(slots=True)
class VocabularyEntry:
    """Structured content for one word, as produced by the AI generator."""

    word: str
    ipa: IPA = field(default_factory=IPA)
    meaning: Meaning = field(default_factory=Meaning)
    usage: Usage = field(default_factory=Usage)
    cultural_context: CulturalContext = field(default_factory=CulturalContext)


@dataclass(slots=True)
class Vocabulary:
    """
    Stored vocabulary row.

    ipa/meaning/usage/cultural_context hold JSON strings for entries created
    from AI output, or plain text for older hand-written rows.
    """

    id: int
    word: str
    ipa: str
    meaning: str
    usage: str
    cultural_context: str
    created_at: float
    updated_at: float
    is_favorite: bool = False
    review_count: int = 0
    last_reviewed_at: float | None = None


# ---- wire (camelCase JSON) <-> dataclasses ----

def _str_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(x) for x in raw]


def _ipa_from(raw: Any) -> IPA:
    if isinstance(raw, dict):
        return IPA(uk=str(raw.get("uk") or ""), us=str(raw.get("us") or ""))
    text = str(raw or "")
    return IPA(uk=text, us=text)


def _meaning_from(raw: Any) -> Meaning:
    if isinstance(raw, dict):
        return Meaning(
            part_of_speech=str(raw.get("partOfSpeech") or ""),
            vietnamese=str(raw.get("vietnamese") or ""),
        )
    return Meaning(vietnamese=str(raw or ""))


def _usage_from(raw: Any) -> Usage:
    if not isinstance(raw, dict):
        return Usage()
    return Usage(
        examples=_str_list(raw.get("examples")),
        collocations=_str_list(raw.get("collocations")),
        grammar_patterns=_str_list(raw.get("grammarPatterns")),
        common_mistakes=str(raw.get("commonMistakes") or ""),
    )


def _context_from(raw: Any) -> CulturalContext:
    if not isinstance(raw, dict):
        return CulturalContext()
    return CulturalContext(
        etymology=str(raw.get("etymology") or ""),
        cultural_significance=str(raw.get("culturalSignificance") or ""),
        related_expressions=_str_list(raw.get("relatedExpressions")),
        nuances_for_vietnamese_learners=str(raw.get("nuancesForVietnameseLearners") or ""),
    )


def entry_to_wire(entry: VocabularyEntry) -> dict[str, Any]:
    """camelCase JSON document, the shape the generator is asked to produce."""
    return {
        "word": entry.word,
        "ipa": asdict(entry.ipa),
        "meaning": {
            "partOfSpeech": entry.meaning.part_of_speech,
            "vietnamese": entry.meaning.vietnamese,
        },
        "usage": {
            "examples": list(entry.usage.examples),
            "collocations": list(entry.usage.collocations),
            "grammarPatterns": list(entry.usage.grammar_patterns),
            "commonMistakes": entry.usage.common_mistakes,
        },
        "culturalContext": {
            "etymology": entry.cultural_context.etymology,
            "culturalSignificance": entry.cultural_context.cultural_significance,
            "relatedExpressions": list(entry.cultural_context.related_expressions),
            "nuancesForVietnameseLearners": entry.cultural_context.nuances_for_vietnamese_learners,
        },
    }


def _extract_json_object(response: str) -> str:
    s = (response or "").strip()

    m = _FENCED_JSON.search(s)
    if m:
        logger.warning("AI response contained a markdown code block; extracting JSON.")
        s = m.group(1).strip()

    if not s.startswith("{"):
        m = _JSON_OBJECT.search(s)
        if m:
            logger.warning("AI response had prefix text; extracting JSON object.")
            s = m.group(0)

    last = s.rfind("}")
    if last != -1 and last < len(s) - 1:
        logger.warning("Removing trailing text after JSON.")
        s = s[: last + 1]

    if not (s.startswith("{") and s.endswith("}")):
        raise ValueError(f"Invalid JSON structure. Got: {s[:100]}...")
    return s


def parse_vocabulary_response(response: str, original_word: str) -> VocabularyEntry:
    """
    Turn raw generator output into a VocabularyEntry.

    Tolerates fenced code blocks, leading prose and trailing text. Never
    raises: unparseable output yields an empty entry whose meaning says so.
    """
    try:
        parsed = json.loads(_extract_json_object(response))
        if not isinstance(parsed, dict):
            raise ValueError("AI response is not a JSON object")
        if not parsed.get("word") and not parsed.get("ipa") and not parsed.get("meaning"):
            raise ValueError("Invalid response structure - missing required fields")

        context = parsed.get("culturalContext", parsed.get("cultural_context"))
        return VocabularyEntry(
            word=str(parsed.get("word") or original_word),
            ipa=_ipa_from(parsed.get("ipa")),
            meaning=_meaning_from(parsed.get("meaning")),
            usage=_usage_from(parsed.get("usage")),
            cultural_context=_context_from(context),
        )
    except Exception as exc:
        logger.error(
            "Failed to parse AI response (%s); length=%d head=%r",
            exc,
            len(response or ""),
            (response or "")[:1000],
        )
        return VocabularyEntry(
            word=original_word,
            meaning=Meaning(vietnamese=PARSE_FAILURE_MEANING),
        )


def flatten_entry(entry: VocabularyEntry) -> dict[str, str]:
    """Structured entry -> JSON strings for storage."""
    wire = entry_to_wire(entry)
    return {
        "word": entry.word,
        "ipa": json.dumps(wire["ipa"], ensure_ascii=False),
        "meaning": json.dumps(wire["meaning"], ensure_ascii=False),
        "usage": json.dumps(wire["usage"], ensure_ascii=False),
        "cultural_context": json.dumps(wire["culturalContext"], ensure_ascii=False),
    }


def parse_stored_field(value: str) -> dict[str, Any] | str:
    """Stored JSON string -> dict; plain-text (legacy) values are returned as-is."""
    if not value:
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return value
    return parsed if isinstance(parsed, dict) else value


def is_quality_entry(entry: VocabularyEntry) -> bool:
    """Heuristic: has a word, a real meaning and at least one example."""
    return (
        len(entry.word) > 0
        and len(entry.meaning.vietnamese) > 10
        and len(entry.usage.examples) > 0
    )
