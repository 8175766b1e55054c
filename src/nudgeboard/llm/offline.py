# src/nudgeboard/llm/offline.py

from __future__ import annotations

from ..vocabulary.vocab_models import Meaning, Usage, VocabularyEntry
from .client import VocabularyGenerationError


class OfflineVocabularyGenerator:
    """
    Offline deterministic generator used for demos when no AI provider is configured.

    Returns a placeholder entry so the rest of the vocabulary flow (store, review,
    favourites) stays usable without network access.
    """

    provider = "offline"

    def generate(self, word: str) -> VocabularyEntry:
        w = (word or "").strip()
        if not w:
            raise VocabularyGenerationError("Word is required")
        return VocabularyEntry(
            word=w,
            meaning=Meaning(
                vietnamese=(
                    "Offline demo mode: no AI provider is configured. "
                    "Set NUDGE_AI_PROVIDER and the matching API key to generate real content."
                ),
            ),
            usage=Usage(examples=[f"**{w}**"]),
        )
