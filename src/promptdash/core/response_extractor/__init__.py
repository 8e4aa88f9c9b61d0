"""
Response Extractor - Isolate the JSON candidate from raw model output

Responsibilities:
- Strip markdown fences the model sometimes wraps around its answer
- Return the trimmed candidate text
- NO JSON parsing (that is command_validator)

Extractors are pluggable; the validator only depends on the returned string.
"""

import re
from abc import ABC, abstractmethod

from promptdash.exceptions import ExtractionFailedException


class ResponseExtractor(ABC):
    """Interface for pulling the command candidate out of model output."""

    @abstractmethod
    def extract(self, text: str) -> str:
        """Return the candidate JSON text, or raise ExtractionFailedException."""
        pass


class FencedBlockExtractor(ResponseExtractor):
    """
    Default extractor.

    The first fenced block (optionally tagged ``json``) wins and its trimmed
    interior is returned. Without a fence the whole text, trimmed, is the
    candidate. Text outside the first fence is ignored.
    """

    FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

    def extract(self, text: str) -> str:
        raw = text or ""
        match = self.FENCE_PATTERN.search(raw)
        candidate = match.group(1).strip() if match else raw.strip()

        if not candidate:
            raise ExtractionFailedException(raw, reason="empty model response")

        return candidate


__all__ = ["FencedBlockExtractor", "ResponseExtractor"]
