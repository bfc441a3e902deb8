"""Cheap, provider-agnostic token cost estimation."""
from __future__ import annotations

import math
import re

_PUNCTUATION = re.compile(r"[^\w\s]")
_TECHNICAL = re.compile(r"\b\d+\b|[A-Z]{2,}|[_-]+")


class TokenBudgetEstimator:
    """
    Approximate token counts at a fixed characters-per-token ratio.

    Accuracy is not the goal; the estimate only has to be monotonic in text
    length and never below the plain ratio. Weighted mode adds a surcharge for
    punctuation and technical tokens (numbers, acronyms, identifiers), which
    tokenize worse than prose.
    """

    def __init__(self, chars_per_token: int = 4, weighted: bool = False):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token
        self.weighted = weighted

    def estimate(self, text: str) -> int:
        base = math.ceil(len(text) / self.chars_per_token)
        if not self.weighted:
            return base

        punctuation = len(_PUNCTUATION.findall(text)) * 0.2
        technical = len(_TECHNICAL.findall(text)) * 0.1
        return math.ceil(base + punctuation + technical)

    def fits(self, text: str, budget: int) -> bool:
        return self.estimate(text) <= budget
