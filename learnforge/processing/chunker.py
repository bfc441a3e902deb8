"""
Sentence-aligned chunking of oversized source text.

Splits long documents into pieces that fit a provider's context budget and
spreads the requested item count across those pieces.

Key behaviour:
1. Text within the token budget is returned untouched as a single chunk
2. Otherwise sentences are accumulated greedily while the chunk stays within
   max_chunk_chars and the token budget
3. Sentence order is preserved and every sentence lands in exactly one chunk
4. A single sentence over either limit is hard-split on word boundaries
   (or kept whole when split_oversized_sentences is off)
"""
from __future__ import annotations

import re
import textwrap
from typing import Optional

from loguru import logger

from learnforge.core.models import ChunkPlan, PlannedChunk
from learnforge.processing.tokens import TokenBudgetEstimator

# Terminal punctuation followed by whitespace ends a sentence
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping each sentence's terminal punctuation."""
    stripped = text.strip()
    if not stripped:
        return []
    return [part.strip() for part in SENTENCE_BOUNDARY.split(stripped) if part.strip()]


def hard_split(sentence: str, max_chars: int) -> list[str]:
    """Split one oversized sentence into pieces of at most max_chars characters."""
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    return textwrap.wrap(
        sentence,
        width=max_chars,
        break_long_words=True,
        break_on_hyphens=False,
    )


class ContentChunker:
    """Budget-aware, sentence-aligned chunker."""

    def __init__(
        self,
        estimator: Optional[TokenBudgetEstimator] = None,
        max_tokens_per_chunk: int = 80_000,
        max_chunk_chars: int = 100_000,
        split_oversized_sentences: bool = True,
    ):
        """
        Args:
            estimator: Token estimator (plain 4 chars/token by default)
            max_tokens_per_chunk: Token budget a single request may carry
            max_chunk_chars: Default character limit per chunk
            split_oversized_sentences: Hard-split sentences longer than the limit
        """
        if max_tokens_per_chunk <= 0 or max_chunk_chars <= 0:
            raise ValueError("chunk limits must be positive")
        self.estimator = estimator or TokenBudgetEstimator()
        self.max_tokens_per_chunk = max_tokens_per_chunk
        self.max_chunk_chars = max_chunk_chars
        self.split_oversized_sentences = split_oversized_sentences

    def needs_chunking(self, text: str, max_tokens: Optional[int] = None) -> bool:
        return self.estimator.estimate(text) > (max_tokens or self.max_tokens_per_chunk)

    def chunk(
        self,
        text: str,
        max_chunk_chars: Optional[int] = None,
        max_tokens: Optional[int] = None,
    ) -> list[str]:
        """
        Split text into ordered chunks.

        Args:
            text: Source text
            max_chunk_chars: Character limit per chunk (defaults to the instance limit)
            max_tokens: Token budget per chunk (defaults to max_tokens_per_chunk)

        Returns:
            [text] when it fits the token budget, otherwise the sentence-aligned chunks
        """
        max_tokens = max_tokens or self.max_tokens_per_chunk
        if not self.needs_chunking(text, max_tokens):
            return [text]

        limit = self._effective_limit(max_chunk_chars or self.max_chunk_chars, max_tokens)
        chunks: list[str] = []
        buffer: list[str] = []
        buffer_len = 0
        buffer_tokens = 0

        def flush() -> None:
            nonlocal buffer, buffer_len, buffer_tokens
            if buffer:
                chunks.append(" ".join(buffer))
                buffer = []
                buffer_len = 0
                buffer_tokens = 0

        for sentence in split_sentences(text):
            if len(sentence) > limit or self.estimator.estimate(sentence) > max_tokens:
                flush()
                if self.split_oversized_sentences:
                    pieces = self._split_oversized(sentence, limit, max_tokens)
                    logger.debug(f"Hard-split oversized sentence ({len(sentence)} chars) into {len(pieces)} pieces")
                    chunks.extend(pieces)
                else:
                    logger.warning(f"Sentence of {len(sentence)} chars exceeds chunk limit {limit}; kept whole")
                    chunks.append(sentence)
                continue

            # Costs include the joining space
            added = len(sentence) + (1 if buffer else 0)
            cost = self.estimator.estimate(" " + sentence if buffer else sentence)
            if buffer and (buffer_len + added > limit or buffer_tokens + cost > max_tokens):
                flush()
                added = len(sentence)
                cost = self.estimator.estimate(sentence)
            buffer.append(sentence)
            buffer_len += added
            buffer_tokens += cost

        flush()

        if not chunks:
            return [text]
        return chunks

    def _split_oversized(self, sentence: str, limit: int, max_tokens: int) -> list[str]:
        # Narrow the width until every piece also fits the token budget
        width = limit
        pieces = hard_split(sentence, width)
        while width > 1 and any(self.estimator.estimate(piece) > max_tokens for piece in pieces):
            width //= 2
            pieces = hard_split(sentence, width)
        return pieces

    def _effective_limit(self, max_chunk_chars: int, max_tokens: int) -> int:
        # A chunk may never be larger than the token budget allows
        budget_chars = max_tokens * self.estimator.chars_per_token
        return max(1, min(max_chunk_chars, budget_chars))


def distribute(total: int, chunk_count: int) -> list[int]:
    """
    Split `total` items across `chunk_count` chunks as evenly as possible.

    The first `total % chunk_count` chunks get one extra item.
    """
    if chunk_count < 1:
        raise ValueError("chunk_count must be at least 1")
    if total < 0:
        raise ValueError("total must not be negative")
    base, remainder = divmod(total, chunk_count)
    return [base + (1 if i < remainder else 0) for i in range(chunk_count)]


def build_chunk_plan(
    text: str,
    desired_count: int,
    chunker: ContentChunker,
    max_chunk_chars: Optional[int] = None,
    max_tokens: Optional[int] = None,
) -> ChunkPlan:
    """Chunk the text and attach the per-chunk item counts."""
    chunks = chunker.chunk(text, max_chunk_chars, max_tokens)
    counts = distribute(desired_count, len(chunks))
    return ChunkPlan(
        chunks=tuple(PlannedChunk(text=chunk, item_count=count) for chunk, count in zip(chunks, counts))
    )
