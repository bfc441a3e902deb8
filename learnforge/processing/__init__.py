"""Text processing ahead of generation: token estimation and chunking.

Usage:
    from learnforge.processing import ContentChunker, distribute

    chunker = ContentChunker(max_tokens_per_chunk=80_000, max_chunk_chars=100_000)
    chunks = chunker.chunk(document_text)
    counts = distribute(20, len(chunks))
"""

from learnforge.processing.chunker import (
    ContentChunker,
    build_chunk_plan,
    distribute,
    hard_split,
    split_sentences,
)
from learnforge.processing.tokens import TokenBudgetEstimator

__all__ = [
    "TokenBudgetEstimator",
    "ContentChunker",
    "build_chunk_plan",
    "distribute",
    "hard_split",
    "split_sentences",
]
