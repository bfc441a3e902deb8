"""
Unit tests for ContentChunker and the item-count distributor.
"""

import pytest

from learnforge.processing.chunker import (
    ContentChunker,
    build_chunk_plan,
    distribute,
    hard_split,
    split_sentences,
)
from learnforge.processing.tokens import TokenBudgetEstimator


def make_text(sentence_count: int, sentence_length: int = 50) -> str:
    """Build text of numbered sentences, each exactly sentence_length chars."""
    sentences = []
    for i in range(sentence_count):
        prefix = f"Sentence {i:05d} "
        body = "x" * (sentence_length - len(prefix) - 1)
        sentences.append(prefix + body + ".")
    return " ".join(sentences)


class TestSplitSentences:
    def test_splits_on_terminal_punctuation(self):
        assert split_sentences("One. Two! Three? Four") == ["One.", "Two!", "Three?", "Four"]

    def test_keeps_abbreviation_like_dots_without_space(self):
        assert split_sentences("Version 3.5 is out. Done.") == ["Version 3.5 is out.", "Done."]

    def test_empty(self):
        assert split_sentences("   ") == []


class TestHardSplit:
    def test_pieces_respect_limit(self):
        sentence = "word " * 100
        pieces = hard_split(sentence.strip(), 30)
        assert all(len(piece) <= 30 for piece in pieces)
        assert " ".join(pieces) == sentence.strip()

    def test_breaks_long_words(self):
        pieces = hard_split("a" * 95, 30)
        assert [len(p) for p in pieces] == [30, 30, 30, 5]


class TestContentChunker:
    def test_text_within_budget_is_single_chunk(self):
        chunker = ContentChunker(max_tokens_per_chunk=1000, max_chunk_chars=500)
        text = make_text(10)
        assert chunker.chunk(text) == [text]

    def test_chunks_preserve_order_and_sentences(self):
        chunker = ContentChunker(max_tokens_per_chunk=100, max_chunk_chars=400)
        text = make_text(40)
        chunks = chunker.chunk(text)

        assert len(chunks) > 1
        rejoined = [s for chunk in chunks for s in split_sentences(chunk)]
        assert rejoined == split_sentences(text)

    def test_chunks_respect_char_limit(self):
        chunker = ContentChunker(max_tokens_per_chunk=100, max_chunk_chars=400)
        for chunk in chunker.chunk(make_text(40)):
            assert len(chunk) <= 400

    def test_chunks_fit_token_budget(self):
        estimator = TokenBudgetEstimator()
        chunker = ContentChunker(estimator=estimator, max_tokens_per_chunk=100, max_chunk_chars=10_000)
        chunks = chunker.chunk(make_text(40))
        # The token budget caps the effective chunk size at 400 chars
        assert all(estimator.estimate(chunk) <= 100 for chunk in chunks)

    def test_weighted_chunks_fit_explicit_token_budget(self):
        estimator = TokenBudgetEstimator(weighted=True)
        chunker = ContentChunker(estimator=estimator, max_tokens_per_chunk=10_000, max_chunk_chars=10_000)
        text = " ".join(f"Port {i}: TCP/UDP, see RFC-{i}." for i in range(200))

        chunks = chunker.chunk(text, max_tokens=120)

        assert len(chunks) > 1
        assert all(estimator.estimate(chunk) <= 120 for chunk in chunks)
        assert " ".join(chunks) == text

    def test_explicit_max_chunk_chars_overrides_default(self):
        chunker = ContentChunker(max_tokens_per_chunk=100, max_chunk_chars=400)
        chunks = chunker.chunk(make_text(40), max_chunk_chars=200)
        assert all(len(chunk) <= 200 for chunk in chunks)

    def test_oversized_sentence_is_hard_split(self):
        chunker = ContentChunker(max_tokens_per_chunk=25, max_chunk_chars=100)
        long_sentence = " ".join(["token"] * 60) + "."
        text = "Short start. " + long_sentence + " Short end."
        chunks = chunker.chunk(text)

        assert all(len(chunk) <= 100 for chunk in chunks)
        assert chunks[0] == "Short start."
        assert chunks[-1].endswith("Short end.")
        assert "".join(chunks).replace(" ", "") == text.replace(" ", "")

    def test_oversized_sentence_kept_whole_when_splitting_disabled(self):
        chunker = ContentChunker(max_tokens_per_chunk=25, max_chunk_chars=100, split_oversized_sentences=False)
        long_sentence = " ".join(["token"] * 60) + "."
        chunks = chunker.chunk("Short start. " + long_sentence)

        assert long_sentence in chunks

    def test_degenerate_input_falls_back_to_original(self):
        chunker = ContentChunker(max_tokens_per_chunk=1, max_chunk_chars=10)
        assert chunker.chunk("     ") == ["     "]

    def test_rejects_non_positive_limits(self):
        with pytest.raises(ValueError):
            ContentChunker(max_tokens_per_chunk=0)


class TestDistribute:
    def test_front_loaded_remainder(self):
        assert distribute(20, 3) == [7, 7, 6]

    def test_even_split(self):
        assert distribute(12, 4) == [3, 3, 3, 3]

    def test_more_chunks_than_items(self):
        assert distribute(2, 5) == [1, 1, 0, 0, 0]

    @pytest.mark.parametrize("total,count", [(0, 1), (1, 1), (7, 2), (50, 7), (13, 13), (100, 9)])
    def test_sum_and_spread(self, total, count):
        result = distribute(total, count)
        assert len(result) == count
        assert sum(result) == total
        assert max(result) - min(result) <= 1

    def test_rejects_zero_chunks(self):
        with pytest.raises(ValueError):
            distribute(10, 0)

    def test_rejects_negative_total(self):
        with pytest.raises(ValueError):
            distribute(-1, 2)


class TestBuildChunkPlan:
    def test_plan_sums_to_desired_count(self):
        chunker = ContentChunker(max_tokens_per_chunk=100, max_chunk_chars=400)
        plan = build_chunk_plan(make_text(40), 10, chunker)

        assert plan.total_items == 10
        assert len(plan.distribution) == len(plan)
        assert [chunk.item_count for chunk in plan] == plan.distribution

    def test_small_text_single_chunk_plan(self):
        chunker = ContentChunker()
        plan = build_chunk_plan("A short text.", 5, chunker)
        assert plan.distribution == [5]
