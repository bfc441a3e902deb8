"""
Generation orchestrator.

Drives one generate(request) call through:

    Planning -> PerChunkGeneration(1..N) -> Aggregating -> Deduplicating -> Truncating -> Done

Chunks are processed strictly sequentially with a fixed delay between them.
Within a chunk, a JSON or schema failure is retried once with a stricter
prompt at a lower temperature. In a multi-chunk run a failed chunk is logged
and skipped; the call only fails when every attempted chunk failed. A
single-chunk run propagates its error unchanged. Cancellation always
propagates.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from learnforge.config import Settings, get_settings
from learnforge.core.cancellation import CancellationToken, Sleep, ensure_token
from learnforge.core.errors import (
    ContextLengthExceeded,
    GenerationCancelled,
    GenerationError,
    NoItemsGenerated,
    SchemaValidationFailed,
)
from learnforge.core.models import (
    ChunkPlan,
    CollectionMetadata,
    GenerationRequest,
    ItemKind,
    PlannedChunk,
)
from learnforge.generation.dedupe import dedupe
from learnforge.generation.gateway import CompletionGateway, CompletionOptions
from learnforge.generation.normalizer import MINUTES_PER_QUESTION, ResponseNormalizer
from learnforge.generation.prompts import build_prompt, get_system_prompt, schema_description
from learnforge.generation.validator import ItemValidator, ValidItem
from learnforge.processing.chunker import ContentChunker, build_chunk_plan

# Stands in for the chunk text when sizing the prompt around it
_PLACEHOLDER_TEXT = "x"


@dataclass
class ChunkResult:
    """Outcome of one chunk of a generate() call."""

    index: int
    allotted: int
    accepted: int = 0
    rejected: int = 0
    duplicates: int = 0
    attempts: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None
    topics: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        return self.allotted == 0

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class GenerationResult:
    """Items plus a per-chunk account of how they were produced."""

    requested: int
    items: list[ValidItem] = field(default_factory=list)
    chunks: list[ChunkResult] = field(default_factory=list)
    duplicates_removed: int = 0
    metadata: CollectionMetadata = field(default_factory=CollectionMetadata)

    @property
    def partial(self) -> bool:
        """Fewer items than requested were delivered."""
        return len(self.items) < self.requested

    @property
    def failed_chunks(self) -> list[ChunkResult]:
        return [chunk for chunk in self.chunks if chunk.error is not None]


class GenerationOrchestrator:
    """Top-level controller for chunked structured generation."""

    def __init__(
        self,
        gateway: CompletionGateway,
        settings: Optional[Settings] = None,
        chunker: Optional[ContentChunker] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        validator: Optional[ItemValidator] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.chunker = chunker or ContentChunker(
            estimator=gateway.estimator,
            max_tokens_per_chunk=self.settings.max_tokens_per_chunk,
            max_chunk_chars=self.settings.max_chunk_chars,
            split_oversized_sentences=self.settings.split_oversized_sentences,
        )
        self.normalizer = normalizer or ResponseNormalizer()
        self.validator = validator or ItemValidator(self.settings)
        self._sleep = sleep

    async def generate(
        self,
        request: GenerationRequest,
        token: Optional[CancellationToken] = None,
    ) -> list[ValidItem]:
        """Generate at most request.desired_count validated, deduplicated items."""
        result = await self.generate_with_report(request, token)
        return result.items

    async def generate_with_report(
        self,
        request: GenerationRequest,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """
        Generate items and report per-chunk outcomes.

        Raises:
            ValueError: desired_count above max_items_per_request
            ContextLengthExceeded: the prompt alone does not fit the model's input budget
            NoItemsGenerated: every attempted chunk of a multi-chunk run failed
            GenerationError: the chunk's own error in a single-chunk run
            GenerationCancelled: the token fired
        """
        token = ensure_token(token)
        if request.desired_count > self.settings.max_items_per_request:
            raise ValueError(
                f"desired_count must be between 1 and {self.settings.max_items_per_request}"
            )

        # Planning
        plan = self.plan(request)
        single_chunk = len(plan) == 1
        logger.info(
            f"Generating {request.desired_count} {request.item_kind.value} items "
            f"from {len(request.source_text)} chars in {len(plan)} chunk(s): {plan.distribution}"
        )

        # PerChunkGeneration
        result = GenerationResult(requested=request.desired_count)
        aggregate: list[ValidItem] = []
        errors: list[GenerationError] = []
        attempted = 0

        for index, planned in enumerate(plan):
            if planned.item_count == 0:
                result.chunks.append(ChunkResult(index=index, allotted=0))
                continue

            if attempted:
                await token.wait(self.settings.inter_chunk_delay_seconds, sleep=self._sleep)
            attempted += 1
            logger.info(f"Chunk {index + 1}/{len(plan)}: requesting {planned.item_count} items")

            chunk_result = ChunkResult(index=index, allotted=planned.item_count)
            result.chunks.append(chunk_result)
            try:
                items = await self._generate_chunk(request, planned, chunk_result, token)
            except GenerationCancelled:
                raise
            except GenerationError as e:
                chunk_result.error = str(e)
                chunk_result.error_code = e.code
                if single_chunk:
                    raise
                logger.error(f"Chunk {index + 1}/{len(plan)} failed ({e.code}): {e}")
                errors.append(e)
                continue

            aggregate.extend(items)
            result.duplicates_removed += chunk_result.duplicates

        if attempted and len(errors) == attempted:
            raise NoItemsGenerated(chunk_errors=errors)

        # Aggregating / Deduplicating / Truncating
        unique = dedupe(aggregate)
        result.duplicates_removed += len(aggregate) - len(unique)
        result.items = unique[: request.desired_count]
        result.metadata = self._metadata(request, result)

        logger.info(
            f"Generated {len(result.items)}/{request.desired_count} items "
            f"({len(result.failed_chunks)} failed chunks, {result.duplicates_removed} duplicates removed)"
        )
        return result

    def plan(self, request: GenerationRequest) -> ChunkPlan:
        return build_chunk_plan(
            request.source_text,
            request.desired_count,
            self.chunker,
            max_tokens=self.chunk_token_budget(request),
        )

    def chunk_token_budget(self, request: GenerationRequest) -> int:
        """
        Tokens of source text one chunk may carry.

        The chunker's own budget, capped by what the model's input budget
        leaves once the strict prompt and the structured system prompt are
        counted.

        Raises:
            ContextLengthExceeded: the prompt leaves no room for source text
        """
        kind = request.item_kind
        scaffold = build_prompt(request.with_text(_PLACEHOLDER_TEXT), strict=True)
        system = self.gateway.structured_system_prompt(get_system_prompt(kind), schema_description(kind))
        overhead, budget = self.gateway.input_usage(scaffold, system)
        available = budget - overhead
        if available <= 0:
            logger.error(f"Prompt scaffolding needs ~{overhead} tokens, model accepts {budget}")
            raise ContextLengthExceeded(overhead, budget)

        if available < self.chunker.max_tokens_per_chunk:
            logger.debug(f"Chunk budget capped at {available} tokens by the model's input budget")
        return min(self.chunker.max_tokens_per_chunk, available)

    # =========================================================================
    # Per chunk
    # =========================================================================

    async def _generate_chunk(
        self,
        request: GenerationRequest,
        planned: PlannedChunk,
        chunk_result: ChunkResult,
        token: CancellationToken,
    ) -> list[ValidItem]:
        chunk_request = request.with_text(planned.text).with_count(planned.item_count)
        strict = False

        while True:
            chunk_result.attempts += 1
            try:
                items = await self._attempt(chunk_request, chunk_result, strict, token)
                break
            except GenerationError as e:
                if not e.structural or strict:
                    raise
                logger.warning(
                    f"Chunk {chunk_result.index + 1}: {e.code}, retrying once with a stricter prompt"
                )
                strict = True
                await token.wait(self.settings.structural_retry_delay_seconds, sleep=self._sleep)

        unique = dedupe(items)
        chunk_result.duplicates = len(items) - len(unique)
        if self.settings.cap_items_per_chunk and len(unique) > planned.item_count:
            logger.debug(f"Chunk {chunk_result.index + 1}: keeping {planned.item_count} of {len(unique)} items")
            unique = unique[: planned.item_count]

        chunk_result.accepted = len(unique)
        return unique

    async def _attempt(
        self,
        request: GenerationRequest,
        chunk_result: ChunkResult,
        strict: bool,
        token: CancellationToken,
    ) -> list[ValidItem]:
        kind = request.item_kind
        decoded = await self.gateway.complete_structured(
            build_prompt(request, strict=strict),
            schema_description(kind),
            CompletionOptions(temperature=self._temperature(kind, strict)),
            token=token,
            system_prompt=get_system_prompt(kind),
        )

        collection = self.normalizer.normalize(decoded, kind)
        outcome = self.validator.validate(collection.items, request.question_types)
        chunk_result.rejected = len(outcome.rejections) + collection.dropped
        chunk_result.topics = collection.metadata.topics

        if not outcome.items:
            raise SchemaValidationFailed(reasons=outcome.rejections or ["response contained no items"])

        items = outcome.items
        if request.difficulty != "mixed":
            items = [item.model_copy(update={"difficulty": request.difficulty}) for item in items]
        return items

    def _temperature(self, kind: ItemKind, strict: bool) -> float:
        if strict:
            return self.settings.strict_temperature
        if kind is ItemKind.QUIZ_QUESTION:
            return self.settings.quiz_temperature
        return self.settings.flashcard_temperature

    @staticmethod
    def _metadata(request: GenerationRequest, result: GenerationResult) -> CollectionMetadata:
        topics: dict[str, None] = {}
        for chunk in result.chunks:
            for topic in chunk.topics:
                topics.setdefault(topic, None)

        count = len(result.items)
        minutes = count * MINUTES_PER_QUESTION if request.item_kind is ItemKind.QUIZ_QUESTION else 0
        return CollectionMetadata(
            total_questions=count,
            estimated_time_minutes=minutes,
            difficulty=request.difficulty,
            topics=tuple(topics),
        )
