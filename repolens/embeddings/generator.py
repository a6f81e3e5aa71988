from typing import List, Optional
from repolens.content.models import EmbeddingRecord, SummaryRecord
from repolens.embeddings.base import EmbeddingProvider
from repolens.ratelimit import CallClass, RateLimiter
from repolens.retry import RetryPolicy
import asyncio
import logging
import numpy as np

logger = logging.getLogger(__name__)


class EmbeddingGenerator:
    """Turns summaries into vectors under the embedding call-class quota."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        rate_limiter: RateLimiter,
        retry: Optional[RetryPolicy] = None
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.retry = retry or RetryPolicy()

    async def embed(self, text: str) -> np.ndarray:
        await self.rate_limiter.acquire(CallClass.EMBEDDING)
        return await self.provider.embed(text)

    async def _embed_record(self, record: SummaryRecord) -> Optional[EmbeddingRecord]:
        try:
            embedding = await self.retry.run(
                lambda: self.embed(record.summary),
                context=f"Embedding for {record.source_path}"
            )
        except Exception as e:
            logger.error(f"Embedding failed for {record.source_path}: {str(e)}")
            return None

        if embedding is None or len(embedding) == 0:
            logger.warning(f"No embedding for {record.source_path}, skipping")
            return None
        # the vector column has a fixed dimension
        if len(embedding) != self.provider.dimension:
            logger.warning(
                f"Embedding for {record.source_path} has {len(embedding)} dimensions, "
                f"expected {self.provider.dimension}; skipping")
            return None
        return EmbeddingRecord.from_summary(record, embedding)

    async def embed_summaries(self, summaries: List[SummaryRecord]) -> List[EmbeddingRecord]:
        """Embed every summary; items that fail are left out of the result."""
        results: List[EmbeddingRecord] = []
        i = 0
        while i < len(summaries):
            size = self.rate_limiter.get_optimal_batch_size(CallClass.EMBEDDING)
            group = summaries[i:i + size]
            logger.debug(f"Embedding group of {len(group)} (items {i + 1}-{i + len(group)})")

            embedded = await asyncio.gather(*(self._embed_record(r) for r in group))
            results.extend(r for r in embedded if r is not None)

            i += len(group)
            if i < len(summaries):
                await self.rate_limiter.wait_between_batches(CallClass.EMBEDDING)

        logger.info(f"Embedded {len(results)}/{len(summaries)} summaries")
        return results
