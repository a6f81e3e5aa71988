"""Multi-file summarization with one generation call per batch.

The prompt enumerates the batch's files and asks the model to answer with one
``[FILE i]`` section per file. Output order is recovered from those markers,
not from call ordering, so a missing or empty section only degrades that one
file to a flagged placeholder.
"""
from typing import List, Optional, Sequence
from repolens.content.models import RepositoryDocument, SummaryRecord
from repolens.errors import RepositoryTooLargeError
from repolens.llm.base import GenerationProvider
from repolens.ratelimit import CallClass, RateLimiter
from repolens.retry import RetryPolicy
import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_FILES = 50
DEFAULT_MAX_CHARS_PER_FILE = 8000
SUMMARY_WORD_LIMIT = 80

_ANY_MARKER = re.compile(r"\[FILE \d+\]")

BATCH_PROMPT = """You are an intelligent senior software engineer who specialises in onboarding junior software engineers onto projects. Summarize each of the following {count} code files.

IMPORTANT: You MUST respond with EXACTLY {count} summaries, one for each file, in this EXACT format:

{format_example}
Each summary should explain the purpose and main functionality of that file in no more than {word_limit} words. Do not add any text outside the sections.

Here are the files:

{files}"""


def placeholder_summary(source_path: str) -> str:
    return f"Summary unavailable for {source_path}"


def start_marker(index: int) -> str:
    return f"[FILE {index}]"


def build_batch_prompt(
    files: Sequence[RepositoryDocument],
    max_chars_per_file: int = DEFAULT_MAX_CHARS_PER_FILE
) -> str:
    format_example = "".join(
        f"{start_marker(i)}\n<summary for file {i}>\n\n"
        for i in range(1, len(files) + 1)
    )
    file_blocks = "\n\n".join(
        f"--- FILE {i}: {doc.source_path} ---\n"
        f"{doc.content[:max_chars_per_file]}\n"
        f"--- END FILE {i} ---"
        for i, doc in enumerate(files, start=1)
    )
    return BATCH_PROMPT.format(
        count=len(files),
        format_example=format_example,
        word_limit=SUMMARY_WORD_LIMIT,
        files=file_blocks
    )


def parse_batch_response(text: str, count: int) -> List[Optional[str]]:
    """Split a batch answer into ``count`` sections, None where unusable.

    Section i runs from the end of ``[FILE i]`` to the next ``[FILE n]`` marker,
    or to the end of the text for the last file. A missing ``[FILE i+1]``
    therefore does not swallow the sections after it.
    """
    sections: List[Optional[str]] = []
    for i in range(1, count + 1):
        marker = start_marker(i)
        start = text.find(marker)
        if start == -1:
            sections.append(None)
            continue
        start += len(marker)

        end = len(text)
        if i < count:
            next_marker = _ANY_MARKER.search(text, start)
            if next_marker:
                end = next_marker.start()

        section = text[start:end].strip()
        sections.append(section or None)
    return sections


class SummarizationBatcher:

    def __init__(
        self,
        provider: GenerationProvider,
        rate_limiter: RateLimiter,
        retry: Optional[RetryPolicy] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_files: int = DEFAULT_MAX_FILES,
        max_chars_per_file: int = DEFAULT_MAX_CHARS_PER_FILE
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.retry = retry or RetryPolicy()
        self.batch_size = batch_size
        self.max_files = max_files
        self.max_chars_per_file = max_chars_per_file

    async def _generate(self, prompt: str) -> str:
        # every attempt is a provider call, so each one takes a token
        await self.rate_limiter.acquire(CallClass.GENERATION)
        return await self.provider.generate(prompt)

    def _to_records(
        self,
        files: Sequence[RepositoryDocument],
        sections: List[Optional[str]]
    ) -> List[SummaryRecord]:
        records = []
        for doc, section in zip(files, sections):
            if section is None:
                logger.warning(f"No summary section for {doc.source_path}, using placeholder")
                records.append(SummaryRecord(
                    source_path=doc.source_path,
                    summary=placeholder_summary(doc.source_path),
                    document=doc,
                    is_placeholder=True
                ))
            else:
                records.append(SummaryRecord(
                    source_path=doc.source_path,
                    summary=section,
                    document=doc
                ))
        return records

    async def _summarize_batch_records(self, files: Sequence[RepositoryDocument]) -> List[SummaryRecord]:
        prompt = build_batch_prompt(files, self.max_chars_per_file)
        response = await self._generate(prompt)
        sections = parse_batch_response(response, len(files))
        return self._to_records(files, sections)

    async def summarize_batch(self, files: Sequence[RepositoryDocument]) -> List[str]:
        """Summarize ``files`` with a single generation call.

        The result has one entry per input file, in input order.
        """
        if not files:
            return []
        records = await self._summarize_batch_records(files)
        return [r.summary for r in records]

    def check_size(self, docs: Sequence[RepositoryDocument]) -> None:
        if len(docs) > self.max_files:
            raise RepositoryTooLargeError(len(docs), self.max_files)

    async def summarize_documents(self, docs: Sequence[RepositoryDocument]) -> List[SummaryRecord]:
        """Summarize all documents batch by batch.

        Raises RepositoryTooLargeError before any provider call when there are
        more documents than ``max_files``. A batch that fails is dropped and
        the remaining batches still run.
        """
        self.check_size(docs)
        if not docs:
            return []

        total_batches = (len(docs) + self.batch_size - 1) // self.batch_size
        records: List[SummaryRecord] = []

        for batch_num, i in enumerate(range(0, len(docs), self.batch_size), start=1):
            batch = list(docs[i:i + self.batch_size])
            context = f"Summary batch {batch_num}/{total_batches}"
            logger.info(f"{context}: files {i + 1}-{i + len(batch)}")

            try:
                batch_records = await self.retry.run(
                    lambda: self._summarize_batch_records(batch), context=context)
            except Exception as e:
                logger.error(f"{context} failed: {str(e)}")
                batch_records = None

            if batch_records is None:
                logger.warning(
                    f"{context}: dropping {len(batch)} files "
                    f"({', '.join(d.source_path for d in batch)})")
            else:
                records.extend(batch_records)

            if batch_num < total_batches:
                await self.rate_limiter.wait_between_batches(CallClass.GENERATION)

        logger.info(f"Summarized {len(records)}/{len(docs)} files")
        return records
