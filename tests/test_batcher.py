"""Tests for repolens/summaries/batcher.py"""

import pytest

from repolens.content import RepositoryDocument
from repolens.errors import RepositoryTooLargeError
from repolens.summaries.batcher import (
    SummarizationBatcher,
    build_batch_prompt,
    parse_batch_response,
    placeholder_summary
)

from conftest import CODE, FakeGenerationProvider


def make_docs(count, prefix="src/module"):
    return [
        RepositoryDocument(source_path=f"{prefix}_{i}.py", content=f"# module {i}\n{CODE}")
        for i in range(1, count + 1)
    ]


class TestParseBatchResponse:

    def test_all_sections(self):
        text = "[FILE 1]\nFirst.\n\n[FILE 2]\nSecond.\n\n[FILE 3]\nThird."
        assert parse_batch_response(text, 3) == ["First.", "Second.", "Third."]

    def test_missing_marker_yields_none_for_that_file_only(self):
        text = "[FILE 1]\none\n[FILE 2]\ntwo\n[FILE 4]\nfour\n[FILE 5]\nfive"
        assert parse_batch_response(text, 5) == ["one", "two", None, "four", "five"]

    def test_empty_section(self):
        text = "[FILE 1]\n   \n[FILE 2]\ntwo"
        assert parse_batch_response(text, 2) == [None, "two"]

    def test_text_before_first_marker_is_ignored(self):
        text = "Sure! Here are the summaries.\n[FILE 1]\none"
        assert parse_batch_response(text, 1) == ["one"]

    def test_double_digit_markers(self):
        text = "".join(f"[FILE {i}]\ns{i}\n" for i in range(1, 12))
        sections = parse_batch_response(text, 11)
        assert sections[0] == "s1"
        assert sections[9] == "s10"
        assert sections[10] == "s11"

    def test_no_markers(self):
        assert parse_batch_response("I cannot do that.", 3) == [None, None, None]


def test_prompt_enumerates_files():
    docs = make_docs(2)
    prompt = build_batch_prompt(docs, max_chars_per_file=20)
    assert "EXACTLY 2 summaries" in prompt
    assert "--- FILE 1: src/module_1.py ---" in prompt
    assert "--- END FILE 2 ---" in prompt
    assert "[FILE 2]" in prompt
    # contents are truncated per file
    assert CODE not in prompt


class TestSummarizationBatcher:

    @pytest.mark.asyncio
    async def test_one_call_per_batch_in_input_order(self, rate_limiter, retry):
        provider = FakeGenerationProvider()
        batcher = SummarizationBatcher(provider, rate_limiter, retry)
        summaries = await batcher.summarize_batch(make_docs(4))
        assert summaries == [f"Summary of file {i}." for i in range(1, 5)]
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_missing_marker_substitutes_placeholder(self, rate_limiter, retry):
        def drop_third(prompt):
            return "\n".join(
                f"[FILE {i}]\nSummary {i}" for i in range(1, 6) if i != 3)

        docs = make_docs(5)
        batcher = SummarizationBatcher(FakeGenerationProvider(drop_third), rate_limiter, retry)
        summaries = await batcher.summarize_batch(docs)
        assert len(summaries) == 5
        assert summaries[2] == placeholder_summary(docs[2].source_path)
        assert summaries[3] == "Summary 4"

        records = await batcher.summarize_documents(docs)
        assert [r.is_placeholder for r in records] == [False, False, True, False, False]
        assert [r.source_path for r in records] == [d.source_path for d in docs]

    @pytest.mark.asyncio
    async def test_empty_input(self, rate_limiter, retry):
        provider = FakeGenerationProvider()
        batcher = SummarizationBatcher(provider, rate_limiter, retry)
        assert await batcher.summarize_batch([]) == []
        assert await batcher.summarize_documents([]) == []
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_splits_into_batches(self, rate_limiter, retry, clock):
        provider = FakeGenerationProvider()
        batcher = SummarizationBatcher(provider, rate_limiter, retry, batch_size=10)
        records = await batcher.summarize_documents(make_docs(23))
        assert len(records) == 23
        assert provider.calls == 3
        # two pauses between three batches, derived from 15 rpm
        assert clock.sleeps == [pytest.approx(4.4), pytest.approx(4.4)]

    @pytest.mark.asyncio
    async def test_too_many_files_fails_before_any_call(self, rate_limiter, retry):
        provider = FakeGenerationProvider()
        batcher = SummarizationBatcher(provider, rate_limiter, retry, max_files=5)
        with pytest.raises(RepositoryTooLargeError) as exc_info:
            await batcher.summarize_documents(make_docs(6))
        assert exc_info.value.limit == 5
        assert exc_info.value.file_count == 6
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_abort_siblings(self, rate_limiter, retry):
        def fail_second_batch(prompt):
            if "src/second_" in prompt:
                raise RuntimeError("upstream connection reset")
            return FakeGenerationProvider.answer_all(prompt)

        docs = make_docs(2, prefix="src/first") + make_docs(2, prefix="src/second") \
            + make_docs(2, prefix="src/third")
        provider = FakeGenerationProvider(fail_second_batch)
        batcher = SummarizationBatcher(provider, rate_limiter, retry, batch_size=2)
        records = await batcher.summarize_documents(docs)
        assert [r.source_path for r in records] == [
            "src/first_1.py", "src/first_2.py", "src/third_1.py", "src/third_2.py"]
        assert provider.calls == 3

    @pytest.mark.asyncio
    async def test_throttled_batch_is_retried_then_dropped(self, rate_limiter, retry):
        def throttle_first_batch(prompt):
            if "src/first_" in prompt:
                raise RuntimeError("429 Resource has been exhausted (e.g. check quota).")
            return FakeGenerationProvider.answer_all(prompt)

        docs = make_docs(2, prefix="src/first") + make_docs(2, prefix="src/second")
        provider = FakeGenerationProvider(throttle_first_batch)
        batcher = SummarizationBatcher(provider, rate_limiter, retry, batch_size=2)
        records = await batcher.summarize_documents(docs)
        assert [r.source_path for r in records] == ["src/second_1.py", "src/second_2.py"]
        # three attempts for the throttled batch, one for the other
        assert provider.calls == 4
