from repolens.summaries.batcher import SummarizationBatcher, parse_batch_response
from repolens.summaries.commits import CommitSummarizer

__all__ = [
    "SummarizationBatcher",
    "parse_batch_response",
    "CommitSummarizer"
]
