"""
Submission channels.

Each channel pushes URL batches to one external indexing API and reports a
SubmissionResult per batch.
"""

from indexer.submitters.base import SubmissionChannel, SubmissionResult, split_into_batches
from indexer.submitters.bing import BingChannelConfig, BingSubmitter
from indexer.submitters.indexnow import IndexNowChannelConfig, IndexNowSubmitter

CHANNEL_INDEXNOW = IndexNowSubmitter.name
CHANNEL_BING = BingSubmitter.name

__all__ = [
    "SubmissionChannel",
    "SubmissionResult",
    "split_into_batches",
    "IndexNowSubmitter",
    "IndexNowChannelConfig",
    "BingSubmitter",
    "BingChannelConfig",
    "CHANNEL_INDEXNOW",
    "CHANNEL_BING",
]
