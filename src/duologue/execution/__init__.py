"""Turn scheduling and stream normalization."""

from .stream_normalizer import StreamNormalizer, estimate_tokens, split_into_chunks
from .turn_scheduler import ProviderBackendResolver, TurnScheduler

__all__ = [
    "StreamNormalizer",
    "estimate_tokens",
    "split_into_chunks",
    "ProviderBackendResolver",
    "TurnScheduler",
]
