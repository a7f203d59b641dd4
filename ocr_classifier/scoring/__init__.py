"""Token counting and confidence aggregation."""

from .tokens import count_tokens
from .confidence import ConfidenceAggregator

__all__ = ['count_tokens', 'ConfidenceAggregator']
