"""
Search use cases.

- relevance: additive, bounded relevance model
- regional: region classification and local-first prioritization
- normalizer: provider records to ContentItem
- synthetic: deterministic fallback content
- aggregator: concurrent fan-out, merge and pagination
- facade: request validation, response envelope, suggestions
"""

from .aggregator import AggregationResult, ProviderStats, SearchAggregator
from .facade import Pagination, SearchFacade, SearchResponse
from .normalizer import RecordNormalizer
from .regional import RegionalPrioritizer, RegionClassifier, RegionProfile
from .relevance import RelevanceScorer, ScoringContext
from .synthetic import SyntheticContentGenerator, SyntheticTemplate

__all__ = [
    "AggregationResult",
    "Pagination",
    "ProviderStats",
    "RecordNormalizer",
    "RegionClassifier",
    "RegionProfile",
    "RegionalPrioritizer",
    "RelevanceScorer",
    "ScoringContext",
    "SearchAggregator",
    "SearchFacade",
    "SearchResponse",
    "SyntheticContentGenerator",
    "SyntheticTemplate",
]
