"""
Semantic similarity collaborators.
"""

from cadence.semantic.similarity import (
    GuardedSimilarityIndex,
    HttpSimilarityIndex,
    SimilarityIndex,
    SimilarityMap,
    StaticSimilarityIndex,
)

__all__ = [
    "SimilarityIndex",
    "SimilarityMap",
    "StaticSimilarityIndex",
    "HttpSimilarityIndex",
    "GuardedSimilarityIndex",
]
