"""
Cosine similarity and stable top-k ranking over dense vectors.
"""

from typing import Hashable, List, Sequence, Tuple

import numpy as np


def score(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1].

    Mismatched dimensions or a zero-norm side score 0.0 rather than raising.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, similarity))


def rank_top_k(query: Sequence[float],
               candidates: Sequence[Tuple[Hashable, Sequence[float]]],
               k: int) -> List[Tuple[Hashable, float]]:
    """Score every candidate against the query and return the best k.

    Ordering is by score descending; equal scores keep their input order.
    """
    if k <= 0:
        return []

    scored = [(candidate_id, score(query, vector)) for candidate_id, vector in candidates]
    # sorted() is stable, so ties keep candidate order
    scored = sorted(scored, key=lambda item: item[1], reverse=True)
    return scored[:k]


class SimilarityScorer:
    """Object wrapper for injection into the document store."""

    def score(self, a: Sequence[float], b: Sequence[float]) -> float:
        return score(a, b)

    def rank_top_k(self, query, candidates, k: int):
        return rank_top_k(query, candidates, k)
