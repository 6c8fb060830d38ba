"""
Vector primitives: codec, similarity scoring, record types and embedding providers.
"""

from .codec import VectorCodec
from .similarity import SimilarityScorer
from .types import Document, ScoredDocument, QueueItem, AdaptedRecord, DrainReport, IndexReport, RetrievalResult
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, HttpEmbeddingProvider

__all__ = [
    'VectorCodec',
    'SimilarityScorer',
    'Document',
    'ScoredDocument',
    'QueueItem',
    'AdaptedRecord',
    'DrainReport',
    'IndexReport',
    'RetrievalResult',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'HttpEmbeddingProvider',
]
