# core/citation_finder.py
from functools import lru_cache
from typing import List, Sequence, Tuple
import numpy as np
from sentence_transformers import SentenceTransformer
from config.settings import settings
from core.entities import EmbeddingIndex, TextChunk
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_model() -> SentenceTransformer:
    """
    Lazy-load the sentence embedding model (CPU).
    """
    name = settings.EMBEDDING_MODEL_NAME
    with timed(logger, "embed.model.load", model=name):
        model = SentenceTransformer(name, device="cpu")
    return model


def _encode(texts: Sequence[str], batch_size: int = 64) -> np.ndarray:
    vecs = _load_model().encode(
        list(texts),
        batch_size=batch_size,
        convert_to_numpy=True,
        normalize_embeddings=True,
    )
    return np.asarray(vecs, dtype=np.float32)


def build_chunk_index(chunks: Sequence[TextChunk]) -> EmbeddingIndex:
    """
    Encode chunk texts into an EmbeddingIndex with L2-normalized rows,
    row i belonging to chunks[i].
    """
    with timed(logger, "embed.encode", n=len(chunks)):
        emb = _encode([c.text for c in chunks])
    logger.info("embed.index n=%d d=%d", emb.shape[0], emb.shape[1] if emb.size else 0)
    return EmbeddingIndex(embeddings=emb)


def top_k(index: EmbeddingIndex, query: str, k: int = 3) -> List[Tuple[int, float]]:
    """
    Top-k (row, cosine_sim) for the query against the index, best first.
    """
    n = index.embeddings.shape[0] if index.embeddings.size else 0
    if n == 0 or k <= 0:
        return []
    with timed(logger, "embed.query", k=k):
        q = _encode([query])[0]
        sims = (index.embeddings @ q).astype(float)
        kk = min(k, n)
        top_idx = np.argpartition(sims, -kk)[-kk:]
        out = sorted(
            ((int(i), float(sims[int(i)])) for i in top_idx),
            key=lambda t: t[1],
            reverse=True,
        )
    return out


def suggest_citations(
    value: str,
    chunks: Sequence[TextChunk],
    *,
    k: int = 3,
    min_score: float = 0.3,
) -> List[Tuple[int, float]]:
    """
    Candidate (chunk_index, score) pairs for an extracted value that came back
    without a citation. Scores below `min_score` are dropped.
    """
    if not value.strip() or not chunks:
        return []
    index = build_chunk_index(chunks)
    hits = top_k(index, value, k=k)
    out = [(chunks[row].chunk_index, score) for row, score in hits if score >= min_score]
    logger.info("citations.suggest k=%d hits=%d", k, len(out))
    return out
