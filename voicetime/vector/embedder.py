import hashlib
import logging

import numpy as np
from config.settings import settings

logger = logging.getLogger(__name__)

# Global model cache for sentence-transformers
_model_cache = None

def _get_sentence_transformer():
    """Load and cache the sentence-transformers model."""
    global _model_cache
    if _model_cache is None:
        from sentence_transformers import SentenceTransformer

        _model_cache = SentenceTransformer(settings.embedding_model)
        logger.info("Loaded embedding model %s", settings.embedding_model)

    return _model_cache

def _stable_hash(text: str) -> int:
    h = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(h[:8], "little", signed=False)

def _embed_text_hash(text: str, dim: int) -> np.ndarray:
    """Deterministic bag-of-words hash embedding (tests / offline mode).

    Each token contributes a seeded random direction, so texts sharing words
    land close together.
    """
    v = np.zeros(dim, dtype="float32")
    for token in text.lower().split():
        rng = np.random.default_rng(_stable_hash(token))
        v += rng.normal(size=(dim,)).astype("float32")
    n = np.linalg.norm(v) + 1e-9
    return v / n

def _embed_text_real(text: str) -> np.ndarray:
    model = _get_sentence_transformer()
    embedding = model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
    return embedding.astype("float32")

def embed_text(text: str, dim: int | None = None) -> np.ndarray:
    """
    Embed text using sentence-transformers or the hash embedder.

    Mode determined by settings.use_real_embeddings.
    """
    if settings.use_real_embeddings:
        return _embed_text_real(text)
    dim = dim or settings.embedding_dim
    return _embed_text_hash(text, dim)
