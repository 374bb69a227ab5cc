import numpy as np

def top_k_by_cosine(query_vec: np.ndarray, vectors: list[np.ndarray], k: int) -> list[tuple[int, float]]:
    """Brute-force top-k by cosine similarity, returns (position, score) pairs."""
    if not vectors or k <= 0:
        return []
    matrix = np.vstack(vectors).astype(np.float32)
    norms = np.linalg.norm(matrix, axis=1) * (np.linalg.norm(query_vec) + 1e-9) + 1e-9
    scores = matrix @ query_vec.astype(np.float32) / norms
    order = np.argsort(-scores, kind="stable")[:k]
    return [(int(i), float(scores[i])) for i in order]
