"""
Text similarity scorers used by transaction matching.

Both scorers return a value in [0, 1] computed over lowercased
whitespace tokens.
"""

from typing import List, Optional


def _tokens(value: str) -> List[str]:
    return value.lower().split()


def _token_overlap(tokens_a: List[str], tokens_b: List[str]) -> float:
    """Share of tokens in a that also appear in b, over the larger token count."""
    total = max(len(tokens_a), len(tokens_b))
    if total == 0:
        return 0.0
    lookup = set(tokens_b)
    common = [token for token in tokens_a if token in lookup]
    return min(len(common) / total, 1.0)


def category_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Compare two category labels.

    1.0 on exact (case-insensitive, trimmed) match, 0.8 when one contains
    the other, otherwise the shared-token ratio.
    """
    if not a or not b:
        return 0.0

    normalized_a = a.lower().strip()
    normalized_b = b.lower().strip()
    if not normalized_a or not normalized_b:
        return 0.0

    if normalized_a == normalized_b:
        return 1.0

    if normalized_a in normalized_b or normalized_b in normalized_a:
        return 0.8

    return _token_overlap(_tokens(normalized_a), _tokens(normalized_b))


def description_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Shared-token ratio between two descriptions, case-insensitive."""
    if not a or not b:
        return 0.0
    return _token_overlap(_tokens(a), _tokens(b))
