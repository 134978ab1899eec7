"""Cheap approximate title matching.

This is a word-overlap heuristic, not an edit distance. Deduplication and
its tests depend on its looser semantics, so keep the algorithm literal.
"""

DEDUP_THRESHOLD = 0.8
MIN_SHARED_WORD_LEN = 4


def is_similar(a: str, b: str, threshold: float = DEDUP_THRESHOLD) -> bool:
    """Decide whether two normalized titles denote the same task.

    Args:
        a: Lower-cased, trimmed title.
        b: Lower-cased, trimmed title.
        threshold: Minimum similarity in [0, 1].

    Returns:
        True when the titles are close enough to be treated as duplicates.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return True

    # Cheap rejection on relative length difference
    if abs(len(a) - len(b)) / longest > 1 - threshold:
        return False

    if a in b or b in a:
        return True

    words_a = a.split()
    words_b = b.split()
    # Distinct shared words keep the measure symmetric
    shared = {w for w in set(words_a) & set(words_b) if len(w) >= MIN_SHARED_WORD_LEN}
    similarity = len(shared) / (max(len(words_a), len(words_b)) or 1)
    return similarity >= threshold
