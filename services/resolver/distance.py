from __future__ import annotations


def levenshtein(a: str, b: str) -> int:
    """Levenshtein edit distance (insert, delete, substitute all cost 1).

    Iterative DP keeping two rows; the shorter string indexes the row so
    memory is O(min(len(a), len(b))). Strings are compared verbatim, callers
    fold case themselves.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        curr = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                curr.append(prev[j - 1])
            else:
                curr.append(1 + min(prev[j - 1], curr[j - 1], prev[j]))
        prev = curr
    return prev[-1]
