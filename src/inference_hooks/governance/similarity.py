"""Edit-distance similarity used by the repetition rule."""

from __future__ import annotations


def levenshtein_distance(a: str, b: str, max_distance: int | None = None) -> int:
    """Insert/delete/substitute distance, each operation costing 1.

    With ``max_distance`` only a diagonal band of the table is filled and
    the search stops once every cell exceeds the bound; any distance above
    the bound is reported as ``max_distance + 1``.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a) if max_distance is None else min(len(a), max_distance + 1)

    if max_distance is not None:
        if len(a) - len(b) > max_distance:
            return max_distance + 1
        return _banded_distance(a, b, max_distance)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


def _banded_distance(a: str, b: str, limit: int) -> int:
    # len(a) >= len(b) > 0 and len(a) - len(b) <= limit
    over = limit + 1
    width = len(b)
    previous = [j if j <= limit else over for j in range(width + 1)]
    current = [over] * (width + 1)

    for i, char_a in enumerate(a, start=1):
        lo = max(1, i - limit)
        hi = min(width, i + limit)
        current[lo - 1] = min(i, over) if lo == 1 else over
        row_min = current[lo - 1]
        for j in range(lo, hi + 1):
            value = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != b[j - 1]),
                over,
            )
            current[j] = value
            if value < row_min:
                row_min = value
        if hi < width:
            current[hi + 1] = over
        if row_min >= over:
            return over
        previous, current = current, previous

    return previous[width]


def levenshtein_similarity(a: str, b: str, minimum: float | None = None) -> float:
    """``1 - distance / max(len)``; two empty strings are identical.

    When ``minimum`` is given the result is exact at or above it; anything
    lower may be reported as a smaller value than the true similarity.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    max_distance = None
    if minimum is not None:
        max_distance = int((1.0 - minimum) * longest) + 1
    return 1.0 - levenshtein_distance(a, b, max_distance) / longest
