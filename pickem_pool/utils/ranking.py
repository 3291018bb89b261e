"""
Ranking helpers shared by weekly scores, season standings and the forecast.

Two flavours are used across the pool:

* competition ranking ("1, 1, 3"): rows with equal ranking keys share a
  rank and the next distinct key resumes at its 1-based position;
* positional ranking ("1, 2, 3"): every row gets its own position.
"""


def competition_rank(rows, rank_key, order_key=None):
    """Sort ``rows`` and assign shared ranks.

    Args:
        rows: Iterable of rows (any objects).
        rank_key: Callable returning the value that decides rank. Smaller
            sorts first, so negate numbers that should rank high.
        order_key: Optional callable used for ordering. It must sort
            consistently with ``rank_key`` and may add trailing keys (such as
            a display name) that only order rows within a shared rank.

    Returns:
        List of ``(rank, row)`` tuples in ranked order.
    """
    order_key = order_key or rank_key
    ordered = sorted(rows, key=order_key)

    ranked = []
    previous_key = None
    rank = 0
    for position, row in enumerate(ordered, start=1):
        key = rank_key(row)
        if position == 1 or key != previous_key:
            rank = position
            previous_key = key
        ranked.append((rank, row))

    return ranked


def positional_rank(rows, order_key):
    """Sort ``rows`` by ``order_key`` and number them 1..N"""
    return list(enumerate(sorted(rows, key=order_key), start=1))
