from pickem_pool.utils.ranking import competition_rank, positional_rank


def points_key(row):
    return -row["points"]


def test_shared_rank_skips_to_position():
    rows = [{"name": n, "points": p} for n, p in [("a", 20), ("b", 20), ("c", 20), ("d", 15)]]

    ranks = [rank for rank, _ in competition_rank(rows, rank_key=points_key)]

    assert ranks == [1, 1, 1, 4]


def test_order_key_only_orders_within_a_shared_rank():
    rows = [
        {"name": "zed", "points": 100},
        {"name": "amy", "points": 100},
        {"name": "bob", "points": 90},
    ]

    ranked = competition_rank(
        rows, rank_key=points_key, order_key=lambda r: (-r["points"], r["name"])
    )

    assert [(rank, row["name"]) for rank, row in ranked] == [
        (1, "amy"),
        (1, "zed"),
        (3, "bob"),
    ]


def test_empty_rows():
    assert competition_rank([], rank_key=points_key) == []
    assert positional_rank([], order_key=points_key) == []


def test_positional_rank_never_shares():
    rows = [{"name": n, "points": 10} for n in ("c", "a", "b")]

    ranked = positional_rank(rows, order_key=lambda r: (-r["points"], r["name"]))

    assert [(rank, row["name"]) for rank, row in ranked] == [(1, "a"), (2, "b"), (3, "c")]
