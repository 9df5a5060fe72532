from __future__ import annotations

import pandas as pd
import pytest


def test_aggregate_counts_sum_to_filtered_rows(cache, enriched_slot):
    from catrate.reporting.summaries import aggregate

    df = aggregate(cache, enriched_slot, ["user_sequence_number"], where="user_sequence_number <= 5")
    n = cache.con.execute(
        f"SELECT COUNT(*) FROM {cache.ref(enriched_slot)} WHERE user_sequence_number <= 5"
    ).fetchone()[0]

    assert int(df["count"].sum()) == n
    assert (df["count"] >= 1).all()
    assert df["user_sequence_number"].tolist() == sorted(df["user_sequence_number"].tolist())
    assert df["user_sequence_number"].max() <= 5


def test_aggregate_matches_pandas(cache, enriched_slot):
    from catrate.reporting.summaries import aggregate

    got = aggregate(cache, enriched_slot, ["year", "month"])
    raw = cache.fetch_df(enriched_slot)
    expected = (
        raw.groupby(["year", "month"])["rating"]
        .agg(["size", "mean"])
        .reset_index()
        .sort_values(["year", "month"])
        .reset_index(drop=True)
    )

    assert got[["year", "month"]].values.tolist() == expected[["year", "month"]].values.tolist()
    assert got["count"].tolist() == expected["size"].tolist()
    assert got["avg_rating"].tolist() == pytest.approx(expected["mean"].tolist())


def test_aggregate_is_idempotent(cache, enriched_slot):
    from catrate.reporting.summaries import aggregate

    a = aggregate(cache, enriched_slot, ["day_of_week_name", "hour"])
    b = aggregate(cache, enriched_slot, ["day_of_week_name", "hour"])
    pd.testing.assert_frame_equal(a, b)


def test_category_summary_sorted_by_avg_rating(cache, enriched_slot):
    from catrate.reporting.summaries import aggregate

    df = aggregate(cache, enriched_slot, ["category"])
    assert df["avg_rating"].tolist() == sorted(df["avg_rating"].tolist(), reverse=True)
    assert set(df["category"]) == {"Books", "Digital Music", "Video Games"}


def test_weekday_sorted_in_calendar_order(cache):
    from catrate.data.schemas import DAY_NAMES
    from catrate.reporting.summaries import aggregate

    cache.pin(
        """
        SELECT * FROM (VALUES
            ('Sunday', 1, 5.0), ('Monday', 2, 3.0), ('Friday', 0, 4.0), ('Monday', 1, 1.0)
        ) t(day_of_week_name, hour, rating)
        """,
        "days",
    )
    df = aggregate(cache, "days", ["day_of_week_name", "hour"])

    assert df[["day_of_week_name", "hour"]].values.tolist() == [
        ["Monday", 1],
        ["Monday", 2],
        ["Friday", 0],
        ["Sunday", 1],
    ]
    assert DAY_NAMES.index("Friday") < DAY_NAMES.index("Sunday")


def test_aggregate_empty_after_filter(cache, enriched_slot):
    from catrate.reporting.summaries import aggregate

    df = aggregate(cache, enriched_slot, ["category"], where="rating > 100")
    assert df.empty
    assert list(df.columns) == ["category", "count", "avg_rating"]


def test_aggregate_has_no_cache_side_effects(cache, enriched_slot):
    from catrate.reporting.summaries import standard_summaries

    before = (cache.slots, cache.count(enriched_slot))
    standard_summaries(cache, enriched_slot)
    assert (cache.slots, cache.count(enriched_slot)) == before


def test_aggregate_unknown_key(cache, enriched_slot):
    from catrate.data.validation import MissingColumnError
    from catrate.reporting.summaries import aggregate

    with pytest.raises(MissingColumnError):
        aggregate(cache, enriched_slot, ["no_such_column"])


def test_standard_summaries_names_and_sequence_cap(cache, enriched_slot):
    from catrate.reporting.summaries import standard_summaries

    out = standard_summaries(cache, enriched_slot, max_sequence=3)

    assert list(out) == [
        "by_category",
        "by_user_sequence",
        "by_item_sequence",
        "by_weekday_hour",
        "by_year_month",
    ]
    assert out["by_user_sequence"]["user_sequence_number"].max() <= 3
    assert out["by_item_sequence"]["item_sequence_number"].max() <= 3
    n = cache.count(enriched_slot)
    for name in ("by_category", "by_weekday_hour", "by_year_month"):
        assert int(out[name]["count"].sum()) == n


def test_write_summaries(sandbox, cache, enriched_slot):
    from catrate.reporting.summaries import standard_summaries, write_summaries

    summaries = standard_summaries(cache, enriched_slot)
    paths = write_summaries(summaries, sandbox / "out")

    assert set(paths) == set(summaries)
    back = pd.read_parquet(paths["by_category"])
    assert back["count"].sum() == summaries["by_category"]["count"].sum()
