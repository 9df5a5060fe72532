# src/catrate/reporting/summaries.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from catrate.data.schemas import AVG_RATING_COL, COUNT_COL, DAY_NAMES, FEATURES, SCHEMA
from catrate.data.validation import validate_required_columns
from catrate.engine.cache import SlotCache, quote_ident

DEFAULT_MAX_SEQUENCE = 50


def _log(msg: str) -> None:
    print(msg, flush=True)


def _sort_expr(key: str) -> str:
    # weekday names sort in calendar order, Monday first
    if key == FEATURES.DAY_OF_WEEK_NAME:
        names = ", ".join(f"'{d}'" for d in DAY_NAMES)
        return f"list_position([{names}], {quote_ident(key)})"
    return quote_ident(key)


def aggregate(
    cache: SlotCache,
    slot: str,
    group_keys: Sequence[str],
    where: Optional[str] = None,
) -> pd.DataFrame:
    """
    count + mean rating per group, one row per key combination present.

    `where` is an optional SQL predicate applied before grouping. Sorted by the keys,
    except a category-only summary, which is sorted by avg_rating (highest first).
    Read-only: nothing is pinned or released.
    """
    keys = list(group_keys)
    if not keys:
        raise ValueError("aggregate needs at least one group key")
    validate_required_columns(cache.columns(slot), keys + [SCHEMA.RATING], stage="summaries")

    key_sql = ", ".join(quote_ident(k) for k in keys)
    if keys == [SCHEMA.CATEGORY]:
        order_sql = f"{quote_ident(AVG_RATING_COL)} DESC, {quote_ident(SCHEMA.CATEGORY)}"
    else:
        order_sql = ", ".join(_sort_expr(k) for k in keys)

    sql = f"""
        SELECT
            {key_sql},
            COUNT(*)                 AS {quote_ident(COUNT_COL)},
            AVG({SCHEMA.RATING})     AS {quote_ident(AVG_RATING_COL)}
        FROM {cache.ref(slot)}
        {f"WHERE {where}" if where else ""}
        GROUP BY {key_sql}
        ORDER BY {order_sql}
    """
    df = cache.con.execute(sql).df()
    df[COUNT_COL] = df[COUNT_COL].astype("int64")
    df[AVG_RATING_COL] = df[AVG_RATING_COL].astype("float64")
    return df.reset_index(drop=True)


def standard_summaries(
    cache: SlotCache,
    slot: str,
    *,
    max_sequence: int = DEFAULT_MAX_SEQUENCE,
) -> Dict[str, pd.DataFrame]:
    if max_sequence < 1:
        raise ValueError("max_sequence must be >= 1")

    out: Dict[str, pd.DataFrame] = {
        "by_category": aggregate(cache, slot, [SCHEMA.CATEGORY]),
        "by_user_sequence": aggregate(
            cache,
            slot,
            [FEATURES.USER_SEQUENCE],
            where=f"{FEATURES.USER_SEQUENCE} <= {int(max_sequence)}",
        ),
        "by_item_sequence": aggregate(
            cache,
            slot,
            [FEATURES.ITEM_SEQUENCE],
            where=f"{FEATURES.ITEM_SEQUENCE} <= {int(max_sequence)}",
        ),
        "by_weekday_hour": aggregate(cache, slot, [FEATURES.DAY_OF_WEEK_NAME, FEATURES.HOUR]),
        "by_year_month": aggregate(cache, slot, [FEATURES.YEAR, FEATURES.MONTH]),
    }
    for name, df in out.items():
        _log(f"[summaries] {name}: {len(df):,} groups")
    return out


def write_summaries(summaries: Dict[str, pd.DataFrame], out_dir: Path) -> Dict[str, Path]:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths: Dict[str, Path] = {}
    for name, df in summaries.items():
        p = out_dir / f"{name}.parquet"
        df.to_parquet(p, index=False, engine="pyarrow")
        paths[name] = p
    _log(f"[summaries] wrote {len(paths)} tables to {out_dir}")
    return paths
