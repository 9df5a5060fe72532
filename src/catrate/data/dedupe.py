# src/catrate/data/dedupe.py
from __future__ import annotations

from catrate.data.schemas import SCHEMA
from catrate.data.validation import PipelineError, validate_required_columns
from catrate.engine.cache import SlotCache

DEDUPED_SLOT = "ratings_deduped"
LINEAGE_DEDUPED = "deduplicated"


def _log(msg: str) -> None:
    print(msg, flush=True)


def dedupe(
    cache: SlotCache,
    in_slot: str,
    out_slot: str = DEDUPED_SLOT,
    *,
    release_input: bool = True,
) -> str:
    """
    Keep one row per (user_id, timestamp).

    A user cannot rate twice at the same recorded second, so such collisions are read as
    copies created when an item's identifier changed. This is a heuristic: a genuine
    same-second review of two different items loses one of the two rows.

    Survivor per group: lowest item_id, then category, then rating.
    """
    if in_slot == out_slot:
        raise PipelineError(f"dedupe cannot overwrite its input slot {in_slot!r}")
    validate_required_columns(cache.columns(in_slot), SCHEMA.required_columns, stage="dedupe")

    cols = ", ".join(SCHEMA.required_columns)
    n_in = cache.count(in_slot)

    cache.pin(
        f"""
        SELECT {cols}
        FROM {cache.ref(in_slot)}
        QUALIFY ROW_NUMBER() OVER (
            PARTITION BY {SCHEMA.USER_ID}, {SCHEMA.TIMESTAMP}
            ORDER BY {SCHEMA.ITEM_ID}, {SCHEMA.CATEGORY}, {SCHEMA.RATING}
        ) = 1
        """,
        out_slot,
        lineage=LINEAGE_DEDUPED,
    )
    n_out = cache.count(out_slot)
    _log(f"[dedupe] {n_in:,} -> {n_out:,} rows (dropped {n_in - n_out:,})")

    if release_input:
        cache.unpin(in_slot)
    return out_slot
