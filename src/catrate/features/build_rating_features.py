# src/catrate/features/build_rating_features.py
from __future__ import annotations

from catrate.data.dedupe import LINEAGE_DEDUPED
from catrate.data.schemas import FEATURES, SCHEMA
from catrate.data.validation import MissingColumnError, PipelineError, validate_required_columns
from catrate.engine.cache import SlotCache

TEMPORAL_SLOT = "ratings_temporal"
ENRICHED_SLOT = "ratings_enriched"

LINEAGE_TEMPORAL = "temporal"
LINEAGE_ENRICHED = "enriched"


def _log(msg: str) -> None:
    print(msg, flush=True)


def _require_lineage(cache: SlotCache, slot: str, expected: str, *, stage: str) -> None:
    got = cache.lineage(slot)
    if got != expected:
        raise MissingColumnError(
            f"[{stage}] slot {slot!r} has lineage {got!r}, expected {expected!r}; "
            "run the earlier stages first"
        )


def _check_slots(in_slot: str, out_slot: str, *, stage: str) -> None:
    if in_slot == out_slot:
        raise PipelineError(f"[{stage}] cannot overwrite its input slot {in_slot!r}")


def derive_temporal(
    cache: SlotCache,
    in_slot: str,
    out_slot: str = TEMPORAL_SLOT,
    *,
    release_input: bool = True,
) -> str:
    """
    Add timestamp_text / hour / day_of_week_name / month / year.

    Epoch seconds are rendered in the engine's session time zone, which is the process's
    local zone unless EngineConfig.timezone overrides it. Input must be deduplicated.
    """
    stage = "features.temporal"
    _check_slots(in_slot, out_slot, stage=stage)
    validate_required_columns(cache.columns(in_slot), SCHEMA.required_columns, stage=stage)
    _require_lineage(cache, in_slot, LINEAGE_DEDUPED, stage=stage)

    cols = ", ".join(SCHEMA.required_columns)
    cache.pin(
        f"""
        WITH localized AS (
            SELECT
                {cols},
                CAST(to_timestamp({SCHEMA.TIMESTAMP}) AS TIMESTAMP) AS local_ts
            FROM {cache.ref(in_slot)}
        )
        SELECT
            {cols},
            strftime(local_ts, '%Y-%m-%d %H:%M:%S') AS {FEATURES.TIMESTAMP_TEXT},
            CAST(hour(local_ts)  AS INTEGER)         AS {FEATURES.HOUR},
            dayname(local_ts)                        AS {FEATURES.DAY_OF_WEEK_NAME},
            CAST(month(local_ts) AS INTEGER)         AS {FEATURES.MONTH},
            CAST(year(local_ts)  AS INTEGER)         AS {FEATURES.YEAR}
        FROM localized
        """,
        out_slot,
        lineage=LINEAGE_TEMPORAL,
    )
    _log(f"[features] temporal columns -> {out_slot!r}")

    if release_input:
        cache.unpin(in_slot)
    return out_slot


def derive_sequence_numbers(
    cache: SlotCache,
    in_slot: str,
    out_slot: str = ENRICHED_SLOT,
    *,
    release_input: bool = True,
) -> str:
    """
    1-based position of each row within its user's (and, separately, its item's)
    history ordered by timestamp. Equal timestamps are broken by the other id, then
    category, so the numbering is contiguous and stable across runs.
    """
    stage = "features.sequence"
    _check_slots(in_slot, out_slot, stage=stage)
    validate_required_columns(
        cache.columns(in_slot),
        SCHEMA.required_columns + FEATURES.temporal,
        stage=stage,
    )
    _require_lineage(cache, in_slot, LINEAGE_TEMPORAL, stage=stage)

    cache.pin(
        f"""
        SELECT
            *,
            ROW_NUMBER() OVER (
                PARTITION BY {SCHEMA.USER_ID}
                ORDER BY {SCHEMA.TIMESTAMP}, {SCHEMA.ITEM_ID}, {SCHEMA.CATEGORY}
            ) AS {FEATURES.USER_SEQUENCE},
            ROW_NUMBER() OVER (
                PARTITION BY {SCHEMA.ITEM_ID}
                ORDER BY {SCHEMA.TIMESTAMP}, {SCHEMA.USER_ID}, {SCHEMA.CATEGORY}
            ) AS {FEATURES.ITEM_SEQUENCE}
        FROM {cache.ref(in_slot)}
        """,
        out_slot,
        lineage=LINEAGE_ENRICHED,
    )
    _log(f"[features] sequence numbers -> {out_slot!r}")

    if release_input:
        cache.unpin(in_slot)
    return out_slot


def build_rating_features(cache: SlotCache, deduped_slot: str, out_slot: str = ENRICHED_SLOT) -> str:
    """Both sub-stages, each materialized before the next reads it."""
    temporal = derive_temporal(cache, deduped_slot)
    return derive_sequence_numbers(cache, temporal, out_slot)
