# src/catrate/data/loading.py
from __future__ import annotations

from typing import Dict, Sequence, Tuple

from catrate.data.schemas import SCHEMA
from catrate.data.sources import SourceFile
from catrate.data.validation import PipelineError, validate_canonical_schema
from catrate.engine.cache import SlotCache

SCRATCH_SLOT = "scratch_load"
UNIFIED_SLOT = "ratings_unified"

LINEAGE_LOADED = "loaded"
LINEAGE_UNIFIED = "unified"


def _log(msg: str) -> None:
    print(msg, flush=True)


def _sql_str(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _read_sql(source: SourceFile) -> str:
    # Four positional, untyped columns; names/types are assigned here, not sniffed.
    return f"""
        SELECT
            CAST(c0 AS VARCHAR)  AS {SCHEMA.USER_ID},
            CAST(c1 AS VARCHAR)  AS {SCHEMA.ITEM_ID},
            CAST(c2 AS DOUBLE)   AS {SCHEMA.RATING},
            CAST(c3 AS BIGINT)   AS {SCHEMA.TIMESTAMP},
            CAST({_sql_str(source.category)} AS VARCHAR) AS {SCHEMA.CATEGORY}
        FROM read_csv(
            {_sql_str(source.path.as_posix())},
            header = false,
            delim = ',',
            auto_detect = false,
            columns = {{'c0': 'VARCHAR', 'c1': 'VARCHAR', 'c2': 'VARCHAR', 'c3': 'VARCHAR'}}
        )
    """


def load_one(cache: SlotCache, source: SourceFile, slot: str = SCRATCH_SLOT) -> str:
    """
    Read one category file into `slot`, tagged with its category.

    The result is pinned (materialized) before returning. The category column must exist
    as stored data, not as a deferred expression, before it takes part in any union.
    """
    if not source.path.exists():
        raise FileNotFoundError(f"Source file not found: {source.path}")

    cache.pin(_read_sql(source), slot, lineage=LINEAGE_LOADED)
    _log(f"[load] {source.path.name}: {cache.count(slot):,} rows ({source.category!r})")
    return slot


def _check(cache: SlotCache, slot: str) -> None:
    validate_canonical_schema(cache.columns(slot), source=slot, types=cache.types(slot))


def union_all(cache: SlotCache, slots: Sequence[str], out_slot: str = UNIFIED_SLOT) -> str:
    """
    Append every loaded table into `out_slot`, in the given order, without any dedup.
    Input slots are released once the union is complete; only `out_slot` stays pinned.
    """
    if not slots:
        raise PipelineError("union_all needs at least one table")
    if out_slot in slots:
        raise PipelineError(f"union output slot {out_slot!r} cannot also be an input")
    if len(set(slots)) != len(slots):
        raise PipelineError(f"union input slots must be distinct, got {list(slots)}")

    for slot in slots:
        _check(cache, slot)

    expected = sum(cache.count(s) for s in slots)

    first, rest = slots[0], slots[1:]
    cache.pin(f"SELECT * FROM {cache.ref(first)}", out_slot, lineage=LINEAGE_UNIFIED)
    for slot in rest:
        cache.append(f"SELECT * FROM {cache.ref(slot)}", out_slot)

    got = cache.count(out_slot)
    if got != expected:
        raise PipelineError(f"union lost rows: expected {expected:,}, got {got:,}")

    for slot in slots:
        cache.unpin(slot)

    _log(f"[load] unified {len(slots)} tables -> {out_slot!r}: {got:,} rows")
    return out_slot


def load_all(
    cache: SlotCache,
    sources: Sequence[SourceFile],
    out_slot: str = UNIFIED_SLOT,
    scratch_slot: str = SCRATCH_SLOT,
) -> Tuple[str, Dict[str, int]]:
    """
    Load and union all sources through a single scratch slot, so at most one raw file
    is held next to the growing union.

    Returns the unified slot and the per-file row counts (keyed by file name).
    """
    if not sources:
        raise PipelineError("No source files to load")

    counts: Dict[str, int] = {}
    for i, source in enumerate(sources):
        load_one(cache, source, scratch_slot)
        counts[source.path.name] = cache.count(scratch_slot)

        if i == 0:
            union_all(cache, [scratch_slot], out_slot)
            continue

        _check(cache, scratch_slot)
        cache.append(f"SELECT * FROM {cache.ref(scratch_slot)}", out_slot)
        cache.unpin(scratch_slot)

    total = cache.count(out_slot)
    if total != sum(counts.values()):
        raise PipelineError(f"union lost rows: expected {sum(counts.values()):,}, got {total:,}")

    _log(f"[load] unified rows: {total:,} from {len(sources)} files")
    return out_slot, counts
