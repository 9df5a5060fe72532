# src/catrate/pipelines/explore_ratings.py
from __future__ import annotations

import argparse
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import pandas as pd

from catrate.common.io import write_json
from catrate.common.time import local_timezone_label, utc_now_iso
from catrate.data.dedupe import dedupe
from catrate.data.loading import load_all
from catrate.data.schemas import SCHEMA
from catrate.data.sources import list_sources
from catrate.engine.cache import SlotCache
from catrate.engine.connection import EngineConfig, connect, current_timezone
from catrate.features.build_rating_features import derive_sequence_numbers, derive_temporal
from catrate.reporting.summaries import DEFAULT_MAX_SEQUENCE, standard_summaries, write_summaries


@dataclass(frozen=True)
class ExploreRatingsConfig:
    # Inputs: one ratings_<Category>.csv per category
    raw_dir: Path = Path("data/raw/ratings")
    pattern: str = "*.csv"

    # Outputs
    out_dir: Path = Path("reports/ratings_eda")
    metadata_path: Path = Path("reports/ratings_eda/metadata.json")
    write_outputs: bool = True

    # sequence-position summaries keep positions 1..max_sequence
    max_sequence: int = DEFAULT_MAX_SEQUENCE

    engine: EngineConfig = field(default_factory=EngineConfig)


@dataclass
class ExploreRatingsResult:
    summaries: Dict[str, pd.DataFrame]
    metadata: Dict[str, Any]


def _log(msg: str) -> None:
    print(msg, flush=True)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    _log(f"[pipeline] >> {name}")
    try:
        yield
    except Exception as exc:
        _log(f"[pipeline] stage '{name}' failed: {type(exc).__name__}: {exc}")
        raise


def _distinct(cache: SlotCache, slot: str, column: str) -> int:
    return int(
        cache.con.execute(f"SELECT COUNT(DISTINCT {column}) FROM {cache.ref(slot)}").fetchone()[0]
    )


def run(cfg: Optional[ExploreRatingsConfig] = None) -> ExploreRatingsResult:
    """
    sources -> load/union -> dedupe -> temporal -> sequence -> summaries.

    Each stage pins its output and releases the slot it replaces, so at most two
    full-size tables are resident at any time. Any failure aborts the run.
    """
    cfg = cfg or ExploreRatingsConfig()
    if cfg.max_sequence < 1:
        raise ValueError("max_sequence must be >= 1")

    _log("=== Ratings EDA: union, dedupe, features, summaries ===")

    with _stage("sources"):
        sources = list_sources(cfg.raw_dir, cfg.pattern)

    con = connect(cfg.engine)
    try:
        with SlotCache(con) as cache:
            with _stage("load"):
                unified, per_file = load_all(cache, sources)
                n_unified = cache.count(unified)

            with _stage("dedupe"):
                deduped = dedupe(cache, unified)
                n_deduped = cache.count(deduped)

            with _stage("features.temporal"):
                temporal = derive_temporal(cache, deduped)

            with _stage("features.sequence"):
                enriched = derive_sequence_numbers(cache, temporal)

            with _stage("summaries"):
                summaries = standard_summaries(cache, enriched, max_sequence=cfg.max_sequence)

            meta: Dict[str, Any] = {
                "raw_dir": str(cfg.raw_dir),
                "sources": {s.path.name: s.category for s in sources},
                "rows_per_file": per_file,
                "n_unified": n_unified,
                "n_deduplicated": n_deduped,
                "n_duplicates_dropped": n_unified - n_deduped,
                "n_users": _distinct(cache, enriched, SCHEMA.USER_ID),
                "n_items": _distinct(cache, enriched, SCHEMA.ITEM_ID),
                "max_sequence": cfg.max_sequence,
                "timezone": current_timezone(con),
                "process_timezone": local_timezone_label(),
                "finished_at_utc": utc_now_iso(),
            }
    finally:
        con.close()

    if cfg.write_outputs:
        with _stage("write"):
            paths = write_summaries(summaries, cfg.out_dir)
            meta["outputs"] = {k: str(v) for k, v in paths.items()}
            write_json(cfg.metadata_path, meta)

    _log("Ratings EDA complete.")
    _log(f" - unified rows: {n_unified:,}")
    _log(f" - after dedupe: {n_deduped:,}")
    if cfg.write_outputs:
        _log(f" - summaries: {cfg.out_dir}")
        _log(f" - metadata: {cfg.metadata_path}")

    return ExploreRatingsResult(summaries=summaries, metadata=meta)


def _parse_args(argv: Optional[list[str]] = None) -> ExploreRatingsConfig:
    ap = argparse.ArgumentParser(description="Union category rating files and summarize them.")
    ap.add_argument("--raw-dir", type=Path, default=Path("data/raw/ratings"))
    ap.add_argument("--pattern", default="*.csv")
    ap.add_argument("--out-dir", type=Path, default=Path("reports/ratings_eda"))
    ap.add_argument("--max-sequence", type=int, default=DEFAULT_MAX_SEQUENCE)
    ap.add_argument("--no-write", action="store_true", help="skip parquet/metadata output")
    ap.add_argument("--threads", type=int, default=4)
    ap.add_argument("--memory-limit", default=None, help="e.g. 8GB")
    ap.add_argument("--tmp-dir", type=Path, default=Path("data/interim/duckdb_tmp"))
    ap.add_argument("--timezone", default=None, help="IANA zone; default is the local zone")
    args = ap.parse_args(argv)

    return ExploreRatingsConfig(
        raw_dir=args.raw_dir,
        pattern=args.pattern,
        out_dir=args.out_dir,
        metadata_path=args.out_dir / "metadata.json",
        write_outputs=not args.no_write,
        max_sequence=args.max_sequence,
        engine=EngineConfig(
            threads=args.threads,
            memory_limit=args.memory_limit,
            tmp_dir=args.tmp_dir,
            timezone=args.timezone,
        ),
    )


def main(argv: Optional[list[str]] = None) -> None:
    run(_parse_args(argv))


if __name__ == "__main__":
    main()
