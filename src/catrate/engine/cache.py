# src/catrate/engine/cache.py
from __future__ import annotations

from typing import Dict, List, Optional

import duckdb
import pandas as pd

from catrate.data.validation import SlotNotFoundError


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _log(msg: str) -> None:
    print(msg, flush=True)


class SlotCache:
    """
    Named, materialized tables held by the engine.

    Every pin is a CREATE TABLE ... AS, so the result is computed once and later readers
    never re-run (or re-plan) the expression that produced it. The driver owns the handle:
    pin right after computing a checkpoint, unpin the slot it supersedes, and release
    whatever is left when the run ends.
    """

    def __init__(self, con: duckdb.DuckDBPyConnection, *, verbose: bool = False) -> None:
        self.con = con
        self.verbose = verbose
        self._lineage: Dict[str, Optional[str]] = {}

    # ----------------------------
    # lifecycle
    # ----------------------------
    def __enter__(self) -> "SlotCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release_all()

    def pin(self, sql: str, slot: str, *, lineage: Optional[str] = None) -> str:
        self.con.execute(f"CREATE OR REPLACE TABLE {quote_ident(slot)} AS {sql}")
        self._lineage[slot] = lineage
        if self.verbose:
            _log(f"[cache] pinned {slot!r} ({self.count(slot):,} rows)")
        return slot

    def append(self, sql: str, slot: str) -> str:
        self._require(slot)
        self.con.execute(f"INSERT INTO {quote_ident(slot)} {sql}")
        return slot

    def unpin(self, slot: str) -> None:
        self._require(slot)
        self.con.execute(f"DROP TABLE IF EXISTS {quote_ident(slot)}")
        del self._lineage[slot]
        if self.verbose:
            _log(f"[cache] released {slot!r}")

    def release_all(self) -> None:
        for slot in list(self._lineage):
            self.unpin(slot)

    # ----------------------------
    # reads
    # ----------------------------
    @property
    def slots(self) -> List[str]:
        return list(self._lineage)

    def __contains__(self, slot: object) -> bool:
        return slot in self._lineage

    def _require(self, slot: str) -> None:
        if slot not in self._lineage:
            raise SlotNotFoundError(f"Cache slot {slot!r} is not pinned (evicted or never created)")

    def ref(self, slot: str) -> str:
        """Quoted table name for use in SQL, checked against the registry."""
        self._require(slot)
        return quote_ident(slot)

    def lineage(self, slot: str) -> Optional[str]:
        self._require(slot)
        return self._lineage[slot]

    def relation(self, slot: str) -> duckdb.DuckDBPyRelation:
        self._require(slot)
        return self.con.table(slot)

    def columns(self, slot: str) -> List[str]:
        return list(self.relation(slot).columns)

    def types(self, slot: str) -> List[str]:
        return [str(t) for t in self.relation(slot).types]

    def count(self, slot: str) -> int:
        return int(self.con.execute(f"SELECT COUNT(*) FROM {self.ref(slot)}").fetchone()[0])

    def fetch_df(self, slot: str, *, order_by: Optional[str] = None) -> pd.DataFrame:
        sql = f"SELECT * FROM {self.ref(slot)}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        return self.con.execute(sql).df()
