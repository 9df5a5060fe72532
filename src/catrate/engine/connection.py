# src/catrate/engine/connection.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import duckdb


@dataclass(frozen=True)
class EngineConfig:
    database: str = ":memory:"
    threads: int = 4
    memory_limit: Optional[str] = None  # e.g. "4GB"; None keeps DuckDB's default

    # spill directory for operators that exceed memory_limit
    tmp_dir: Path = Path("data/interim/duckdb_tmp")

    # None -> process local time zone (DuckDB/ICU default)
    timezone: Optional[str] = None

    # union relies on append order being kept
    preserve_insertion_order: bool = True
    enable_progress_bar: bool = False


def _sql_str(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def connect(cfg: Optional[EngineConfig] = None) -> duckdb.DuckDBPyConnection:
    cfg = cfg or EngineConfig()
    cfg.tmp_dir.mkdir(parents=True, exist_ok=True)

    con = duckdb.connect(database=cfg.database)
    con.execute(f"PRAGMA threads={int(cfg.threads)};")
    con.execute(f"PRAGMA temp_directory={_sql_str(cfg.tmp_dir.as_posix())};")
    con.execute(f"SET preserve_insertion_order={'true' if cfg.preserve_insertion_order else 'false'};")
    if cfg.memory_limit:
        con.execute(f"SET memory_limit={_sql_str(cfg.memory_limit)};")
    if cfg.timezone:
        con.execute(f"SET TimeZone={_sql_str(cfg.timezone)};")
    if cfg.enable_progress_bar:
        con.execute("PRAGMA enable_progress_bar=true;")
    return con


def current_timezone(con: duckdb.DuckDBPyConnection) -> str:
    return str(con.execute("SELECT current_setting('TimeZone');").fetchone()[0])
