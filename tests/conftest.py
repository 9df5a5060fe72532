# tests/conftest.py
from __future__ import annotations

import random
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest

Row = Sequence[object]


def _write_rows(path: Path, rows: Sequence[Row]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(",".join(str(v) for v in r) + "\n" for r in rows), encoding="utf-8")
    return path


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    """Per-test filesystem sandbox."""
    return tmp_path


@pytest.fixture()
def project_root() -> Path:
    """Repo root (where pyproject.toml lives)."""
    return Path(__file__).resolve().parents[1]


@pytest.fixture()
def make_raw_dir(sandbox: Path) -> Callable[[Dict[str, Sequence[Row]]], Path]:
    """
    Factory: {filename: rows} -> directory of headerless CSVs.
    """
    def _make(files: Dict[str, Sequence[Row]], name: str = "raw") -> Path:
        raw = sandbox / name
        raw.mkdir(parents=True, exist_ok=True)
        for fname, rows in files.items():
            _write_rows(raw / fname, rows)
        return raw

    return _make


@pytest.fixture()
def write_raw_ratings(make_raw_dir) -> Path:
    """Two categories; U1 rates twice at t=1000 (one in each file)."""
    return make_raw_dir(
        {
            "ratings_Books.csv": [("U1", "I1", 5, 1000)],
            "ratings_Toys_And_Games.csv": [("U1", "I2", 3, 1000), ("U2", "I2", 4, 2000)],
        }
    )


@pytest.fixture()
def random_raw_dir(make_raw_dir) -> Path:
    """
    Three categories, ~600 rows, small id/timestamp ranges so that
    (user, timestamp) collisions and per-item timestamp ties both happen.
    """
    rng = random.Random(7)
    files: Dict[str, List[Row]] = {}
    for cat in ("ratings_Books.csv", "ratings_Digital_Music.csv", "ratings_Video_Games.csv"):
        files[cat] = [
            (
                f"U{rng.randint(1, 25)}",
                f"I{rng.randint(1, 15)}",
                rng.choice([1.0, 2.0, 3.0, 4.0, 5.0]),
                1_300_000_000 + rng.randint(0, 40) * 3600,
            )
            for _ in range(200)
        ]
    return make_raw_dir(files)


@pytest.fixture()
def engine_cfg(sandbox: Path):
    from catrate.engine.connection import EngineConfig

    return EngineConfig(threads=2, tmp_dir=sandbox / "duckdb_tmp", timezone="UTC")


@pytest.fixture()
def cache(engine_cfg):
    from catrate.engine.cache import SlotCache
    from catrate.engine.connection import connect

    con = connect(engine_cfg)
    c = SlotCache(con)
    yield c
    c.release_all()
    con.close()


@pytest.fixture()
def enriched_slot(cache, random_raw_dir) -> str:
    from catrate.data.dedupe import dedupe
    from catrate.data.loading import load_all
    from catrate.data.sources import list_sources
    from catrate.features.build_rating_features import build_rating_features

    unified, _ = load_all(cache, list_sources(random_raw_dir))
    return build_rating_features(cache, dedupe(cache, unified))
