# src/catrate/data/sources.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from catrate.data.validation import InvalidFilenameError

# ratings_<Category_Name>.csv
CATEGORY_PREFIX_LEN = 8
CATEGORY_SUFFIX_LEN = 4


@dataclass(frozen=True)
class SourceFile:
    path: Path
    category: str


def _log(msg: str) -> None:
    print(msg, flush=True)


def extract_category(filename: str) -> str:
    """
    'ratings_Toys_And_Games.csv' -> 'Toys And Games'.
    Purely positional: the prefix and suffix are dropped by length, not by content.
    """
    name = Path(filename).name
    if len(name) < CATEGORY_PREFIX_LEN + CATEGORY_SUFFIX_LEN:
        raise InvalidFilenameError(
            f"Filename {name!r} is shorter than "
            f"{CATEGORY_PREFIX_LEN + CATEGORY_SUFFIX_LEN} characters; cannot derive a category"
        )
    core = name[CATEGORY_PREFIX_LEN : len(name) - CATEGORY_SUFFIX_LEN]
    return core.replace("_", " ")


def list_sources(raw_dir: Path, pattern: str = "*.csv") -> List[SourceFile]:
    raw_dir = Path(raw_dir)
    if not raw_dir.is_dir():
        raise FileNotFoundError(f"Ratings directory not found: {raw_dir}")

    paths = sorted(p for p in raw_dir.glob(pattern) if p.is_file())
    sources = [SourceFile(path=p, category=extract_category(p.name)) for p in paths]

    _log(f"[sources] {len(sources)} files under {raw_dir}")
    for s in sources:
        _log(f"[sources]   {s.path.name} -> {s.category!r}")
    return sources
