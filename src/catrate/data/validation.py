# src/catrate/data/validation.py
from __future__ import annotations

from typing import Iterable, Sequence

from catrate.data.schemas import SCHEMA


class PipelineError(RuntimeError):
    pass


class InvalidFilenameError(PipelineError, ValueError):
    pass


class SchemaMismatchError(PipelineError, ValueError):
    pass


class MissingColumnError(PipelineError, ValueError):
    pass


class SlotNotFoundError(PipelineError, LookupError):
    pass


def validate_required_columns(columns: Iterable[str], required: Iterable[str], *, stage: str) -> None:
    present = set(columns)
    missing = [c for c in required if c not in present]
    if missing:
        raise MissingColumnError(f"[{stage}] missing required columns: {missing}")


def validate_canonical_schema(
    columns: Sequence[str],
    *,
    source: str,
    types: Sequence[str] | None = None,
) -> None:
    """
    Union is only valid when every table has the canonical columns, in canonical order.
    Types are compared too when given (DuckDB type names, e.g. 'VARCHAR').
    """
    expected = list(SCHEMA.required_columns)
    if list(columns) != expected:
        raise SchemaMismatchError(
            f"Table {source!r} has columns {list(columns)}, expected {expected}"
        )
    if types is not None:
        got = [str(t).upper() for t in types]
        want = list(SCHEMA.column_types)
        if got != want:
            raise SchemaMismatchError(f"Table {source!r} has types {got}, expected {want}")
