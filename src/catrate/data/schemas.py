# src/catrate/data/schemas.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple


@dataclass(frozen=True)
class RatingsSchema:
    """
    Canonical schema of a category-tagged rating record.
    Every loaded table and every unioned table must match it exactly (names and order).
    """
    USER_ID: Final[str] = "user_id"
    ITEM_ID: Final[str] = "item_id"
    RATING: Final[str] = "rating"
    TIMESTAMP: Final[str] = "timestamp"
    CATEGORY: Final[str] = "category"

    @property
    def raw_columns(self) -> Tuple[str, ...]:
        return (self.USER_ID, self.ITEM_ID, self.RATING, self.TIMESTAMP)

    @property
    def required_columns(self) -> Tuple[str, ...]:
        return self.raw_columns + (self.CATEGORY,)

    @property
    def column_types(self) -> Tuple[str, ...]:
        # DuckDB logical types, aligned with required_columns
        return ("VARCHAR", "VARCHAR", "DOUBLE", "BIGINT", "VARCHAR")


@dataclass(frozen=True)
class FeatureColumns:
    TIMESTAMP_TEXT: Final[str] = "timestamp_text"
    HOUR: Final[str] = "hour"
    DAY_OF_WEEK_NAME: Final[str] = "day_of_week_name"
    MONTH: Final[str] = "month"
    YEAR: Final[str] = "year"
    USER_SEQUENCE: Final[str] = "user_sequence_number"
    ITEM_SEQUENCE: Final[str] = "item_sequence_number"

    @property
    def temporal(self) -> Tuple[str, ...]:
        return (self.TIMESTAMP_TEXT, self.HOUR, self.DAY_OF_WEEK_NAME, self.MONTH, self.YEAR)

    @property
    def sequence(self) -> Tuple[str, ...]:
        return (self.USER_SEQUENCE, self.ITEM_SEQUENCE)


SCHEMA = RatingsSchema()
FEATURES = FeatureColumns()

DAY_NAMES: Tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

# Summary output columns
COUNT_COL = "count"
AVG_RATING_COL = "avg_rating"
