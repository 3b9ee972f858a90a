import logging
import os
from typing import Any, Iterable, List, Optional

import numpy as np
import pandas as pd

from .errors import RetrievalError
from .filters import EQ, ICONTAINS, RANK_GTE, Pagination, Predicate, SortKey
from .models import AdmissionRecord
from .ranking import sanitize_rank

logger = logging.getLogger(__name__)

# CSV header -> record field
COLUMNS = {
    "Institute": "institute",
    "Academic Program Name": "program_name",
    "Quota": "quota",
    "Seat Type": "seat_type",
    "Gender": "gender",
    "Opening Rank": "opening_rank",
    "Closing Rank": "closing_rank",
    "Year": "year",
    "Round": "round",
}
TEXT_FIELDS = ("institute", "program_name", "quota", "seat_type", "gender")
RANK_FIELDS = ("opening_rank", "closing_rank")
NUMERIC_FIELDS = ("year", "round")


def sanitized_ranks(series: pd.Series) -> pd.Series:
    """Apply sanitize_rank to a column, unparseable values become NaN."""
    return pd.to_numeric(series.map(sanitize_rank), errors="coerce")


def prepare_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize a raw cutoff table into record-shaped columns

    Args:
        df (pd.DataFrame): Table with either CSV headers or record field names

    Returns:
        pd.DataFrame: Frame with record field names, text ranks and integer year/round
    """
    df = df.rename(columns=COLUMNS)
    missing = [field for field in COLUMNS.values() if field not in df.columns]
    if missing:
        raise RetrievalError(f"Cutoff data is missing columns: {missing}")

    df = df[list(COLUMNS.values())].copy()
    for field in TEXT_FIELDS:
        df[field] = df[field].where(df[field].isna(), df[field].astype(str).str.strip())
    for field in RANK_FIELDS:
        df[field] = df[field].map(lambda v: None if pd.isna(v) else str(v).strip())
    for field in NUMERIC_FIELDS:
        df[field] = pd.to_numeric(df[field], errors="coerce")
    dropped = int(df[list(NUMERIC_FIELDS)].isna().any(axis=1).sum())
    if dropped:
        logger.warning(f"Dropping {dropped} rows without a numeric Year/Round")
        df = df.dropna(subset=list(NUMERIC_FIELDS))
    df = df.astype({field: int for field in NUMERIC_FIELDS})
    return df.reset_index(drop=True)


class CutoffStore:
    """In-memory cutoff table answering filtered, sorted, paginated queries."""

    def __init__(self, df: pd.DataFrame):
        self.df = prepare_frame(df)
        logger.info(f"Cutoff store ready. Total rows: {len(self.df)}")

    @classmethod
    def from_csv(cls, csv_path: str) -> "CutoffStore":
        logger.info(f"Attempting to load CSV from: {csv_path}")
        if not os.path.exists(csv_path):
            logger.error(f"CSV file not found at: {csv_path}")
            raise FileNotFoundError(f"CSV file not found at: {csv_path}")
        try:
            df = pd.read_csv(csv_path, dtype={"Opening Rank": str, "Closing Rank": str})
        except ValueError as e:
            # EmptyDataError and ParserError are both ValueErrors
            logger.error(f"Error reading CSV at {csv_path}: {e}")
            raise RetrievalError(f"Unreadable cutoff data at {csv_path}") from e
        return cls(df)

    def _mask(self, predicates: Iterable[Predicate]) -> pd.Series:
        mask = pd.Series(True, index=self.df.index)
        for predicate in predicates:
            column = self.df[predicate.field]
            if predicate.op == EQ:
                mask &= column == predicate.value
            elif predicate.op == ICONTAINS:
                mask &= column.str.contains(predicate.value, case=False, regex=False, na=False)
            elif predicate.op == RANK_GTE:
                mask &= sanitized_ranks(column) >= predicate.value
            else:
                raise RetrievalError(f"Unsupported predicate operator: {predicate.op}")
        return mask

    def count_matching(self, predicates: Iterable[Predicate]) -> int:
        try:
            return int(self._mask(predicates).sum())
        except RetrievalError:
            raise
        except Exception as e:
            logger.error(f"Error counting cutoff rows: {e}")
            raise RetrievalError("Error counting cutoff rows") from e

    def fetch_matching(
        self,
        predicates: Iterable[Predicate],
        sort_keys: Iterable[SortKey],
        pagination: Optional[Pagination] = None,
    ) -> List[AdmissionRecord]:
        """
        Return the matching rows in sort order, optionally one page of them

        Args:
            predicates: Filters combined with AND
            sort_keys: Sort terms, first one most significant; nulls always last
            pagination: Limit and offset, None for every matching row

        Returns:
            List[AdmissionRecord]: Matching records
        """
        try:
            matched = self.df[self._mask(predicates)]
            by, ascending = [], []
            helpers = {}
            for i, key in enumerate(sort_keys):
                if key.distance_from is not None:
                    name = f"_distance_{i}"
                    helpers[name] = (sanitized_ranks(matched[key.field]) - key.distance_from).abs()
                    by.append(name)
                else:
                    by.append(key.field)
                ascending.append(not key.descending)
            if by:
                matched = matched.assign(**helpers).sort_values(
                    by=by, ascending=ascending, na_position="last", kind="mergesort"
                )
            if pagination is not None:
                matched = matched.iloc[pagination.offset:pagination.offset + pagination.limit]
            rows = matched[list(COLUMNS.values())].replace({np.nan: None}).to_dict(orient="records")
            return [AdmissionRecord(**row) for row in rows]
        except RetrievalError:
            raise
        except Exception as e:
            logger.error(f"Error fetching cutoff rows: {e}")
            raise RetrievalError("Error fetching cutoff rows") from e

    def distinct_values(self, field: str) -> List[Any]:
        """Distinct non-empty values of a column in ascending order."""
        try:
            values = self.df[field].dropna()
            values = values[values.astype(str).str.strip() != ""]
            return sorted(values.unique().tolist())
        except Exception as e:
            logger.error(f"Error listing distinct values of {field}: {e}")
            raise RetrievalError(f"Error listing values of {field}") from e
