"""
Sales data preprocessing for product performance analysis.

Turns delimited sales text into two Polars frames with a fixed schema:
- ``cleaned``: typed records that survived validation and IQR outlier removal
- ``normalized``: the same records plus min-max scaled clustering features

Rows that are incomplete or unparseable are dropped silently and counted on the
result so callers can report data quality without handling exceptions.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from ..config import (
    OPTIONAL_FIELD_DEFAULTS,
    REQUIRED_COLUMNS,
    REQUIRED_NUMERIC_FIELDS,
    PreprocessingConfig,
)
from ..exceptions import EmptyInputError


TEXT_FIELDS: Tuple[str, ...] = ("product_id", "product_name", "category")
FLOAT_FIELDS: Tuple[str, ...] = ("price", "cost", "profit")
INT_FIELDS: Tuple[str, ...] = ("units_sold", "promotion_frequency", "shelf_level")

CLEANED_SCHEMA: Dict[str, Any] = {
    "product_id": pl.Utf8,
    "product_name": pl.Utf8,
    "category": pl.Utf8,
    "price": pl.Float64,
    "cost": pl.Float64,
    "units_sold": pl.Int64,
    "promotion_frequency": pl.Int64,
    "shelf_level": pl.Int64,
    "profit": pl.Float64,
}

NORM_SUFFIX = "_norm"
# Largest magnitude that still fits an Int64 after truncation
_INT64_LIMIT = 9.2e18


def norm_column(feature: str) -> str:
    """Name of the normalised column for a feature."""
    return f"{feature}{NORM_SUFFIX}"


@dataclass(frozen=True)
class PreprocessResult:
    """Output of the preprocessing stage, shared read-only by both engines."""
    cleaned: pl.DataFrame
    normalized: pl.DataFrame
    rows_parsed: int
    dropped_missing: int = 0
    dropped_unparseable: int = 0
    outliers_removed: Dict[str, int] = field(default_factory=dict)
    normalised_features: Tuple[str, ...] = ("price", "units_sold", "promotion_frequency")
    degenerate_features: Tuple[str, ...] = ()

    @property
    def rows_dropped(self) -> int:
        return self.rows_parsed - self.cleaned.height

    def feature_matrix(self) -> np.ndarray:
        """Normalised features as a (n_records, n_features) float array."""
        cols = [norm_column(f) for f in self.normalised_features]
        return self.normalized.select(cols).to_numpy().astype(float)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows_parsed": self.rows_parsed,
            "rows_kept": self.cleaned.height,
            "dropped_missing": self.dropped_missing,
            "dropped_unparseable": self.dropped_unparseable,
            "outliers_removed": dict(self.outliers_removed),
            "degenerate_features": list(self.degenerate_features),
        }


@dataclass(frozen=True)
class DatasetSummary:
    """Headline figures for the cleaned dataset."""
    total_products: int
    avg_profit: float
    avg_units_sold: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_products": self.total_products,
            "avg_profit": self.avg_profit,
            "avg_units_sold": self.avg_units_sold,
        }


def split_delimited_text(text: str, delimiter: str = ",") -> Tuple[List[str], List[List[str]]]:
    """
    Split delimited text into a header and positional rows.

    Values are whitespace-trimmed and short rows are padded with empty strings
    so every row has one value per header.
    """
    lines = text.strip().splitlines()
    if not lines or not lines[0].strip():
        return [], []

    headers = [h.strip() for h in lines[0].split(delimiter)]
    rows = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = [v.strip() for v in line.split(delimiter)]
        if len(values) < len(headers):
            values.extend([""] * (len(headers) - len(values)))
        rows.append(values[:len(headers)])
    return headers, rows


def build_raw_frame(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> pl.DataFrame:
    """Map rows onto headers by position, producing an all-string frame."""
    # Later duplicate headers win, as with a plain dict assignment
    columns: Dict[str, List[str]] = {}
    for i, header in enumerate(headers):
        columns[header] = [row[i] for row in rows]
    return pl.DataFrame(columns, schema={name: pl.Utf8 for name in columns})


def iqr_bounds(values: Sequence[float], multiplier: float = 1.5) -> Tuple[float, float]:
    """
    Outlier bounds from index-based quartiles.

    Q1 and Q3 are the sorted values at ``floor(n * 0.25)`` and ``floor(n * 0.75)``;
    no interpolation is performed.
    """
    sorted_values = np.sort(np.asarray(values, dtype=float))
    n = len(sorted_values)
    if n == 0:
        raise EmptyInputError("Cannot compute IQR bounds of an empty sequence")

    q1 = sorted_values[int(math.floor(n * 0.25))]
    q3 = sorted_values[int(math.floor(n * 0.75))]
    iqr = q3 - q1
    return float(q1 - multiplier * iqr), float(q3 + multiplier * iqr)


def remove_outliers(df: pl.DataFrame, column: str, multiplier: float = 1.5) -> pl.DataFrame:
    """Drop rows whose ``column`` value falls outside the IQR bounds."""
    if df.height == 0:
        return df
    lower, upper = iqr_bounds(df[column].to_numpy(), multiplier)
    return df.filter(pl.col(column).is_between(lower, upper, closed="both"))


def min_max_normalise(df: pl.DataFrame, features: Sequence[str]) -> Tuple[pl.DataFrame, List[str]]:
    """
    Add ``<feature>_norm`` columns scaled to [0, 1].

    A feature whose min equals its max is mapped to 0.0 for every row and
    reported back in the list of degenerate features.
    """
    exprs = []
    degenerate = []
    for feature in features:
        if df.height == 0:
            exprs.append(pl.col(feature).cast(pl.Float64).alias(norm_column(feature)))
            continue

        col_min = df[feature].min()
        col_max = df[feature].max()
        if col_max == col_min:
            degenerate.append(feature)
            exprs.append(pl.lit(0.0, dtype=pl.Float64).alias(norm_column(feature)))
        else:
            exprs.append(
                ((pl.col(feature) - col_min) / (col_max - col_min))
                .cast(pl.Float64)
                .alias(norm_column(feature))
            )
    return df.with_columns(exprs), degenerate


def summarise_dataset(cleaned: pl.DataFrame) -> DatasetSummary:
    """Record count and mean profit / units sold of the cleaned records."""
    if cleaned.height == 0:
        raise EmptyInputError("No cleaned records to summarise")
    return DatasetSummary(
        total_products=cleaned.height,
        avg_profit=float(cleaned["profit"].mean()),
        avg_units_sold=float(cleaned["units_sold"].mean()),
    )


class SalesPreprocessor:
    """
    Parse, clean, filter and normalise product sales records.

    The preprocessor is stateless between calls; every call to ``preprocess``
    returns a fresh, immutable ``PreprocessResult``.
    """

    def __init__(self, config: Optional[PreprocessingConfig] = None):
        """
        Initialise the preprocessor.

        Args:
            config: Parsing and filtering parameters (defaults if omitted)
        """
        self.config = config or PreprocessingConfig()
        self.config.validate()
        self.logger = logging.getLogger(__name__)

    def preprocess(self, text: str) -> PreprocessResult:
        """
        Run the full preprocessing chain on raw delimited text.

        Args:
            text: File contents, header row first

        Returns:
            PreprocessResult with cleaned and normalised frames plus drop counts
        """
        headers, rows = split_delimited_text(text, self.config.delimiter)
        rows_parsed = len(rows)
        self.logger.info(f"Parsed {rows_parsed} data rows with {len(headers)} columns")

        missing_headers = [c for c in REQUIRED_COLUMNS if c not in headers]
        if missing_headers:
            self.logger.warning(f"Input is missing required columns: {missing_headers}")

        raw = build_raw_frame(headers, rows)
        complete = self._drop_incomplete(raw)
        dropped_missing = rows_parsed - complete.height

        typed = self._cast_numeric(complete)
        dropped_unparseable = complete.height - typed.height

        filtered = typed
        outliers_removed: Dict[str, int] = {}
        for column in self.config.outlier_fields:
            before = filtered.height
            filtered = remove_outliers(filtered, column, self.config.iqr_multiplier)
            outliers_removed[column] = before - filtered.height

        normalized, degenerate = min_max_normalise(filtered, self.config.normalise_features)
        for feature in degenerate:
            self.logger.warning(f"Feature '{feature}' has a single value; normalised to 0.0")

        self.logger.info(
            f"Preprocessing complete: {rows_parsed} -> {filtered.height} records "
            f"(missing={dropped_missing}, unparseable={dropped_unparseable}, "
            f"outliers={sum(outliers_removed.values())})"
        )

        return PreprocessResult(
            cleaned=filtered,
            normalized=normalized,
            rows_parsed=rows_parsed,
            dropped_missing=dropped_missing,
            dropped_unparseable=dropped_unparseable,
            outliers_removed=outliers_removed,
            normalised_features=tuple(self.config.normalise_features),
            degenerate_features=tuple(degenerate),
        )

    def _drop_incomplete(self, raw: pl.DataFrame) -> pl.DataFrame:
        """Keep rows where every required numeric field is present and non-empty."""
        missing = [c for c in REQUIRED_NUMERIC_FIELDS if c not in raw.columns]
        if missing:
            return pl.DataFrame(schema={c: pl.Utf8 for c in list(raw.columns) + missing})
        present = [
            pl.col(c).is_not_null() & (pl.col(c) != "")
            for c in REQUIRED_NUMERIC_FIELDS
        ]
        return raw.filter(pl.all_horizontal(present))

    def _cast_numeric(self, df: pl.DataFrame) -> pl.DataFrame:
        """Cast to the cleaned schema, dropping rows with unparseable numbers."""
        parsed = []
        for name in FLOAT_FIELDS + INT_FIELDS:
            if name in OPTIONAL_FIELD_DEFAULTS:
                default = float(OPTIONAL_FIELD_DEFAULTS[name])
                if name not in df.columns:
                    parsed.append(pl.lit(default, dtype=pl.Float64).alias(name))
                    continue
                parsed.append(
                    pl.when(pl.col(name).is_null() | (pl.col(name) == ""))
                    .then(pl.lit(default, dtype=pl.Float64))
                    .otherwise(pl.col(name).cast(pl.Float64, strict=False))
                    .alias(name)
                )
            else:
                parsed.append(pl.col(name).cast(pl.Float64, strict=False).alias(name))

        text = [
            (pl.col(name) if name in df.columns else pl.lit(None, dtype=pl.Utf8)).alias(name)
            for name in TEXT_FIELDS
        ]
        df = df.select(text + parsed)

        valid = []
        for name in FLOAT_FIELDS + INT_FIELDS:
            check = pl.col(name).is_not_null() & pl.col(name).is_finite()
            if name in INT_FIELDS:
                check = check & (pl.col(name).abs() < _INT64_LIMIT)
            valid.append(check.fill_null(False))
        df = df.filter(pl.all_horizontal(valid))

        # Float -> Int64 truncates toward zero
        df = df.with_columns([pl.col(name).cast(pl.Int64) for name in INT_FIELDS])
        return df.select([pl.col(name).cast(dtype) for name, dtype in CLEANED_SCHEMA.items()])


def parse_sales_text(text: str, config: Optional[PreprocessingConfig] = None) -> PreprocessResult:
    """Convenience wrapper around ``SalesPreprocessor.preprocess``."""
    return SalesPreprocessor(config).preprocess(text)
