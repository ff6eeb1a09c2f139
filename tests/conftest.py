# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared sales data builders for the preprocessing, clustering, regression
# and pipeline tests.
# ==============================================

from typing import Dict, List, Sequence

import numpy as np
import polars as pl
import pytest

from product_analysis.config import AnalysisConfig


HEADER = [
    "product_id", "product_name", "category", "price", "cost",
    "units_sold", "promotion_frequency", "shelf_level", "profit",
]


def make_csv(rows: Sequence[Dict[str, object]], header: Sequence[str] = HEADER) -> str:
    """Render dict rows as CSV text; missing keys become empty fields."""
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join(str(row.get(col, "")) for col in header))
    return "\n".join(lines) + "\n"


def synthetic_rows(n: int = 120, seed: int = 7, noise: float = 5.0) -> List[Dict[str, object]]:
    rng = np.random.default_rng(seed)
    rows = []
    for i in range(n):
        price = round(float(rng.uniform(1.0, 10.0)), 2)
        cost = round(price * float(rng.uniform(0.4, 0.7)), 2)
        units = int(rng.integers(50, 1000))
        promo = int(rng.integers(0, 6))
        profit = round((price - cost) * units + 3.0 * promo + float(rng.normal(0.0, noise)), 2)
        rows.append({
            "product_id": f"P{i:04d}",
            "product_name": f"Product {i}",
            "category": ["Snacks", "Drinks", "Household"][i % 3],
            "price": price,
            "cost": cost,
            "units_sold": units,
            "promotion_frequency": promo,
            "shelf_level": int(rng.integers(1, 6)),
            "profit": profit,
        })
    return rows


@pytest.fixture
def sample_rows() -> List[Dict[str, object]]:
    return synthetic_rows()


@pytest.fixture
def sample_csv(sample_rows) -> str:
    return make_csv(sample_rows)


@pytest.fixture
def seeded_config() -> AnalysisConfig:
    return AnalysisConfig().with_seed(42)


@pytest.fixture
def linear_frame() -> pl.DataFrame:
    """Cleaned-schema frame whose profit is an exact linear function of the features."""
    rng = np.random.default_rng(11)
    n = 60
    price = rng.uniform(1.0, 10.0, n)
    cost = rng.uniform(0.5, 6.0, n)
    units = rng.integers(50, 1000, n)
    promo = rng.integers(0, 6, n)
    profit = 3.0 + 2.0 * price - 1.5 * cost + 0.05 * units + 4.0 * promo
    return pl.DataFrame({
        "product_id": [f"P{i}" for i in range(n)],
        "product_name": [f"Product {i}" for i in range(n)],
        "category": ["Snacks"] * n,
        "price": price,
        "cost": cost,
        "units_sold": pl.Series(units, dtype=pl.Int64),
        "promotion_frequency": pl.Series(promo, dtype=pl.Int64),
        "shelf_level": pl.Series([3] * n, dtype=pl.Int64),
        "profit": profit,
    })
