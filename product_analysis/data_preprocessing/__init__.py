"""
Data preprocessing module for product sales analysis.

Parses delimited sales text, removes incomplete rows and IQR outliers, and
min-max normalises the clustering features.
"""

from .sales_preprocessor import (
    DatasetSummary,
    PreprocessResult,
    SalesPreprocessor,
    iqr_bounds,
    min_max_normalise,
    parse_sales_text,
    remove_outliers,
    summarise_dataset,
)

__all__ = [
    'DatasetSummary',
    'PreprocessResult',
    'SalesPreprocessor',
    'iqr_bounds',
    'min_max_normalise',
    'parse_sales_text',
    'remove_outliers',
    'summarise_dataset',
]
