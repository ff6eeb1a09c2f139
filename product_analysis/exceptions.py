"""
Exception types raised by the product analysis engine.

Row-level problems during preprocessing are never raised; they are counted on
the preprocessing result instead. Everything here is fatal to the single fit
or evaluation call that raised it.
"""


class AnalysisError(Exception):
    """Base class for all product analysis failures."""


class ConfigurationError(AnalysisError, ValueError):
    """Raised when a configuration value is out of range."""


class EmptyInputError(AnalysisError, ValueError):
    """Raised when an operation receives no records to work on."""


class InvalidClusterCountError(AnalysisError, ValueError):
    """Raised when k is outside the supported range or exceeds the data size."""


class SingularMatrixError(AnalysisError, ArithmeticError):
    """Raised when matrix inversion meets a zero or near-zero pivot."""

    def __init__(self, message: str, column: int = -1):
        super().__init__(message)
        self.column = column
