"""Figure export for product analysis results."""

from .figures import FigureExporter

__all__ = ['FigureExporter']
