"""
Utilities package for the OceanViz ARGO Store

This package provides the ingestion pipeline that loads NetCDF files into
the measurement table.
"""

from .data_pipeline import (
    DataProcessor,
    IngestionSummary,
    process_argo_files
)

__all__ = [
    'DataProcessor',
    'IngestionSummary',
    'process_argo_files'
]
