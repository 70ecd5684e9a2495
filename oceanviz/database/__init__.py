"""
Database package for the OceanViz ARGO Store

This package provides the measurement model, connection management and the
read-only queries used by the API.
"""

from .models import (
    Base,
    ArgoMeasurement,
    MEASUREMENT_FIELDS
)

from .connection import (
    DatabaseManager,
    DatabaseError,
    build_database_url
)

from .queries import (
    RegionSummary,
    fetch_everything,
    fetch_by_location,
    fetch_metric,
    fetch_profiles,
    region_summary
)

__all__ = [
    'Base',
    'ArgoMeasurement',
    'MEASUREMENT_FIELDS',
    'DatabaseManager',
    'DatabaseError',
    'build_database_url',
    'RegionSummary',
    'fetch_everything',
    'fetch_by_location',
    'fetch_metric',
    'fetch_profiles',
    'region_summary'
]
