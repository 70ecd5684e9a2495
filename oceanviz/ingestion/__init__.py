"""
ARGO Data Ingestion Module

This module provides functionality to resolve variables in ARGO NetCDF files
and extract measurement records from them.
"""

from .variable_resolver import (
    QUANTITY_ALIASES,
    ScalarValue,
    ArrayValue,
    LookupResult,
    NOT_FOUND,
    lookup_variable,
    resolve,
    resolve_quantities,
    ResolvedQuantities
)

from .argo_reader import (
    ArgoNetCDFReader,
    MeasurementRecord,
    extract_records,
    derive_timestamp,
    days_since_1950_to_datetime,
    epoch_to_datetime,
    find_netcdf_files
)

__all__ = [
    'QUANTITY_ALIASES',
    'ScalarValue',
    'ArrayValue',
    'LookupResult',
    'NOT_FOUND',
    'lookup_variable',
    'resolve',
    'resolve_quantities',
    'ResolvedQuantities',
    'ArgoNetCDFReader',
    'MeasurementRecord',
    'extract_records',
    'derive_timestamp',
    'days_since_1950_to_datetime',
    'epoch_to_datetime',
    'find_netcdf_files'
]
