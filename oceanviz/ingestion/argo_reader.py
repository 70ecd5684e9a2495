"""
ARGO NetCDF Data Reader and Row Extractor

This module reads ARGO NetCDF files and converts each one into a flat
sequence of measurement records, one per depth level/cycle, ready to be
inserted into the measurement table.
"""

import argparse
import math
import os
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import xarray as xr
import logging
from dotenv import load_dotenv

from .variable_resolver import (
    OPTIONAL_QUANTITIES,
    QUANTITY_ALIASES,
    REQUIRED_QUANTITIES,
    ResolvedQuantities,
    resolve_quantities,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

JULD_REFERENCE = datetime(1950, 1, 1, tzinfo=timezone.utc)
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Raw epoch values above this magnitude are read as milliseconds
DEFAULT_EPOCH_MS_THRESHOLD = 1e12

DEFAULT_DATA_DIR = os.path.join('.', 'data', 'argo')


@dataclass(frozen=True)
class MeasurementRecord:
    """One depth/cycle observation extracted from a source file"""
    temperature: float
    latitude: float
    longitude: float
    pressure: float
    salinity: float
    oxygen: Optional[float] = None
    nitrate: Optional[float] = None
    depth: Optional[float] = None
    time_ts: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


def _is_number(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value)


def days_since_1950_to_datetime(value: Optional[float]) -> Optional[datetime]:
    """Convert an ARGO JULD value (days since 1950-01-01 UTC) to a datetime"""
    if value is None or not math.isfinite(value):
        return None
    try:
        return JULD_REFERENCE + timedelta(days=float(value))
    except OverflowError:
        return None


def epoch_to_datetime(value: Optional[float],
                      ms_threshold: float = DEFAULT_EPOCH_MS_THRESHOLD) -> Optional[datetime]:
    """
    Convert a raw epoch value to a datetime

    Values whose magnitude exceeds ms_threshold are taken as milliseconds,
    everything else as seconds.
    """
    if value is None or not math.isfinite(value):
        return None
    milliseconds = value if abs(value) > ms_threshold else value * 1000.0
    try:
        return UNIX_EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError:
        return None


def derive_timestamp(juld: Optional[float], epoch: Optional[float],
                     ms_threshold: float = DEFAULT_EPOCH_MS_THRESHOLD) -> Optional[datetime]:
    """Pick the observation time, preferring JULD over the raw epoch value"""
    if _is_number(juld):
        return days_since_1950_to_datetime(juld)
    if epoch is not None:
        return epoch_to_datetime(epoch, ms_threshold)
    return None


def extract_records(resolved: ResolvedQuantities,
                    ms_threshold: float = DEFAULT_EPOCH_MS_THRESHOLD) -> List[MeasurementRecord]:
    """
    Align the resolved quantities of one file into measurement records

    Args:
        resolved: Quantities resolved from a single source file
        ms_threshold: Epoch magnitude above which raw times are milliseconds

    Returns:
        Records in index order; indices missing a required field are skipped
    """
    if resolved.missing_required():
        return []

    length = resolved.working_length()
    if length == 0:
        return []

    quantities = REQUIRED_QUANTITIES + OPTIONAL_QUANTITIES + ('juld', 'epoch')
    values = {q: resolved.get(q) for q in quantities}

    records = []
    for i in range(length):
        row = {
            q: (value.value_at(i) if value is not None else None)
            for q, value in values.items()
        }

        if not all(_is_number(row[q]) for q in REQUIRED_QUANTITIES):
            continue

        records.append(MeasurementRecord(
            temperature=row['temperature'],
            latitude=row['latitude'],
            longitude=row['longitude'],
            pressure=row['pressure'],
            salinity=row['salinity'],
            oxygen=row['oxygen'] if _is_number(row['oxygen']) else None,
            nitrate=row['nitrate'] if _is_number(row['nitrate']) else None,
            depth=row['depth'] if _is_number(row['depth']) else None,
            time_ts=derive_timestamp(row['juld'], row['epoch'], ms_threshold),
        ))

    return records


class ArgoNetCDFReader:
    """Class to read ARGO NetCDF files into measurement records"""

    def __init__(self, aliases: Optional[Dict[str, Tuple[str, ...]]] = None,
                 epoch_ms_threshold: Optional[float] = None):
        self.aliases = aliases or QUANTITY_ALIASES
        if epoch_ms_threshold is None:
            epoch_ms_threshold = float(os.getenv('EPOCH_MS_THRESHOLD', DEFAULT_EPOCH_MS_THRESHOLD))
        self.epoch_ms_threshold = epoch_ms_threshold

    def open_dataset(self, file_path: str) -> xr.Dataset:
        # Raw JULD/TIME numbers are needed, so CF time decoding stays off
        return xr.open_dataset(file_path, decode_times=False)

    def read_argo_file(self, file_path: str) -> List[MeasurementRecord]:
        """
        Read an ARGO NetCDF file and extract its measurement records

        Args:
            file_path: Path to the NetCDF file

        Returns:
            List of MeasurementRecord objects (empty if the file is skipped)
        """
        with self.open_dataset(file_path) as ds:
            return self.read_dataset(ds, source_name=file_path)

    def read_dataset(self, ds: Any, source_name: str = '<dataset>') -> List[MeasurementRecord]:
        """Extract records from an already opened dataset"""
        resolved = resolve_quantities(ds, self.aliases)

        missing = resolved.missing_required()
        if missing:
            logger.warning(f"Skipping {source_name} due to missing variables: {', '.join(missing)}")
            return []

        if resolved.working_length() == 0:
            logger.warning(f"No iterable data length found in {source_name}. Skipping.")
            return []

        records = extract_records(resolved, self.epoch_ms_threshold)
        logger.info(f"Extracted {len(records)} records from {source_name}")
        return records

    def summarize_file(self, file_path: str, sample_size: int = 5) -> Dict[str, Any]:
        """Describe a file's variables and how each quantity resolves"""
        with self.open_dataset(file_path) as ds:
            resolved = resolve_quantities(ds, self.aliases)

            quantities = {}
            for quantity, candidates in self.aliases.items():
                name = resolved.variable_name(quantity)
                if name is None:
                    quantities[quantity] = {'found': False, 'candidates': list(candidates)}
                    continue

                values = np.atleast_1d(np.asarray(ds[name].values, dtype=np.float64)).ravel()
                finite = values[~np.isnan(values)]
                quantities[quantity] = {
                    'found': True,
                    'variable': name,
                    'dimensions': list(ds[name].dims),
                    'length': int(values.size),
                    'min': float(finite.min()) if finite.size else None,
                    'max': float(finite.max()) if finite.size else None,
                    'sample': values[:sample_size].tolist(),
                }

            return {
                'file': file_path,
                'global_attributes': {k: str(v) for k, v in ds.attrs.items()},
                'variables': {name: list(var.dims) for name, var in ds.variables.items()},
                'quantities': quantities,
            }


def find_netcdf_files(directory_path: str, extension: str = '.nc') -> List[str]:
    """
    Recursively find all files under a directory with the given extension

    The extension match is case-insensitive. Raises FileNotFoundError if the
    directory does not exist.
    """
    extension = extension.lower()
    results = []
    with os.scandir(directory_path) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if entry.is_dir():
            results.extend(find_netcdf_files(entry.path, extension))
        elif entry.is_file() and entry.name.lower().endswith(extension):
            results.append(entry.path)
    return results


def _print_summary(summary: Dict[str, Any]):
    print(f"File: {summary['file']}")
    print("--- Global Attributes ---")
    for key, value in summary['global_attributes'].items():
        print(f"  {key}: {value}")

    print("\n--- All Variables ---")
    for name, dims in summary['variables'].items():
        print(f"  {name}  dims={dims}")

    print("\n--- Main Variables Summary ---")
    for quantity, info in summary['quantities'].items():
        if not info['found']:
            print(f"  {quantity}: not found ({', '.join(info['candidates'])})")
            continue
        print(f"  {quantity} -> {info['variable']}")
        print(f"    dims: {info['dimensions']} length: {info['length']}")
        print(f"    min: {info['min']} max: {info['max']}")
        print(f"    sample: {info['sample']}")


def main(argv: Optional[List[str]] = None) -> int:
    """Print a variable summary for one NetCDF file"""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Summarize the variables of an ARGO NetCDF file")
    parser.add_argument('path', nargs='?', help="NetCDF file to inspect")
    parser.add_argument('--file', dest='file', help="NetCDF file to inspect")
    args = parser.parse_args(argv)

    file_path = args.file or args.path
    if not file_path:
        data_dir = os.getenv('ARGO_DATA_DIR', DEFAULT_DATA_DIR)
        files = find_netcdf_files(data_dir) if os.path.isdir(data_dir) else []
        if not files:
            print(f"No .nc file provided and none found under {data_dir}", file=sys.stderr)
            print("Usage: oceanviz-read-variables --file path/to/file.nc", file=sys.stderr)
            return 1
        file_path = files[0]

    if not os.path.isfile(file_path):
        print(f"File not found: {file_path}", file=sys.stderr)
        return 1

    _print_summary(ArgoNetCDFReader().summarize_file(file_path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
