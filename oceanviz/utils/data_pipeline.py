"""
Data Processing Pipeline

This module provides the end-to-end pipeline for loading ARGO NetCDF files
into the measurement table, one transaction per file.
"""

import argparse
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import logging
from dotenv import load_dotenv
from tqdm import tqdm

from ..database.connection import DatabaseManager
from ..database.models import ArgoMeasurement
from ..ingestion.argo_reader import DEFAULT_DATA_DIR, ArgoNetCDFReader, find_netcdf_files

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class IngestionSummary:
    """Totals for one ingestion run"""
    total_files: int = 0
    processed_files: int = 0
    failed_files: List[str] = field(default_factory=list)
    rows_per_file: Dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.rows_per_file.values())


class DataProcessor:
    """Main data processing pipeline"""

    def __init__(self, db_manager: DatabaseManager, reader: Optional[ArgoNetCDFReader] = None):
        self.db_manager = db_manager
        self.reader = reader or ArgoNetCDFReader()

    def process_single_file(self, file_path: str) -> int:
        """
        Process a single NetCDF file

        Returns:
            Number of rows inserted. All rows of the file are committed
            together; on an insert error nothing is kept and the error is
            re-raised.
        """
        records = self.reader.read_argo_file(file_path)
        if not records:
            return 0

        try:
            with self.db_manager.session_scope() as session:
                session.add_all(ArgoMeasurement(**record.to_row()) for record in records)
                session.flush()
        except Exception as e:
            logger.error(f"Error inserting from {file_path}: {str(e)}")
            raise

        return len(records)

    def process_directory(self, directory_path: str, extension: str = '.nc') -> IngestionSummary:
        """
        Process all NetCDF files under a directory, recursively

        Returns:
            IngestionSummary with per-file and total row counts
        """
        netcdf_files = find_netcdf_files(directory_path, extension)
        summary = IngestionSummary(total_files=len(netcdf_files))

        if not netcdf_files:
            logger.warning(f"No {extension} files found under {directory_path}")
            return summary

        logger.info(f"Found {len(netcdf_files)} {extension} files. Starting ingestion...")

        for file_path in tqdm(netcdf_files, desc="Processing files"):
            logger.info(f"Ingesting: {file_path}")
            try:
                inserted = self.process_single_file(file_path)
            except Exception as e:
                logger.error(f"Failed to ingest {file_path}: {str(e)}")
                summary.failed_files.append(file_path)
                summary.rows_per_file[file_path] = 0
                continue

            summary.processed_files += 1
            summary.rows_per_file[file_path] = inserted
            logger.info(f"Inserted {inserted} rows from {os.path.basename(file_path)}")

        logger.info(f"All done. Total rows inserted: {summary.total_rows}")
        return summary


def process_argo_files(db_manager: DatabaseManager, directory_path: str) -> IngestionSummary:
    """Convenience function to process ARGO files"""
    processor = DataProcessor(db_manager)
    return processor.process_directory(directory_path)


def main(argv: Optional[List[str]] = None) -> int:
    """Ingest every NetCDF file under a root directory"""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Load ARGO NetCDF files into the measurement table")
    parser.add_argument('root', nargs='?', help="Root directory to scan for .nc files")
    parser.add_argument('--dir', dest='dir', help="Root directory to scan for .nc files")
    args = parser.parse_args(argv)

    root = os.path.abspath(args.dir or args.root or os.getenv('ARGO_DATA_DIR', DEFAULT_DATA_DIR))
    print(f"Ingestion root: {root}")

    db_manager = None
    try:
        db_manager = DatabaseManager()
        db_manager.ensure_schema()
        results = process_argo_files(db_manager, root)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1
    finally:
        if db_manager is not None:
            db_manager.close()

    for file_path, inserted in results.rows_per_file.items():
        print(f"  {os.path.basename(file_path)}: {inserted} rows")
    print(f"Files: {results.processed_files}/{results.total_files} ingested")
    if results.failed_files:
        print(f"Failed: {len(results.failed_files)}")
        for file_path in results.failed_files[:5]:
            print(f"    - {file_path}")
    print(f"All done. Total rows inserted: {results.total_rows}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
