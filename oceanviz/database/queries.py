"""
Read-only queries behind the API routes

Every query filters out rows missing the quantity it serves, is capped at a
fixed row count and is ordered by observation time first.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import logging
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .connection import DatabaseError
from .models import MEASUREMENT_FIELDS, ArgoMeasurement

logger = logging.getLogger(__name__)

EVERYTHING_LIMIT = 100
LATLONG_LIMIT = 50
METRIC_LIMIT = 5000
PROFILES_LIMIT = 1000

# Route name -> column served with latitude/longitude
METRIC_COLUMNS = {
    'temperature': ArgoMeasurement.temperature,
    'pressure': ArgoMeasurement.pressure,
    'salinity': ArgoMeasurement.salinity,
    'oxygen': ArgoMeasurement.oxygen,
    'nitrate': ArgoMeasurement.nitrate,
    'depth': ArgoMeasurement.depth,
    'time': ArgoMeasurement.time_ts,
}

# Measured quantities, excluding position
SUMMARY_FIELDS = tuple(f for f in MEASUREMENT_FIELDS if f not in ('latitude', 'longitude'))


def _rows(session: Session, stmt) -> List[Dict[str, Any]]:
    try:
        return [dict(row._mapping) for row in session.execute(stmt)]
    except SQLAlchemyError as e:
        logger.error(f"Query failed: {str(e)}")
        raise DatabaseError(f"Query failed: {str(e)}") from e


def _all_columns():
    return select(*ArgoMeasurement.__table__.columns)


def _in_region(lat: float, lon: float, range_deg: float):
    return (
        ArgoMeasurement.latitude.between(lat - range_deg, lat + range_deg),
        ArgoMeasurement.longitude.between(lon - range_deg, lon + range_deg),
    )


def fetch_everything(session: Session) -> List[Dict[str, Any]]:
    stmt = (
        _all_columns()
        .order_by(ArgoMeasurement.time_ts, ArgoMeasurement.latitude, ArgoMeasurement.longitude)
        .limit(EVERYTHING_LIMIT)
    )
    return _rows(session, stmt)


def fetch_by_location(session: Session, lat: float, lon: float) -> List[Dict[str, Any]]:
    stmt = (
        _all_columns()
        .where(ArgoMeasurement.latitude == lat, ArgoMeasurement.longitude == lon)
        .order_by(ArgoMeasurement.time_ts, ArgoMeasurement.depth)
        .limit(LATLONG_LIMIT)
    )
    return _rows(session, stmt)


def fetch_metric(session: Session, metric: str) -> List[Dict[str, Any]]:
    """Latitude, longitude and one quantity for every row that has all three"""
    column = METRIC_COLUMNS[metric]
    stmt = (
        select(ArgoMeasurement.latitude, ArgoMeasurement.longitude, column)
        .where(
            ArgoMeasurement.latitude.is_not(None),
            ArgoMeasurement.longitude.is_not(None),
            column.is_not(None),
        )
        .order_by(ArgoMeasurement.time_ts, ArgoMeasurement.latitude, ArgoMeasurement.longitude)
        .limit(METRIC_LIMIT)
    )
    return _rows(session, stmt)


def fetch_profiles(session: Session, lat: float, lon: float, range_deg: float) -> List[Dict[str, Any]]:
    """Rows inside the lat/lon bounding box (inclusive) around a center"""
    stmt = (
        _all_columns()
        .where(*_in_region(lat, lon, range_deg))
        .order_by(ArgoMeasurement.time_ts, ArgoMeasurement.depth)
        .limit(PROFILES_LIMIT)
    )
    return _rows(session, stmt)


@dataclass
class RegionSummary:
    """Statistical summary of the rows inside a bounding box"""
    count: int
    first_time: Optional[datetime] = None
    last_time: Optional[datetime] = None
    fields: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)

    def to_text(self) -> str:
        if self.count == 0:
            return "No measurements were found in this region."

        lines = [f"Measurements in region: {self.count}"]
        if self.first_time or self.last_time:
            lines.append(f"Time range: {self.first_time} to {self.last_time}")
        for name, stats in self.fields.items():
            if stats['count']:
                lines.append(
                    f"{name}: min={stats['min']:.3f}, mean={stats['mean']:.3f}, "
                    f"max={stats['max']:.3f} (n={stats['count']})"
                )
        return "\n".join(lines)


def region_summary(session: Session, lat: float, lon: float, range_deg: float) -> RegionSummary:
    """Count, time range and min/mean/max per measurement field in a region"""
    aggregates = [
        func.count(ArgoMeasurement.id),
        func.min(ArgoMeasurement.time_ts),
        func.max(ArgoMeasurement.time_ts),
    ]
    for name in SUMMARY_FIELDS:
        column = getattr(ArgoMeasurement, name)
        aggregates.extend([func.count(column), func.min(column), func.avg(column), func.max(column)])

    stmt = select(*aggregates).where(*_in_region(lat, lon, range_deg))
    try:
        row = session.execute(stmt).one()
    except SQLAlchemyError as e:
        logger.error(f"Region summary failed: {str(e)}")
        raise DatabaseError(f"Region summary failed: {str(e)}") from e

    summary = RegionSummary(count=row[0], first_time=row[1], last_time=row[2])
    for i, name in enumerate(SUMMARY_FIELDS):
        count, minimum, mean, maximum = row[3 + 4 * i: 7 + 4 * i]
        summary.fields[name] = {
            'count': count,
            'min': float(minimum) if minimum is not None else None,
            'mean': float(mean) if mean is not None else None,
            'max': float(maximum) if maximum is not None else None,
        }
    return summary
