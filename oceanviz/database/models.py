"""
Database Models for the OceanViz ARGO Store

This module defines the SQLAlchemy model for the flat measurement table
populated by the ingestion pipeline and read by the API.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Double, Index, Integer, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

MEASUREMENT_FIELDS = (
    'temperature', 'latitude', 'longitude', 'pressure',
    'salinity', 'oxygen', 'nitrate', 'depth',
)


class ArgoMeasurement(Base):
    """Table to store individual measurements from ARGO files"""
    __tablename__ = 'argo_measurements'

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Measurement data
    temperature = Column(Double)  # degrees Celsius
    latitude = Column(Double)
    longitude = Column(Double)
    pressure = Column(Double)  # dbar
    salinity = Column(Double)  # PSU
    oxygen = Column(Double)  # micromol/kg
    nitrate = Column(Double)  # micromol/kg
    depth = Column(Double)  # meters

    # Observation time, derived from JULD or a raw epoch value
    time_ts = Column(DateTime(timezone=True))

    # ORM inserts always set it; the server default covers other writers
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    __table_args__ = (
        Index('idx_measurement_location', 'latitude', 'longitude'),
        Index('idx_measurement_time', 'time_ts'),
    )

    def __repr__(self):
        return f"<ArgoMeasurement(id={self.id}, latitude={self.latitude}, longitude={self.longitude})>"
