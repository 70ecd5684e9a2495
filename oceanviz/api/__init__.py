"""
REST API package for the OceanViz ARGO Store
"""

from .server import create_app, normalize_rows

__all__ = ['create_app', 'normalize_rows']
