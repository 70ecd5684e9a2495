"""
OceanViz ARGO Store

Ingests ARGO float NetCDF profiles into a relational measurement table and
serves that table to the map/dashboard frontend and the chat assistant.
"""

__version__ = "1.0.0"
__author__ = "OceanViz Team"
__description__ = "ARGO measurement ingestion and query API with an LLM-backed chat assistant"
