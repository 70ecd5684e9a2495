#!/usr/bin/env python3
"""
OceanViz ARGO Store - Main Application Entry Point

This is the main entry point for the OceanViz ARGO Store.
It launches the REST API server consumed by the dashboard and chat assistant.
"""

import sys

from oceanviz.api.server import main as run_server


def main():
    """Launch the OceanViz ARGO API"""
    print("🌊 Launching OceanViz ARGO API...")

    try:
        return run_server()
    except KeyboardInterrupt:
        print("\n👋 OceanViz ARGO API stopped.")
        return 0
    except Exception as e:
        print(f"❌ Error launching API server: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
