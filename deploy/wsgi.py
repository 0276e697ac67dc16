"""WSGI entry point for production deployment."""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.tables import load_tables
from src.web.app import create_app

tables = load_tables(
    os.environ.get("ICAO_RANGES_PATH") or None,
    os.environ.get("ICAO_PREFIXES_PATH") or None,
    os.environ.get("ICAO_OPERATORS_PATH") or None,
)
reports_path = os.environ.get("ICAO_REPORTS_PATH", "/opt/icao-consensus/data/mismatches.db")
app = create_app(tables=tables, reports_path=reports_path)
