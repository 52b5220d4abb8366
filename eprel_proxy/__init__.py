"""
EPREL smartphone catalog proxy.

Read-through caching proxy in front of the EU EPREL registry, serving
normalized smartphone energy-label data to the comparison frontend.

Structure:
- domain/: Catalog models, EPREL mapper, exceptions
- infrastructure/: EPREL HTTP client, TTL cache
- application/: Catalog service orchestrating client, mapper and cache
- app.py: FastAPI boundary
- tests/: Test suite (unit, integration)
"""

__version__ = "1.0.0"
