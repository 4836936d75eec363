"""
Core application utilities for settings, logging and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation-id enrichment
- Dependency helpers (per-request repository, unit of work, services)
"""
