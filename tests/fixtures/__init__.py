"""
Test Fixtures Package

Provides centralized fixtures for test isolation and setup:
- Audit factories and scored audits
- Sample page HTML for the detectors
- Warehouse database fixtures
"""

from .audits import (
    GENERATED_AT,
    INSERTED_AT,
    AuditFactory,
    audit_factory,
    full_audit,
    make_finding,
    minimal_audit,
    pattern_registry,
    scored_audit,
    scoring_config,
)
from .database import warehouse_engine, warehouse_exporter
from .pages import (
    BARE_PAGE,
    BOOKING_PAGE,
    JSON_LD_PAGE,
    TRUST_PAGE,
    booking_page_html,
    trust_page_html,
)

__all__ = [
    "GENERATED_AT",
    "INSERTED_AT",
    "AuditFactory",
    "make_finding",
    "audit_factory",
    "minimal_audit",
    "full_audit",
    "scored_audit",
    "scoring_config",
    "pattern_registry",
    "warehouse_engine",
    "warehouse_exporter",
    "BARE_PAGE",
    "BOOKING_PAGE",
    "JSON_LD_PAGE",
    "TRUST_PAGE",
    "booking_page_html",
    "trust_page_html",
]
