"""
D10 Analytics Module

Flattens scored audits into warehouse rows and exports them.
"""

from .schemas import (
    AuditExportRows,
    AuditRow,
    BookingStepRow,
    CrawlPageRow,
    FindingRow,
    LighthouseOpportunityRow,
    ModuleErrorRow,
    SessionReplayRow,
)
from .transform import transform_audit_to_rows
from .warehouse import AuditWarehouseExporter, BatchExportResult, ExportResult, create_warehouse_engine
from .warehouse_schema import ALL_TABLE_NAMES, TABLE_SPECS, build_tables, create_table_sql

__all__ = [
    "AuditExportRows",
    "AuditRow",
    "BookingStepRow",
    "CrawlPageRow",
    "FindingRow",
    "LighthouseOpportunityRow",
    "ModuleErrorRow",
    "SessionReplayRow",
    "transform_audit_to_rows",
    "AuditWarehouseExporter",
    "BatchExportResult",
    "ExportResult",
    "create_warehouse_engine",
    "ALL_TABLE_NAMES",
    "TABLE_SPECS",
    "build_tables",
    "create_table_sql",
]
