"""
Warehouse table definitions

The seven export tables are declared once: column names, types and modes
come from the row models in ``d10_analytics.schemas`` and partitioning and
clustering from ``TABLE_SPECS`` below. From that single declaration this
module builds

- SQLAlchemy Core tables for any SQLAlchemy-supported warehouse, with
  repeated columns stored as JSON
- a columnar-warehouse DDL script (``PARTITION BY`` / ``CLUSTER BY``)
"""

import typing
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Float, Index, MetaData, String, Table

from .schemas import (
    AuditRow,
    BookingStepRow,
    CrawlPageRow,
    ExportRow,
    FindingRow,
    LighthouseOpportunityRow,
    ModuleErrorRow,
    SessionReplayRow,
)


class FieldType(str, Enum):
    STRING = "STRING"
    INT64 = "INT64"
    FLOAT64 = "FLOAT64"
    BOOL = "BOOL"
    TIMESTAMP = "TIMESTAMP"


class FieldMode(str, Enum):
    REQUIRED = "REQUIRED"
    NULLABLE = "NULLABLE"
    REPEATED = "REPEATED"


@dataclass(frozen=True)
class TableField:
    name: str
    type: FieldType
    mode: FieldMode


@dataclass(frozen=True)
class TableSpec:
    """One warehouse table: row model, daily partition column and clustering"""

    name: str
    row_model: Type[ExportRow]
    partition_field: str
    clustering: Tuple[str, ...]

    @property
    def fields(self) -> List[TableField]:
        return fields_for_model(self.row_model)


TABLE_SPECS: Dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        TableSpec("audits", AuditRow, "generated_at", ("domain", "status")),
        TableSpec("findings", FindingRow, "inserted_at", ("audit_id", "category", "severity")),
        TableSpec("crawl_pages", CrawlPageRow, "inserted_at", ("audit_id", "kind")),
        TableSpec("booking_steps", BookingStepRow, "inserted_at", ("audit_id",)),
        TableSpec("session_replays", SessionReplayRow, "inserted_at", ("audit_id", "strategy")),
        TableSpec("module_errors", ModuleErrorRow, "inserted_at", ("audit_id", "module")),
        TableSpec("lighthouse_opportunities", LighthouseOpportunityRow, "inserted_at", ("audit_id", "strategy")),
    )
}

ALL_TABLE_NAMES: Tuple[str, ...] = tuple(TABLE_SPECS)

_PYTHON_TYPES = {
    str: FieldType.STRING,
    int: FieldType.INT64,
    float: FieldType.FLOAT64,
    bool: FieldType.BOOL,
    datetime: FieldType.TIMESTAMP,
}

_SQLALCHEMY_TYPES = {
    FieldType.STRING: String,
    FieldType.INT64: BigInteger,
    FieldType.FLOAT64: Float,
    FieldType.BOOL: Boolean,
    FieldType.TIMESTAMP: lambda: DateTime(timezone=True),
}


def _field_for_annotation(name: str, annotation) -> TableField:
    mode = FieldMode.REQUIRED
    origin = typing.get_origin(annotation)

    if origin is typing.Union:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        annotation = args[0]
        mode = FieldMode.NULLABLE
        origin = typing.get_origin(annotation)

    if origin in (list, List):
        annotation = typing.get_args(annotation)[0]
        mode = FieldMode.REPEATED

    try:
        field_type = _PYTHON_TYPES[annotation]
    except KeyError:
        raise TypeError(f"Unsupported warehouse column type for '{name}': {annotation!r}") from None
    return TableField(name=name, type=field_type, mode=mode)


def fields_for_model(row_model: Type[ExportRow]) -> List[TableField]:
    """Warehouse fields for a row model, in declaration order"""
    return [_field_for_annotation(name, info.annotation) for name, info in row_model.model_fields.items()]


def full_table_name(table_name: str, prefix: str = "") -> str:
    """Table name with the optional prefix ("audit_" -> "audit_findings")"""
    if table_name not in TABLE_SPECS:
        raise KeyError(f"Unknown warehouse table: {table_name}")
    return f"{prefix}{table_name}"


def build_tables(metadata: Optional[MetaData] = None, prefix: str = "") -> Dict[str, Table]:
    """SQLAlchemy Core tables keyed by logical table name"""
    metadata = metadata if metadata is not None else MetaData()
    tables = {}
    for name, spec in TABLE_SPECS.items():
        full_name = full_table_name(name, prefix)
        columns = []
        for field in spec.fields:
            if field.mode == FieldMode.REPEATED:
                column_type = JSON()
            else:
                column_type = _SQLALCHEMY_TYPES[field.type]()
            columns.append(Column(field.name, column_type, nullable=field.mode != FieldMode.REQUIRED))

        table = Table(full_name, metadata, *columns)
        Index(f"ix_{full_name}_cluster", *(table.c[column] for column in spec.clustering))
        tables[name] = table
    return tables


def _ddl_column(field: TableField) -> str:
    if field.mode == FieldMode.REPEATED:
        return f"  {field.name} ARRAY<{field.type.value}>"
    if field.mode == FieldMode.REQUIRED:
        return f"  {field.name} {field.type.value} NOT NULL"
    return f"  {field.name} {field.type.value}"


def create_table_sql(prefix: str = "", dataset: Optional[str] = None) -> str:
    """DDL for every table, partitioned by day and clustered"""
    statements = []
    for name, spec in TABLE_SPECS.items():
        table_ref = full_table_name(name, prefix)
        if dataset:
            table_ref = f"{dataset}.{table_ref}"

        columns = ",\n".join(_ddl_column(field) for field in spec.fields)
        sql = f"CREATE TABLE IF NOT EXISTS `{table_ref}` (\n{columns}\n)"
        sql += f"\nPARTITION BY DATE({spec.partition_field})"
        sql += f"\nCLUSTER BY {', '.join(spec.clustering)}"
        statements.append(sql + ";")

    return "\n\n".join(statements)
