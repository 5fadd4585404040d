"""
Test warehouse table definitions and DDL generation
"""
import pytest
from sqlalchemy import JSON, BigInteger, DateTime, MetaData

from d10_analytics.schemas import FindingRow
from d10_analytics.warehouse_schema import (
    ALL_TABLE_NAMES,
    TABLE_SPECS,
    FieldMode,
    FieldType,
    build_tables,
    create_table_sql,
    fields_for_model,
    full_table_name,
)

pytestmark = pytest.mark.unit


class TestTableSpecs:
    def test_seven_tables(self):
        assert ALL_TABLE_NAMES == (
            "audits",
            "findings",
            "crawl_pages",
            "booking_steps",
            "session_replays",
            "module_errors",
            "lighthouse_opportunities",
        )

    def test_audits_partitioned_by_generation_time(self):
        assert TABLE_SPECS["audits"].partition_field == "generated_at"
        assert all(spec.partition_field == "inserted_at" for name, spec in TABLE_SPECS.items() if name != "audits")

    def test_field_modes(self):
        fields = {f.name: f for f in fields_for_model(FindingRow)}

        assert (fields["audit_id"].type, fields["audit_id"].mode) == (FieldType.STRING, FieldMode.REQUIRED)
        assert (fields["inserted_at"].type, fields["inserted_at"].mode) == (FieldType.TIMESTAMP, FieldMode.REQUIRED)
        assert (fields["ranking"].type, fields["ranking"].mode) == (FieldType.INT64, FieldMode.NULLABLE)
        assert (fields["impact"].type, fields["impact"].mode) == (FieldType.FLOAT64, FieldMode.REQUIRED)
        assert (fields["is_top_issue"].type, fields["is_top_issue"].mode) == (FieldType.BOOL, FieldMode.REQUIRED)
        assert (fields["evidence"].type, fields["evidence"].mode) == (FieldType.STRING, FieldMode.REPEATED)

    def test_every_table_has_audit_id(self):
        for spec in TABLE_SPECS.values():
            assert spec.fields[0].name == "audit_id"

    def test_full_table_name(self):
        assert full_table_name("findings", "audit_") == "audit_findings"
        assert full_table_name("audits") == "audits"

    def test_unknown_table(self):
        with pytest.raises(KeyError):
            full_table_name("bookings")


class TestBuildTables:
    def test_sqlalchemy_tables(self):
        tables = build_tables(MetaData(), prefix="audit_")

        assert set(tables) == set(ALL_TABLE_NAMES)
        findings = tables["findings"]
        assert findings.name == "audit_findings"
        assert isinstance(findings.c.evidence.type, JSON)
        assert isinstance(findings.c.penalty.type, BigInteger)
        assert isinstance(findings.c.inserted_at.type, DateTime)
        assert findings.c.audit_id.nullable is False
        assert findings.c.ranking.nullable is True

    def test_cluster_indexes(self):
        tables = build_tables()
        index = next(iter(tables["findings"].indexes))

        assert index.name == "ix_findings_cluster"
        assert [c.name for c in index.columns] == ["audit_id", "category", "severity"]


class TestCreateTableSql:
    def test_ddl(self):
        sql = create_table_sql()

        assert sql.count("CREATE TABLE IF NOT EXISTS") == 7
        assert "CREATE TABLE IF NOT EXISTS `findings`" in sql
        assert "  audit_id STRING NOT NULL" in sql
        assert "  evidence ARRAY<STRING>" in sql
        assert "  ranking INT64\n)" in sql
        assert "PARTITION BY DATE(generated_at)\nCLUSTER BY domain, status;" in sql
        assert "CLUSTER BY audit_id, category, severity;" in sql

    def test_dataset_and_prefix(self):
        sql = create_table_sql(prefix="audit_", dataset="analytics")
        assert "`analytics.audit_booking_steps`" in sql
