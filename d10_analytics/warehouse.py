"""
D10 Analytics Audit Warehouse

Exports transformed audit rows into the analytics warehouse through a
SQLAlchemy engine. Each audit is written in one transaction, so an audit
is either fully present or absent from every table.

Failures while exporting are captured in ``ExportResult`` rather than
raised, so one bad audit never stops a batch. Deletes and re-exports of an
audit are serialised with any in-flight export of the same audit id;
different audits never block each other.
"""

import threading
import time
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from core.config import settings
from core.exceptions import WarehouseError
from core.logging import get_logger
from core.utils import chunk_list
from d3_assessment.audit_schema import NormalizedAudit

from .schemas import AuditExportRows
from .transform import transform_audit_to_rows
from .warehouse_schema import ALL_TABLE_NAMES, build_tables, create_table_sql, full_table_name

logger = get_logger(__name__, domain="d10")


def _empty_counts() -> Dict[str, int]:
    return {name: 0 for name in ALL_TABLE_NAMES}


@dataclass
class ExportResult:
    """Result of exporting one audit"""

    audit_id: str
    success: bool = True
    rows_inserted: Dict[str, int] = field(default_factory=_empty_counts)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "audit_id": self.audit_id,
            "success": self.success,
            "rows_inserted": dict(self.rows_inserted),
            "errors": list(self.errors),
        }


@dataclass
class BatchExportResult:
    """Result of exporting several audits"""

    total: int = 0
    successful: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
    results: List[ExportResult] = field(default_factory=list)

    def add(self, result: ExportResult):
        self.results.append(result)
        if result.success:
            self.successful += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "duration_seconds": self.duration_seconds,
            "results": [r.to_dict() for r in self.results],
        }


class AuditLockRegistry:
    """Re-entrant lock per audit id, dropped once no thread holds it"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._holders: Dict[str, int] = {}

    @contextmanager
    def hold(self, audit_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(audit_id, threading.RLock())
            self._holders[audit_id] = self._holders.get(audit_id, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._holders[audit_id] -= 1
                if self._holders[audit_id] == 0:
                    del self._holders[audit_id]
                    del self._locks[audit_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def create_warehouse_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Engine for the warehouse URL, with SQLite tuned for multi-threaded use"""
    url = url or settings.warehouse_url
    echo = settings.warehouse_echo if echo is None else echo

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    return create_engine(url, pool_size=10, max_overflow=20, pool_pre_ping=True, echo=echo)


class AuditWarehouseExporter:
    """
    Exports normalized audits to the warehouse tables

    Args:
        engine: SQLAlchemy engine; created from ``warehouse_url`` when omitted
        table_prefix: Prefix for every table name ("audit_" -> "audit_findings")
        auto_create_tables: Create missing tables on initialize instead of failing
        stream_batch_size: Rows per insert statement in ``stream_export``
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        table_prefix: Optional[str] = None,
        auto_create_tables: Optional[bool] = None,
        stream_batch_size: Optional[int] = None,
    ):
        self.engine = engine or create_warehouse_engine()
        self.table_prefix = settings.warehouse_table_prefix if table_prefix is None else table_prefix
        self.auto_create_tables = (
            settings.warehouse_auto_create_tables if auto_create_tables is None else auto_create_tables
        )
        self.stream_batch_size = stream_batch_size or settings.warehouse_stream_batch_size

        self.tables = build_tables(prefix=self.table_prefix)
        self._audit_locks = AuditLockRegistry()
        self._init_lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self):
        """
        Create or verify the warehouse tables; safe to call repeatedly

        Raises:
            WarehouseError: if tables are missing and auto-creation is off,
                or the database cannot be reached
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                if self.auto_create_tables:
                    metadata = next(iter(self.tables.values())).metadata
                    metadata.create_all(self.engine)
                else:
                    inspector = inspect(self.engine)
                    missing = [t.name for t in self.tables.values() if not inspector.has_table(t.name)]
                    if missing:
                        raise WarehouseError(
                            f"Warehouse tables do not exist: {', '.join(missing)}",
                            operation="initialize",
                            missing_tables=missing,
                        )
            except SQLAlchemyError as e:
                raise WarehouseError(f"Failed to initialize warehouse: {e}", operation="initialize") from e

            self._initialized = True
            logger.info(
                "Audit warehouse initialized",
                extra={"table_prefix": self.table_prefix, "auto_create_tables": self.auto_create_tables},
            )

    def get_full_table_name(self, table_name: str) -> str:
        return full_table_name(table_name, self.table_prefix)

    def get_create_table_sql(self, dataset: Optional[str] = None) -> str:
        """DDL for creating every table by hand in a columnar warehouse"""
        return create_table_sql(self.table_prefix, dataset)

    def _insert_rows(self, conn: Connection, rows: AuditExportRows) -> Dict[str, int]:
        counts = _empty_counts()
        for table_name, table_rows in rows.table_rows().items():
            if not table_rows:
                continue
            conn.execute(self.tables[table_name].insert(), [row.model_dump() for row in table_rows])
            counts[table_name] = len(table_rows)
        return counts

    def _delete_rows(self, conn: Connection, audit_id: str) -> Dict[str, int]:
        counts = {}
        for table_name, table in self.tables.items():
            deleted = conn.execute(table.delete().where(table.c.audit_id == audit_id))
            counts[table_name] = deleted.rowcount or 0
        return counts

    def _write(self, audit: NormalizedAudit, replace: bool) -> ExportResult:
        result = ExportResult(audit_id=audit.audit_id)
        try:
            rows = transform_audit_to_rows(audit)
            with self.engine.begin() as conn:
                if replace:
                    self._delete_rows(conn, audit.audit_id)
                result.rows_inserted = self._insert_rows(conn, rows)
        except Exception as e:
            result.success = False
            result.rows_inserted = _empty_counts()
            result.errors.append(str(e))
            logger.error(
                f"Failed to export audit {audit.audit_id}: {e}",
                extra={"audit_id": audit.audit_id, "replace": replace},
            )
        else:
            logger.info(
                f"Exported audit {audit.audit_id}",
                extra={"audit_id": audit.audit_id, "rows_inserted": result.rows_inserted, "replace": replace},
            )
        return result

    def export_audit(self, audit: NormalizedAudit) -> ExportResult:
        """Export one audit; failures are reported in the result"""
        self.initialize()
        with self._audit_locks.hold(audit.audit_id):
            return self._write(audit, replace=False)

    def export_batch(self, audits: Iterable[NormalizedAudit]) -> BatchExportResult:
        """Export audits one by one; a failing audit does not stop the rest"""
        self.initialize()
        start_time = time.time()
        audits = list(audits)

        batch = BatchExportResult(total=len(audits))
        for audit in audits:
            batch.add(self.export_audit(audit))

        batch.duration_seconds = time.time() - start_time
        logger.info(
            f"Batch export completed: {batch.successful}/{batch.total} successful",
            extra={"total": batch.total, "successful": batch.successful, "failed": batch.failed},
        )
        return batch

    def stream_export(self, audits: Iterable[NormalizedAudit]) -> BatchExportResult:
        """
        Export audits with bulk inserts per table

        All audits are transformed first and their rows inserted table by
        table in chunks of ``stream_batch_size``. The whole batch shares one
        transaction, so every audit succeeds or every audit fails.
        """
        self.initialize()
        start_time = time.time()
        audits = list(audits)
        batch = BatchExportResult(total=len(audits))

        audit_ids = sorted({audit.audit_id for audit in audits})
        with ExitStack() as stack:
            for audit_id in audit_ids:
                stack.enter_context(self._audit_locks.hold(audit_id))

            try:
                all_rows = [transform_audit_to_rows(audit) for audit in audits]
                with self.engine.begin() as conn:
                    for table_name in ALL_TABLE_NAMES:
                        table_rows = [
                            row.model_dump() for rows in all_rows for row in rows.table_rows()[table_name]
                        ]
                        for chunk in chunk_list(table_rows, self.stream_batch_size):
                            conn.execute(self.tables[table_name].insert(), chunk)
            except Exception as e:
                logger.error(f"Stream export of {len(audits)} audits failed: {e}", extra={"total": len(audits)})
                for audit in audits:
                    batch.add(ExportResult(audit_id=audit.audit_id, success=False, errors=[str(e)]))
            else:
                for audit, rows in zip(audits, all_rows):
                    counts = {name: len(table_rows) for name, table_rows in rows.table_rows().items()}
                    batch.add(ExportResult(audit_id=audit.audit_id, rows_inserted=counts))

        batch.duration_seconds = time.time() - start_time
        logger.info(
            f"Stream export completed: {batch.successful}/{batch.total} successful",
            extra={"total": batch.total, "successful": batch.successful, "failed": batch.failed},
        )
        return batch

    def delete_audit(self, audit_id: str) -> Dict[str, int]:
        """
        Delete every row of an audit from every table

        Returns:
            Deleted row count per table

        Raises:
            WarehouseError: if the delete fails
        """
        self.initialize()
        with self._audit_locks.hold(audit_id):
            try:
                with self.engine.begin() as conn:
                    counts = self._delete_rows(conn, audit_id)
            except SQLAlchemyError as e:
                raise WarehouseError(f"Failed to delete audit {audit_id}: {e}", operation="delete") from e

        logger.info(f"Deleted audit {audit_id}", extra={"audit_id": audit_id, "rows_deleted": counts})
        return counts

    def reexport_audit(self, audit: NormalizedAudit) -> ExportResult:
        """Replace an audit's rows: delete then re-insert in one transaction"""
        self.initialize()
        with self._audit_locks.hold(audit.audit_id):
            return self._write(audit, replace=True)

    def count_rows(self, table_name: str, audit_id: Optional[str] = None) -> int:
        """Row count of a table, optionally for one audit"""
        table = self.tables[table_name]
        query = select(func.count()).select_from(table)
        if audit_id is not None:
            query = query.where(table.c.audit_id == audit_id)
        try:
            with self.engine.connect() as conn:
                return conn.execute(query).scalar_one()
        except SQLAlchemyError as e:
            raise WarehouseError(f"Failed to count rows in {table_name}: {e}", operation="count") from e

    def close(self):
        self.engine.dispose()
