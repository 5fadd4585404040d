"""
Command-line interface for SiteAudit
"""
import json
import sys
from pathlib import Path

import click

from core.config import settings
from core.exceptions import SiteAuditError
from core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


def _read_audit(path: str):
    from d3_assessment.audit_schema import load_audit

    return load_audit(Path(path).read_text(encoding="utf-8"))


@click.group()
@click.version_option(version=settings.app_version)
@click.option("--verbose", "-v", is_flag=True, help="Write logs to stderr")
def cli(verbose: bool):
    """SiteAudit CLI - website conversion audit scoring and export"""
    if verbose:
        setup_logging(stream=sys.stderr)


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False))
def detect(html_file: str):
    """Run the booking-flow and trust-signal detectors on an HTML file"""
    from d3_assessment.coordinator import DetectionCoordinator

    html = Path(html_file).read_text(encoding="utf-8", errors="replace")
    try:
        detections = DetectionCoordinator().detect_page(html_file, html)
    except SiteAuditError as e:
        raise click.ClickException(e.message)

    _echo_json(detections.to_signals().model_dump(mode="json", by_alias=True))


@cli.command()
@click.argument("audit_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--html", "html_file", type=click.Path(exists=True, dir_okay=False), help="Home page HTML to detect on")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the scored audit here")
def score(audit_json: str, html_file: str, output: str):
    """Score a normalized audit and print it with its scoring attached"""
    from d3_assessment.audit_schema import dump_audit
    from d3_assessment.coordinator import attach_detections
    from d5_scoring.engine import AuditScoringEngine

    try:
        audit = _read_audit(audit_json)
        if html_file:
            html = Path(html_file).read_text(encoding="utf-8", errors="replace")
            audit = attach_detections(audit, html)
        scored = AuditScoringEngine(enable_metrics=False).score_audit(audit)
    except SiteAuditError as e:
        raise click.ClickException(e.message)

    payload = json.dumps(dump_audit(scored), indent=2)
    if output:
        Path(output).write_text(payload, encoding="utf-8")
        click.echo(f"Scored audit {scored.audit_id}: {scored.scoring.overall_score}")
    else:
        click.echo(payload)


@cli.command()
@click.argument("audit_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--url", help="Warehouse URL (defaults to WAREHOUSE_URL)")
@click.option("--stream", is_flag=True, help="Bulk insert all audits in one transaction")
@click.option("--replace", is_flag=True, help="Delete existing rows for each audit first")
def export(audit_files, url: str, stream: bool, replace: bool):
    """Export scored audits to the analytics warehouse"""
    from d10_analytics.warehouse import AuditWarehouseExporter, BatchExportResult, create_warehouse_engine

    try:
        audits = [_read_audit(path) for path in audit_files]
        exporter = AuditWarehouseExporter(engine=create_warehouse_engine(url) if url else None)
        if stream:
            result = exporter.stream_export(audits)
        elif replace:
            result = BatchExportResult(total=len(audits))
            for audit in audits:
                result.add(exporter.reexport_audit(audit))
        else:
            result = exporter.export_batch(audits)
    except SiteAuditError as e:
        raise click.ClickException(e.message)

    _echo_json(result.to_dict())
    if result.failed:
        sys.exit(1)


@cli.command()
@click.option("--dataset", help="Dataset to qualify table names with")
@click.option("--prefix", default=None, help="Table name prefix (defaults to WAREHOUSE_TABLE_PREFIX)")
def ddl(dataset: str, prefix: str):
    """Print CREATE TABLE statements for the warehouse tables"""
    from d10_analytics.warehouse_schema import create_table_sql

    click.echo(create_table_sql(settings.warehouse_table_prefix if prefix is None else prefix, dataset))


@cli.command()
def env_info():
    """Display environment information"""
    click.echo(f"{settings.app_name} v{settings.app_version}")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Warehouse: {settings.model_dump()['warehouse_url']}")
    click.echo(f"Scoring config: {settings.scoring_config_path}")
    click.echo(f"Detector patterns: {settings.detector_patterns_path}")


def main():
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()
